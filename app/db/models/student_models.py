# /app/db/models/student_models.py

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from ..base_class import Base


class Student(Base):
    """
    SQLAlchemy model representing one student on a teacher's roster.
    Ownership is the `teacher_id` column; there is no class table.
    """
    __tablename__ = "students"

    id = Column(String, primary_key=True, index=True)
    teacher_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, index=True, nullable=False)
    email = Column(String, nullable=False)
    grade = Column(String, nullable=False)
    subject = Column(String, nullable=True)
    parent = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    # Set in Python rather than by the server so ordering has sub-second resolution.
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    owner = relationship("User", back_populates="students")
