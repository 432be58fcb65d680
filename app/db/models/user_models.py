# /app/db/models/user_models.py

"""
SQLAlchemy models for teacher accounts and the bearer sessions issued to them
by the SQL provider.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from ..base_class import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A teacher account. Email is the login name."""
    id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    school_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # A teacher's students and sessions disappear with the account.
    students = relationship("Student", back_populates="owner", cascade="all, delete-orphan")
    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    access_token = Column(String, primary_key=True)
    refresh_token = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    user = relationship("User", back_populates="sessions")
