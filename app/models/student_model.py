# /app/models/student_model.py

# --- Core Imports ---
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Fields the modal form carries, in display order.
FORM_FIELDS = ("id", "name", "email", "grade", "subject", "parent", "phone", "notes")
OPTIONAL_FIELDS = ("subject", "parent", "phone", "notes")


class StudentBase(BaseModel):
    """
    The base model for a Student. Contains the fields a teacher edits.
    """
    name: str = Field(..., min_length=1, description="The full name of the student.")
    email: str = Field(..., min_length=1)
    grade: str = Field(..., min_length=1, description="Grade level, e.g. '5'.")
    subject: Optional[str] = None
    parent: Optional[str] = Field(default=None, description="Parent or guardian name.")
    phone: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "email", "grade", mode="before")
    @classmethod
    def _strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator(*OPTIONAL_FIELDS, mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        # The browser form sends "" for untouched inputs.
        if isinstance(value, str) and not value.strip():
            return None
        return value


class StudentForm(StudentBase):
    """
    The payload of the student modal. A missing or empty `id` means the
    record is new and must be inserted rather than updated.
    """
    id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _empty_id_is_new(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return str(value)

    @property
    def is_new(self) -> bool:
        return self.id is None


class Student(StudentBase):
    """
    The full representation of a Student record, as stored by the provider.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="The unique, server-generated identifier for the student.")
    teacher_id: str = Field(..., description="The id of the teacher who owns this record.")
    created_at: Optional[datetime] = None
