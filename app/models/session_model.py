# /app/models/session_model.py

# --- Core Imports ---
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

DEFAULT_DISPLAY_NAME = "Teacher"
DEFAULT_SCHOOL_NAME = "School"


class SessionEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class Session(BaseModel):
    """
    The authenticated identity of the current teacher, as issued by the
    provider. It is held in memory only; persistence belongs to the provider.
    """
    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(..., description="The provider's unique id for the user.")
    email: str
    full_name: Optional[str] = None
    school_name: Optional[str] = None
    access_token: str = Field(..., description="Opaque bearer token for this session.")
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None


class UserInfo(BaseModel):
    """Display info for the dashboard header."""
    name: str = DEFAULT_DISPLAY_NAME
    school: str = DEFAULT_SCHOOL_NAME

    @classmethod
    def from_session(cls, session: Session) -> "UserInfo":
        return cls(
            name=session.full_name or DEFAULT_DISPLAY_NAME,
            school=session.school_name or DEFAULT_SCHOOL_NAME,
        )


# --- Request Models ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)
    school_name: str = Field(..., min_length=1)
