# /app/models/dashboard_model.py

# --- Core Imports ---
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.errors import AppError

from .session_model import UserInfo
from .student_model import Student

# --- Result Shape ---

class OperationResult(BaseModel):
    """
    The uniform return value of every session and record operation.
    Callers check `success` instead of catching exceptions.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = Field(default=None, description="'auth', 'data_access' or 'cancelled'.")
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: AppError) -> "OperationResult":
        return cls(success=False, error=error.message, error_kind=error.kind, error_code=error.code)


# --- Side Effects ---

class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notification(BaseModel):
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    timeout: float = Field(..., description="Seconds until the notification auto-dismisses.")


class Redirect(BaseModel):
    target: str = Field(..., description="'login' or 'dashboard'.")
    delay: float = 0.0


# --- Dashboard Model Definitions ---

class DashboardStats(BaseModel):
    """
    Statistics derived from the cached student list. Only the first two are
    authoritative; the others have no backing data and are always None.
    """

    totalStudents: int = Field(..., description="Number of students owned by the teacher.", examples=[24])
    activeClasses: int = Field(..., description="Number of distinct grade values.", examples=[3])
    totalAssignments: Optional[int] = Field(default=None, description="Not tracked; always null.")
    averageGrade: Optional[str] = Field(default=None, description="Not tracked; always null.")


class EditPhase(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SUBMITTING = "submitting"


class EditFormState(BaseModel):
    """State of the shared student modal."""
    phase: EditPhase = EditPhase.IDLE
    editing_id: Optional[str] = None
    title: str = "Add New Student"
    submit_label: str = "Save Student"
    fields: Dict[str, str] = Field(default_factory=dict)


class PendingConfirmation(BaseModel):
    action: str = Field(..., description="'delete' or 'logout'.")
    record_id: Optional[str] = None
    prompt: str


class DashboardRenderState(BaseModel):
    """
    Everything the presentation layer needs to draw the dashboard. Keys the
    page does not have are simply ignored by the page.
    """
    user: Optional[UserInfo] = None
    stats: Optional[DashboardStats] = None
    students: List[Student] = Field(default_factory=list)
    table_html: str = ""
    modal: EditFormState = Field(default_factory=EditFormState)
    confirmation: Optional[PendingConfirmation] = None
    notification: Optional[Notification] = None
    redirect: Optional[Redirect] = None


class AuthRenderState(BaseModel):
    """What the sign-in page needs to draw itself."""
    authenticated: bool
    user: Optional[UserInfo] = None
    active_form: str = "login"
    notification: Optional[Notification] = None
    redirect: Optional[Redirect] = None


# --- API Envelopes ---

class AuthResponse(BaseModel):
    """Returned by sign-up, login, and refresh. The token is absent until a session exists."""
    access_token: Optional[str] = None
    token_type: str = "bearer"
    state: AuthRenderState


class ActionResponse(BaseModel):
    """The outcome of a dashboard action plus the view to draw afterwards."""
    result: OperationResult
    state: DashboardRenderState


class ConfirmationDecision(BaseModel):
    decision: bool
