# /app/services/record_sync_service.py

"""
This service keeps the dashboard's student roster in sync with the provider.

It holds the in-memory list of the signed-in teacher's students and exposes
list/save/delete operations against the provider's `students` table. Every
query and mutation is scoped by `teacher_id`, including updates and deletes
that already name a record id, so a guessed id can never touch another
teacher's row.

After any successful mutation the whole list is fetched again and the
statistics recomputed; the cache is never patched locally. If a fetch fails
the previous list stays in place (stale but available) and an error
notification is shown.

The student modal follows a small state machine:

    IDLE -> EDITING(id | None) -> SUBMITTING -> IDLE        (saved)
                                             -> EDITING     (rejected; fields kept)

Destructive actions (delete, logout) go through an explicit confirmation
step: `request_delete`/`request_logout` record what is pending, and
`resolve_confirmation` carries the user's decision.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import pandas as pd
from pydantic import ValidationError

from ..core.errors import AuthError, DataAccessError, UserCancelled
from ..models.dashboard_model import (
    DashboardRenderState,
    DashboardStats,
    EditFormState,
    EditPhase,
    OperationResult,
    PendingConfirmation,
    Redirect,
)
from ..models.session_model import Session, SessionEvent, UserInfo
from ..models.student_model import FORM_FIELDS, Student, StudentForm
from .notification_service import NotificationCenter
from .providers.base import DataProvider, OrderBy, call_provider
from .session_service import SessionCoordinator
from .view_renderer import render_students_table

logger = logging.getLogger(__name__)

STUDENTS_TABLE = "students"
OWNER_COLUMN = "teacher_id"
NEWEST_FIRST = OrderBy("created_at", ascending=False)

LOAD_ERROR = "Error loading students"
SAVE_ERROR = "Error saving student"
DELETE_ERROR = "Error deleting student"
LOGOUT_ERROR = "Error logging out"
NOT_SIGNED_IN = "Your session has ended. Please sign in again."
NOT_FOUND = "Student not found"
DELETE_PROMPT = "Are you sure you want to delete this student?"
LOGOUT_PROMPT = "Are you sure you want to logout?"

EXPORT_COLUMNS = ["Name", "Email", "Grade", "Subject", "Parent/Guardian", "Phone", "Notes", "Added"]


class RecordSyncManager:
    def __init__(
        self,
        provider: DataProvider,
        coordinator: SessionCoordinator,
        notifications: NotificationCenter,
        redirect_delay: float = 1.0,
    ):
        self.provider = provider
        self.coordinator = coordinator
        self.notifications = notifications
        self.redirect_delay = redirect_delay

        self.students: List[Student] = []
        self.user_info: Optional[UserInfo] = None
        self.stats = DashboardStats(totalStudents=0, activeClasses=0)
        self.form = EditFormState()
        self.confirmation: Optional[PendingConfirmation] = None
        self.redirect: Optional[Redirect] = None
        self.initialized = False

        self._unregister: Callable[[], None] = coordinator.register_listener(self._on_session_event)

    # --- Lifecycle ---

    async def initialize(self) -> OperationResult:
        """
        Loads the dashboard. Without an active session this only records a
        redirect to the sign-in page and issues no record queries.
        """
        if self.coordinator.current_user is None:
            await self.coordinator.initialize(requires_auth=True)
        session = self.coordinator.current_user
        if session is None:
            self.redirect = Redirect(target="login")
            return OperationResult.fail(AuthError(NOT_SIGNED_IN, "session_missing"))

        self.user_info = UserInfo.from_session(session)
        await self.list()
        self.stats = self.compute_stats()
        self.initialized = True
        return OperationResult.ok(self.students)

    def close(self) -> None:
        self._unregister()

    async def _on_session_event(self, event: SessionEvent, session: Optional[Session]) -> None:
        if event == SessionEvent.SIGNED_OUT:
            self.students = []
            self.stats = self.compute_stats()
            self.form = EditFormState()
            self.confirmation = None
            self.initialized = False
            self.redirect = Redirect(target="login", delay=self.redirect_delay)
        elif session is not None:
            self.user_info = UserInfo.from_session(session)

    def _require_session(self) -> Optional[Session]:
        session = self.coordinator.current_user
        if session is None:
            self.redirect = Redirect(target="login")
            self.notifications.error(NOT_SIGNED_IN)
        return session

    # --- Data Operations ---

    async def list(self) -> OperationResult:
        """Fetches the teacher's students, newest first, into the cache."""
        session = self._require_session()
        if session is None:
            return OperationResult.fail(AuthError(NOT_SIGNED_IN, "session_missing"))

        table = self.provider.table(STUDENTS_TABLE)
        response = await call_provider(table.select, {OWNER_COLUMN: session.user_id}, NEWEST_FIRST)
        if not response.ok:
            logger.error(f"Error loading students: {response.error.message}")
            self.notifications.error(LOAD_ERROR)
            return OperationResult.fail(DataAccessError(response.error.message, response.error.code))

        try:
            students = [Student.model_validate(row) for row in response.data or []]
        except ValidationError as e:
            logger.error(f"Error loading students: malformed row from provider: {e}")
            self.notifications.error(LOAD_ERROR)
            return OperationResult.fail(DataAccessError(LOAD_ERROR, "malformed_row"))

        self.students = students
        return OperationResult.ok(self.students)

    async def refresh(self) -> OperationResult:
        result = await self.list()
        self.stats = self.compute_stats()
        return result

    async def save(self, record: Union[StudentForm, Mapping[str, Any]]) -> OperationResult:
        """
        Inserts a new student (no id) or updates an existing one (id present).
        The owner is always the signed-in teacher, whatever the input says.
        """
        session = self._require_session()
        if session is None:
            return OperationResult.fail(AuthError(NOT_SIGNED_IN, "session_missing"))

        if not isinstance(record, StudentForm):
            try:
                record = StudentForm.model_validate(dict(record))
            except ValidationError as e:
                return OperationResult.fail(DataAccessError(_first_error(e), "validation"))

        payload = record.model_dump(exclude={"id"})
        payload[OWNER_COLUMN] = session.user_id
        table = self.provider.table(STUDENTS_TABLE)

        if record.is_new:
            response = await call_provider(table.insert, [payload])
        else:
            response = await call_provider(
                table.update, payload, {"id": record.id, OWNER_COLUMN: session.user_id}
            )
            if response.ok and not response.data:
                logger.warning(f"Update matched no student {record.id} for teacher {session.user_id}")
                return OperationResult.fail(DataAccessError(NOT_FOUND, "not_found"))

        if not response.ok:
            logger.error(f"Error saving student: {response.error.message}")
            return OperationResult.fail(DataAccessError(response.error.message, response.error.code))

        await self.refresh()
        return OperationResult.ok(response.data)

    async def delete(self, record_id: str) -> OperationResult:
        """Deletes one of the teacher's students. Callers confirm with the user first."""
        session = self._require_session()
        if session is None:
            return OperationResult.fail(AuthError(NOT_SIGNED_IN, "session_missing"))

        table = self.provider.table(STUDENTS_TABLE)
        response = await call_provider(table.delete, {"id": record_id, OWNER_COLUMN: session.user_id})
        if not response.ok:
            logger.error(f"Error deleting student: {response.error.message}")
            return OperationResult.fail(DataAccessError(response.error.message, response.error.code))
        if not response.data:
            logger.warning(f"Delete matched no student {record_id} for teacher {session.user_id}")
            return OperationResult.fail(DataAccessError(NOT_FOUND, "not_found"))

        await self.refresh()
        return OperationResult.ok(response.data)

    async def logout(self) -> OperationResult:
        response = await call_provider(self.provider.sign_out)
        if not response.ok:
            logger.error(f"Logout error: {response.error.message}")
            self.notifications.error(LOGOUT_ERROR)
            return OperationResult.fail(AuthError(response.error.message, response.error.code))

        self.notifications.info("Logging out...")
        # The SIGNED_OUT listener has already cleared the roster; make sure the
        # page leaves even if the provider emitted nothing.
        if self.redirect is None:
            self.redirect = Redirect(target="login", delay=self.redirect_delay)
        return OperationResult.ok()

    # --- Confirmation Step ---

    def request_delete(self, record_id: str) -> PendingConfirmation:
        self.confirmation = PendingConfirmation(action="delete", record_id=record_id, prompt=DELETE_PROMPT)
        return self.confirmation

    def request_logout(self) -> PendingConfirmation:
        self.confirmation = PendingConfirmation(action="logout", prompt=LOGOUT_PROMPT)
        return self.confirmation

    async def resolve_confirmation(self, decision: bool) -> OperationResult:
        pending, self.confirmation = self.confirmation, None
        if pending is None:
            return OperationResult.fail(DataAccessError("Nothing is awaiting confirmation", "no_confirmation"))
        if not decision:
            # Declining is not an error: no notification, nothing changes.
            logger.debug(f"User declined {pending.action}")
            return OperationResult.fail(UserCancelled())

        if pending.action == "logout":
            return await self.logout()

        result = await self.delete(pending.record_id)
        if result.success:
            self.notifications.success("Student deleted successfully")
        else:
            self.notifications.error(DELETE_ERROR)
        return result

    # --- Modal Form ---

    def begin_create(self) -> EditFormState:
        self.form = EditFormState(
            phase=EditPhase.EDITING,
            editing_id=None,
            title="Add New Student",
            submit_label="Save Student",
            fields={name: "" for name in FORM_FIELDS},
        )
        return self.form

    def begin_edit(self, record_id: str) -> Optional[EditFormState]:
        """Opens the modal on a cached student. Unknown ids leave the form untouched."""
        student = next((s for s in self.students if s.id == record_id), None)
        if student is None:
            return None

        self.form = EditFormState(
            phase=EditPhase.EDITING,
            editing_id=student.id,
            title="Edit Student",
            submit_label="Update Student",
            fields={name: getattr(student, name) or "" for name in FORM_FIELDS},
        )
        return self.form

    def close_modal(self) -> None:
        self.form = EditFormState()

    async def handle_form_submit(self, fields: Mapping[str, Any]) -> OperationResult:
        """
        Submits the open modal. The record id comes from the form state, not
        from the submitted fields.
        """
        if self.form.phase != EditPhase.EDITING:
            self.notifications.error("No student form is open")
            return OperationResult.fail(DataAccessError("No student form is open", "form_closed"))

        editing_id = self.form.editing_id
        submitted = {
            name: "" if value is None else str(value)
            for name, value in fields.items()
            if name in FORM_FIELDS and name != "id"
        }
        self.form.fields = {**self.form.fields, **submitted}
        self.form.phase = EditPhase.SUBMITTING

        try:
            record = StudentForm.model_validate({**submitted, "id": editing_id})
        except ValidationError as e:
            self.form.phase = EditPhase.EDITING
            message = f"{SAVE_ERROR}: {_first_error(e)}"
            self.notifications.error(message)
            return OperationResult.fail(DataAccessError(message, "validation"))

        result = await self.save(record)
        if result.success:
            self.notifications.success(
                "Student added successfully" if editing_id is None else "Student updated successfully"
            )
            self.close_modal()
        else:
            self.form.phase = EditPhase.EDITING
            self.notifications.error(SAVE_ERROR)
        return result

    # --- Derived View ---

    def compute_stats(self) -> DashboardStats:
        return DashboardStats(
            totalStudents=len(self.students),
            activeClasses=len({student.grade for student in self.students}),
        )

    def render_view(self) -> str:
        return render_students_table(self.students)

    def consume_redirect(self) -> Optional[Redirect]:
        redirect, self.redirect = self.redirect, None
        return redirect or self.coordinator.consume_redirect()

    def render_state(self) -> DashboardRenderState:
        return DashboardRenderState(
            user=self.user_info,
            stats=self.stats,
            students=self.students,
            table_html=self.render_view(),
            modal=self.form,
            confirmation=self.confirmation,
            notification=self.notifications.current(),
            redirect=self.consume_redirect(),
        )

    def export_csv(self) -> str:
        """The cached roster as CSV, in the same order as the table."""
        export_data = [
            {
                "Name": s.name,
                "Email": s.email,
                "Grade": s.grade,
                "Subject": s.subject or "",
                "Parent/Guardian": s.parent or "",
                "Phone": s.phone or "",
                "Notes": s.notes or "",
                "Added": s.created_at.isoformat() if s.created_at else "",
            }
            for s in self.students
        ]
        df = pd.DataFrame(export_data) if export_data else pd.DataFrame(columns=EXPORT_COLUMNS)
        return df.to_csv(index=False)


def _first_error(error: ValidationError) -> str:
    first: Dict[str, Any] = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "form"
    return f"{location}: {first.get('msg', 'invalid value')}"
