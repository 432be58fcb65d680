# /app/services/session_service.py

"""
This service owns "who is signed in" for one browser session.

It asks the provider for an existing session at startup, subscribes to the
provider's session-change notifications, and reacts to them with side
effects the presentation layer acts on: a delayed redirect to the dashboard
after sign-in, and a reset of the sign-in page after sign-out. Other
components observe the same events through `register_listener` instead of
polling.

Every public operation returns an `OperationResult`; provider failures are
shown as a single error notification and never raised.
"""

import inspect
import logging
from typing import Callable, Dict, List, Optional

from ..core.errors import AuthError
from ..models.dashboard_model import AuthRenderState, OperationResult, Redirect
from ..models.session_model import Session, SessionEvent, UserInfo
from .notification_service import NotificationCenter
from .providers.base import DataProvider, ProviderResponse, SessionCallback, call_provider

logger = logging.getLogger(__name__)

LOGIN_SUCCESS = "Login successful! Redirecting..."
SIGNUP_SUCCESS = "Account created successfully! Please check your email to verify your account."
LOGOUT_SUCCESS = "Logged out successfully"
AUTH_FORMS = ("login", "signup")


class SessionCoordinator:
    def __init__(
        self,
        provider: DataProvider,
        notifications: NotificationCenter,
        redirect_delay: float = 1.0,
    ):
        self.provider = provider
        self.notifications = notifications
        self.redirect_delay = redirect_delay

        self._session: Optional[Session] = None
        self._listeners: List[SessionCallback] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

        # Sign-in page state: which tab is shown and the non-secret inputs
        # the user last submitted on each.
        self.active_form = "login"
        self.forms: Dict[str, Dict[str, str]] = {name: {} for name in AUTH_FORMS}
        self.redirect: Optional[Redirect] = None

    # --- Lifecycle ---

    async def initialize(self, requires_auth: bool = False) -> OperationResult:
        """
        Loads any existing session. On a page that requires authentication,
        a missing session produces a redirect to the sign-in page instead.
        """
        response = await call_provider(self.provider.get_current_session)
        session = response.data if response.ok else None

        if session is None and requires_auth:
            self.redirect = Redirect(target="login")
            reason = response.error.message if response.error else "Not signed in"
            logger.info(f"No active session on an authenticated page: {reason}")
            code = response.error.code if response.error else "session_missing"
            return OperationResult.fail(AuthError(reason, code))

        self._session = session
        self._ensure_subscribed()
        return OperationResult.ok(session)

    def _ensure_subscribed(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.provider.on_session_change(self.on_session_changed)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    async def on_session_changed(self, event: SessionEvent, session: Optional[Session]) -> None:
        """Called by the provider on sign-in, sign-out, and token refresh."""
        logger.debug(f"Session event {event.value} for {session.user_id if session else 'nobody'}")
        self._session = session
        await self._notify_listeners(event, session)

        if event == SessionEvent.SIGNED_IN:
            # Leave the success message on screen briefly before navigating.
            self.redirect = Redirect(target="dashboard", delay=self.redirect_delay)
        elif event == SessionEvent.SIGNED_OUT:
            self._reset_auth_view()

    def _reset_auth_view(self) -> None:
        self.forms = {name: {} for name in AUTH_FORMS}
        self.active_form = "login"

    # --- Listeners ---

    def register_listener(self, callback: SessionCallback) -> Callable[[], None]:
        """Adds an observer for session events. Returns a function that removes it."""
        self._listeners.append(callback)

        def unregister() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unregister

    async def _notify_listeners(self, event: SessionEvent, session: Optional[Session]) -> None:
        for callback in list(self._listeners):
            try:
                outcome = callback(event, session)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                # One broken observer must not starve the others.
                logger.exception(f"Session listener {callback!r} failed on {event.value}")

    # --- Account Operations ---

    def _failed(self, response: ProviderResponse) -> OperationResult:
        self.notifications.error(response.error.message)
        return OperationResult.fail(AuthError(response.error.message, response.error.code))

    async def login(self, email: str, password: str) -> OperationResult:
        self._ensure_subscribed()
        self.forms["login"] = {"email": email}
        response = await call_provider(self.provider.sign_in, email, password)
        if not response.ok:
            return self._failed(response)

        self._session = response.data
        self.notifications.success(LOGIN_SUCCESS)
        return OperationResult.ok(response.data)

    async def signup(self, email: str, password: str, full_name: str, school_name: str) -> OperationResult:
        self._ensure_subscribed()
        self.forms["signup"] = {"email": email, "full_name": full_name, "school_name": school_name}
        response = await call_provider(self.provider.sign_up, email, password, full_name, school_name)
        if not response.ok:
            return self._failed(response)

        self.notifications.success(SIGNUP_SUCCESS)
        return OperationResult.ok(response.data)

    async def logout(self) -> OperationResult:
        response = await call_provider(self.provider.sign_out)
        if not response.ok:
            return self._failed(response)

        self._session = None
        self.notifications.success(LOGOUT_SUCCESS)
        return OperationResult.ok()

    async def refresh(self) -> OperationResult:
        response = await call_provider(self.provider.refresh_session)
        if not response.ok:
            return self._failed(response)
        return OperationResult.ok(response.data)

    # --- Queries ---

    @property
    def current_user(self) -> Optional[Session]:
        return self._session

    def is_authenticated(self) -> bool:
        return self._session is not None

    def show_auth_form(self, form: str) -> None:
        if form not in AUTH_FORMS:
            raise ValueError(f"Unknown auth form: {form}")
        self.active_form = form

    def consume_redirect(self) -> Optional[Redirect]:
        """Returns the pending redirect once; the presentation layer performs it."""
        redirect, self.redirect = self.redirect, None
        return redirect

    def render_state(self) -> AuthRenderState:
        return AuthRenderState(
            authenticated=self.is_authenticated(),
            user=UserInfo.from_session(self._session) if self._session else None,
            active_form=self.active_form,
            notification=self.notifications.current(),
            redirect=self.consume_redirect(),
        )
