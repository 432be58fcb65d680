# /app/services/providers/base.py

"""
The contract every auth/data backend must satisfy.

The dashboard never talks to a database or HTTP API directly. It talks to a
`DataProvider`, which exposes account operations plus a small table gateway
(select/insert/update/delete with equality filters). Expected failures are
returned as values inside a `ProviderResponse`, never raised, so callers can
treat every outcome uniformly.

A provider instance plays the role of one browser's client: it remembers the
session it signed in (or adopted via `set_session`) and only notifies its own
subscribers about changes to that session. Shared resources such as the
database engine or HTTP connection pool live outside it and are passed in.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ...models.session_model import Session, SessionEvent

logger = logging.getLogger(__name__)

Filters = Dict[str, Any]
SessionCallback = Callable[[SessionEvent, Optional[Session]], Union[None, Awaitable[None]]]


@dataclass
class ProviderError:
    message: str
    code: Optional[str] = None


@dataclass
class ProviderResponse:
    data: Any = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OrderBy:
    column: str
    ascending: bool = True


class TableGateway(ABC):
    """Row operations on a single table. Filters are column == value."""

    @abstractmethod
    async def select(self, filters: Filters, order: Optional[OrderBy] = None) -> ProviderResponse: ...

    @abstractmethod
    async def insert(self, rows: List[Dict[str, Any]]) -> ProviderResponse: ...

    @abstractmethod
    async def update(self, row: Dict[str, Any], filters: Filters) -> ProviderResponse:
        """Returns the updated rows in `data`; an empty list means nothing matched."""

    @abstractmethod
    async def delete(self, filters: Filters) -> ProviderResponse:
        """Returns the deleted rows in `data`; an empty list means nothing matched."""


class DataProvider(ABC):
    """Auth and storage client shared by the session and record components."""

    def __init__(self) -> None:
        self._session: Optional[Session] = None
        self._session_callbacks: List[SessionCallback] = []

    # --- Auth ---

    @abstractmethod
    async def sign_up(self, email: str, password: str, full_name: str, school_name: str) -> ProviderResponse: ...

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> ProviderResponse:
        """On success `data` is the new `Session`, which becomes the current one."""

    @abstractmethod
    async def sign_out(self) -> ProviderResponse: ...

    @abstractmethod
    async def get_current_session(self) -> ProviderResponse:
        """`data` is the current, still-valid `Session`, or None when there is none."""

    @abstractmethod
    async def set_session(self, access_token: str) -> ProviderResponse:
        """Adopts a session issued earlier (e.g. a bearer token from a request)."""

    @abstractmethod
    async def refresh_session(self) -> ProviderResponse:
        """Extends the current session. Emits TOKEN_REFRESHED on success."""

    # --- Data ---

    @abstractmethod
    def table(self, name: str) -> TableGateway: ...

    # --- Session Change Notifications ---

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Subscribes to sign-in/sign-out/refresh events. Returns an unsubscribe function."""
        self._session_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._session_callbacks:
                self._session_callbacks.remove(callback)

        return unsubscribe

    async def _emit_session_change(self, event: SessionEvent, session: Optional[Session]) -> None:
        for callback in list(self._session_callbacks):
            outcome = callback(event, session)
            if outcome is not None:
                await outcome

    async def _drop_session(self, message: str) -> ProviderResponse:
        """Forgets an expired session, tells subscribers, and reports an auth error."""
        self._session = None
        await self._emit_session_change(SessionEvent.SIGNED_OUT, None)
        return ProviderResponse(error=ProviderError(message, code="session_expired"))

    async def close(self) -> None:
        """Releases resources owned by this client. Shared pools are left open."""


async def call_provider(operation: Callable[..., Awaitable[ProviderResponse]], *args) -> ProviderResponse:
    """
    Invokes a provider operation at a component boundary. Anything the
    provider raises instead of returning is logged and turned into an error
    value, so it never escapes as an unhandled fault.
    """
    try:
        return await operation(*args)
    except Exception as e:
        logger.exception(f"Provider call {getattr(operation, '__name__', operation)} raised")
        return ProviderResponse(error=ProviderError(str(e) or "Unexpected provider error", code="unexpected"))
