# /app/services/workspace_service.py

"""
Wires one browser session's components together and finds them again on
later requests.

A `Workspace` holds what one open browser tab needs: a provider client, a
session coordinator, a record manager, and the notification areas of the
sign-in page and the dashboard. The `WorkspaceRegistry` builds workspaces on
demand and indexes them by access token. It follows session events itself:
a sign-in binds the new token and a sign-out forgets it.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.config import Settings
from ..models.session_model import Session, SessionEvent
from .notification_service import NotificationCenter
from .providers.base import DataProvider, call_provider
from .record_sync_service import RecordSyncManager
from .session_service import SessionCoordinator

logger = logging.getLogger(__name__)

MAX_WORKSPACES = 1000


@dataclass
class Workspace:
    provider: DataProvider
    auth_notifications: NotificationCenter
    dashboard_notifications: NotificationCenter
    coordinator: SessionCoordinator
    records: RecordSyncManager

    async def close(self) -> None:
        self.records.close()
        self.coordinator.close()
        await self.provider.close()


class WorkspaceRegistry:
    def __init__(
        self,
        provider_factory: Callable[[], DataProvider],
        settings: Settings,
        clock: Optional[Callable[[], float]] = None,
        max_workspaces: int = MAX_WORKSPACES,
    ):
        self.provider_factory = provider_factory
        self.settings = settings
        self.clock = clock
        self.max_workspaces = max_workspaces
        self._by_token: "OrderedDict[str, Workspace]" = OrderedDict()

    def _notification_center(self, timeout: float) -> NotificationCenter:
        if self.clock is None:
            return NotificationCenter(timeout)
        return NotificationCenter(timeout, clock=self.clock)

    async def open(self) -> Workspace:
        """Builds a fresh, signed-out workspace, as when a page first loads."""
        provider = self.provider_factory()
        auth_notifications = self._notification_center(self.settings.auth_notification_seconds)
        dashboard_notifications = self._notification_center(self.settings.dashboard_notification_seconds)
        coordinator = SessionCoordinator(
            provider, auth_notifications, redirect_delay=self.settings.redirect_delay_seconds
        )
        records = RecordSyncManager(
            provider, coordinator, dashboard_notifications, redirect_delay=self.settings.redirect_delay_seconds
        )
        workspace = Workspace(provider, auth_notifications, dashboard_notifications, coordinator, records)

        coordinator.register_listener(
            lambda event, session: self._follow_session(workspace, event, session)
        )
        await coordinator.initialize(requires_auth=False)
        return workspace

    async def resolve(self, access_token: Optional[str]) -> Optional[Workspace]:
        """
        Returns the workspace for a bearer token, adopting the token into a new
        workspace when this process has not seen it yet. Cached workspaces are
        checked with the provider on every call. None if the token is invalid
        or its session has expired.
        """
        if not access_token:
            return None
        workspace = self._by_token.get(access_token)
        if workspace is not None:
            return await self._revalidate(access_token, workspace)

        workspace = await self.open()
        response = await call_provider(workspace.provider.set_session, access_token)
        if not response.ok:
            logger.info(f"Rejected bearer token: {response.error.message}")
            await workspace.close()
            return None
        await workspace.coordinator.initialize(requires_auth=True)
        self._bind(access_token, workspace)
        return workspace

    async def _revalidate(self, access_token: str, workspace: Workspace) -> Optional[Workspace]:
        """Checks a cached workspace's session with the provider before reusing it."""
        response = await call_provider(workspace.provider.get_current_session)
        if response.ok and response.data is not None:
            self._by_token.move_to_end(access_token)
            return workspace

        expired = response.ok or response.error.code == "session_expired"
        if not expired:
            # Provider unavailable: keep the binding.
            logger.error(f"Could not revalidate session: {response.error.message}")
            self._by_token.move_to_end(access_token)
            return workspace

        # An expired session has already emitted SIGNED_OUT, which unbinds the token.
        logger.info(f"Session for token ending ...{access_token[-4:]} is no longer valid")
        self._unbind(workspace)
        await workspace.close()
        return None

    def _follow_session(self, workspace: Workspace, event: SessionEvent, session: Optional[Session]) -> None:
        if event == SessionEvent.SIGNED_OUT:
            self._unbind(workspace)
        elif session is not None:
            self._unbind(workspace)
            self._bind(session.access_token, workspace)

    def _bind(self, access_token: str, workspace: Workspace) -> None:
        self._by_token[access_token] = workspace
        self._by_token.move_to_end(access_token)
        while len(self._by_token) > self.max_workspaces:
            evicted_token, evicted = self._by_token.popitem(last=False)
            evicted.records.close()
            evicted.coordinator.close()
            logger.debug(f"Evicted idle workspace for token ending ...{evicted_token[-4:]}")

    def _unbind(self, workspace: Workspace) -> None:
        for token in [t for t, ws in self._by_token.items() if ws is workspace]:
            del self._by_token[token]

    def __len__(self) -> int:
        return len(self._by_token)

    async def close(self) -> None:
        for workspace in list(self._by_token.values()):
            await workspace.close()
        self._by_token.clear()
