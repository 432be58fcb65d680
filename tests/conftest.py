# /tests/conftest.py

import pytest

from app.core.security import PasswordHasher
from app.db.database import build_engine, build_session_factory, create_tables
from app.services.notification_service import NotificationCenter
from app.services.providers.sql_provider import SQLStore
from app.services.record_sync_service import RecordSyncManager
from app.services.session_service import SessionCoordinator

TEACHER_EMAIL = "teacher@example.com"
TEACHER_PASSWORD = "secret123"
OTHER_EMAIL = "other@example.com"


class FakeClock:
    """A monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# --- Test Data Fixtures ---

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sql_store(tmp_path):
    """
    A fresh SQLite-backed store for EACH test function, stored in a temporary
    directory. bcrypt runs at its minimum cost to keep the suite fast.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'dashboard.db'}")
    create_tables(engine)
    yield SQLStore(build_session_factory(engine), hasher=PasswordHasher(rounds=4))
    engine.dispose()


@pytest.fixture
def provider(sql_store):
    return sql_store.client()


@pytest.fixture
async def teacher_account(sql_store):
    response = await sql_store.client().sign_up(TEACHER_EMAIL, TEACHER_PASSWORD, "Jane Doe", "Maple High")
    assert response.ok
    return response.data["user"]


@pytest.fixture
async def other_account(sql_store):
    response = await sql_store.client().sign_up(OTHER_EMAIL, TEACHER_PASSWORD, "Sam Roe", "Oak Middle")
    assert response.ok
    return response.data["user"]


@pytest.fixture
def coordinator(provider, clock):
    return SessionCoordinator(provider, NotificationCenter(5.0, clock=clock), redirect_delay=1.0)


@pytest.fixture
def manager(provider, coordinator, clock):
    return RecordSyncManager(provider, coordinator, NotificationCenter(3.0, clock=clock), redirect_delay=1.0)


@pytest.fixture
async def dashboard(teacher_account, coordinator, manager):
    """A record manager whose teacher is signed in and whose roster is loaded."""
    result = await coordinator.login(TEACHER_EMAIL, TEACHER_PASSWORD)
    assert result.success
    coordinator.consume_redirect()
    await manager.initialize()
    return manager
