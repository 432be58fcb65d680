# /app/services/providers/sql_provider.py

"""
A `DataProvider` backed by the application's own SQL database.

`SQLStore` owns the shared pieces (session factory, password hasher, session
lifetime) and hands out one `SQLProvider` client per browser session via
`SQLStore.client()`. All SQLAlchemy work is synchronous and runs on a worker
thread so the event loop stays responsive while a query is in flight.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...core.security import PasswordHasher, generate_token
from ...db.models.student_models import Student as StudentRow
from ...db.models.user_models import AuthSession, User
from ...models.session_model import Session, SessionEvent
from .base import DataProvider, Filters, OrderBy, ProviderError, ProviderResponse, TableGateway

logger = logging.getLogger(__name__)

# table name -> (model, id prefix)
TABLE_MODELS: Dict[str, Tuple[Type, str]] = {
    "students": (StudentRow, "stu"),
}

INVALID_CREDENTIALS = "Invalid login credentials"
USER_EXISTS = "User already registered"
SESSION_EXPIRED = "Session expired"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back as naive datetimes.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _row_to_dict(obj) -> Dict[str, Any]:
    return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}


def _db_error(exc: SQLAlchemyError) -> ProviderError:
    orig = getattr(exc, "orig", None)
    code = "constraint_violation" if isinstance(exc, IntegrityError) else "db_error"
    return ProviderError(str(orig) if orig is not None else str(exc), code=code)


async def _run(fn: Callable[..., ProviderResponse], *args) -> ProviderResponse:
    """Runs a synchronous unit of work off the loop, turning DB failures into values."""
    try:
        return await asyncio.to_thread(fn, *args)
    except SQLAlchemyError as e:
        logger.error(f"Database operation {getattr(fn, '__name__', fn)} failed: {e}")
        return ProviderResponse(error=_db_error(e))


class SQLStore:
    """Process-wide state shared by every `SQLProvider` client."""

    def __init__(
        self,
        session_factory: sessionmaker,
        hasher: Optional[PasswordHasher] = None,
        session_ttl: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.session_factory = session_factory
        self.hasher = hasher or PasswordHasher()
        self.session_ttl = session_ttl
        self.clock = clock

    def client(self) -> "SQLProvider":
        return SQLProvider(self)

    # --- Synchronous units of work ---

    def create_user(self, email: str, password: str, full_name: str, school_name: str) -> ProviderResponse:
        email = email.strip().lower()
        with self.session_factory() as db:
            if db.query(User).filter(User.email == email).first():
                return ProviderResponse(error=ProviderError(USER_EXISTS, code="user_already_exists"))
            user = User(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=self.hasher.hash(password),
                full_name=full_name,
                school_name=school_name,
            )
            db.add(user)
            db.commit()
            return ProviderResponse(data={
                "user": {"id": user.id, "email": user.email, "full_name": full_name, "school_name": school_name},
                "session": None,
            })

    def open_session(self, email: str, password: str) -> ProviderResponse:
        with self.session_factory() as db:
            user = db.query(User).filter(User.email == email.strip().lower()).first()
            if not user or not self.hasher.verify(password, user.password_hash):
                return ProviderResponse(error=ProviderError(INVALID_CREDENTIALS, code="invalid_credentials"))
            record = AuthSession(
                access_token=generate_token(),
                refresh_token=generate_token(),
                user_id=user.id,
                expires_at=self.clock() + self.session_ttl,
            )
            db.add(record)
            db.commit()
            return ProviderResponse(data=self._to_session(user, record))

    def lookup_session(self, access_token: str) -> ProviderResponse:
        with self.session_factory() as db:
            record = db.query(AuthSession).filter(AuthSession.access_token == access_token).first()
            if not record or _as_utc(record.expires_at) <= self.clock():
                return ProviderResponse(error=ProviderError(SESSION_EXPIRED, code="session_expired"))
            return ProviderResponse(data=self._to_session(record.user, record))

    def extend_session(self, refresh_token: str) -> ProviderResponse:
        with self.session_factory() as db:
            record = db.query(AuthSession).filter(AuthSession.refresh_token == refresh_token).first()
            if not record:
                return ProviderResponse(error=ProviderError(SESSION_EXPIRED, code="session_expired"))
            record.expires_at = self.clock() + self.session_ttl
            db.commit()
            return ProviderResponse(data=self._to_session(record.user, record))

    def revoke_session(self, access_token: str) -> ProviderResponse:
        with self.session_factory() as db:
            db.query(AuthSession).filter(AuthSession.access_token == access_token).delete()
            db.commit()
        return ProviderResponse()

    @staticmethod
    def _to_session(user: User, record: AuthSession) -> Session:
        return Session(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            school_name=user.school_name,
            access_token=record.access_token,
            refresh_token=record.refresh_token,
            expires_at=_as_utc(record.expires_at),
        )


class SQLTable(TableGateway):
    def __init__(self, store: SQLStore, model: Type, id_prefix: str):
        self.store = store
        self.model = model
        self.id_prefix = id_prefix
        self.columns = {c.name for c in model.__table__.columns}

    def _unknown_columns(self, keys) -> Optional[ProviderError]:
        unknown = sorted(set(keys) - self.columns)
        if unknown:
            table = self.model.__tablename__
            return ProviderError(f"column {table}.{unknown[0]} does not exist", code="undefined_column")
        return None

    def _query(self, db, filters: Filters):
        query = db.query(self.model)
        for column, value in filters.items():
            query = query.filter(getattr(self.model, column) == value)
        return query

    async def select(self, filters: Filters, order: Optional[OrderBy] = None) -> ProviderResponse:
        keys = list(filters) + ([order.column] if order else [])
        error = self._unknown_columns(keys)
        if error:
            return ProviderResponse(error=error)

        def work() -> ProviderResponse:
            with self.store.session_factory() as db:
                query = self._query(db, filters)
                if order:
                    column = getattr(self.model, order.column)
                    query = query.order_by(column.asc() if order.ascending else column.desc())
                return ProviderResponse(data=[_row_to_dict(obj) for obj in query.all()])

        return await _run(work)

    async def insert(self, rows: List[Dict[str, Any]]) -> ProviderResponse:
        for row in rows:
            error = self._unknown_columns(row)
            if error:
                return ProviderResponse(error=error)

        def work() -> ProviderResponse:
            with self.store.session_factory() as db:
                created = []
                for row in rows:
                    record = dict(row)
                    if not record.get("id"):
                        record["id"] = f"{self.id_prefix}_{uuid.uuid4().hex[:12]}"
                    obj = self.model(**record)
                    db.add(obj)
                    created.append(obj)
                db.commit()
                return ProviderResponse(data=[_row_to_dict(obj) for obj in created])

        return await _run(work)

    async def update(self, row: Dict[str, Any], filters: Filters) -> ProviderResponse:
        error = self._unknown_columns(list(row) + list(filters))
        if error:
            return ProviderResponse(error=error)

        def work() -> ProviderResponse:
            with self.store.session_factory() as db:
                matched = self._query(db, filters).all()
                for obj in matched:
                    for key, value in row.items():
                        if key != "id":
                            setattr(obj, key, value)
                db.commit()
                return ProviderResponse(data=[_row_to_dict(obj) for obj in matched])

        return await _run(work)

    async def delete(self, filters: Filters) -> ProviderResponse:
        error = self._unknown_columns(filters)
        if error:
            return ProviderResponse(error=error)
        if not filters:
            return ProviderResponse(error=ProviderError("DELETE requires a filter", code="missing_filter"))

        def work() -> ProviderResponse:
            with self.store.session_factory() as db:
                matched = self._query(db, filters).all()
                deleted = [_row_to_dict(obj) for obj in matched]
                for obj in matched:
                    db.delete(obj)
                db.commit()
                return ProviderResponse(data=deleted)

        return await _run(work)


class SQLProvider(DataProvider):
    """One browser's view of the SQL store."""

    def __init__(self, store: SQLStore):
        super().__init__()
        self.store = store

    async def sign_up(self, email: str, password: str, full_name: str, school_name: str) -> ProviderResponse:
        if not password:
            return ProviderResponse(error=ProviderError("Password cannot be empty", code="weak_password"))
        return await _run(self.store.create_user, email, password, full_name, school_name)

    async def sign_in(self, email: str, password: str) -> ProviderResponse:
        response = await _run(self.store.open_session, email, password)
        if response.ok:
            self._session = response.data
            await self._emit_session_change(SessionEvent.SIGNED_IN, self._session)
        return response

    async def sign_out(self) -> ProviderResponse:
        if self._session is None:
            return ProviderResponse()
        response = await _run(self.store.revoke_session, self._session.access_token)
        if response.ok:
            self._session = None
            await self._emit_session_change(SessionEvent.SIGNED_OUT, None)
        return response

    async def get_current_session(self) -> ProviderResponse:
        if self._session is None:
            return ProviderResponse(data=None)
        response = await _run(self.store.lookup_session, self._session.access_token)
        if response.error and response.error.code == "session_expired":
            return await self._drop_session(SESSION_EXPIRED)
        if response.ok:
            self._session = response.data
        return response

    async def set_session(self, access_token: str) -> ProviderResponse:
        response = await _run(self.store.lookup_session, access_token)
        if response.ok:
            self._session = response.data
        return response

    async def refresh_session(self) -> ProviderResponse:
        if self._session is None or not self._session.refresh_token:
            return ProviderResponse(error=ProviderError("No session to refresh", code="session_missing"))
        response = await _run(self.store.extend_session, self._session.refresh_token)
        if response.ok:
            self._session = response.data
            await self._emit_session_change(SessionEvent.TOKEN_REFRESHED, self._session)
        return response

    def table(self, name: str) -> TableGateway:
        if name not in TABLE_MODELS:
            raise ValueError(f"Unknown table: {name}")
        model, prefix = TABLE_MODELS[name]
        return SQLTable(self.store, model, prefix)
