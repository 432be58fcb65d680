# /app/db/database.py

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .base_class import Base


def build_engine(database_url: str) -> Engine:
    """Creates the SQLAlchemy engine for the given URL."""
    # The 'check_same_thread' argument is only needed for SQLite, where queries
    # run on worker threads rather than the thread that opened the connection.
    engine_args = {"connect_args": {"check_same_thread": False}} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, **engine_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    # Each instance produced by the factory is one unit of work.
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Creates every table registered on Base. Safe to call repeatedly."""
    # Importing the registry makes sure every model is attached to Base.
    from . import base  # noqa: F401

    Base.metadata.create_all(bind=engine)
