# /app/services/providers/factory.py

"""
Builds the provider client factory the application uses, based on settings.

Returns the factory together with an async cleanup callable that releases the
shared resources (database engine or HTTP connection pool) at shutdown.
"""

import logging
from datetime import timedelta
from typing import Awaitable, Callable, Tuple

import httpx

from ...core.config import Settings
from ...db.database import build_engine, build_session_factory, create_tables
from .base import DataProvider
from .rest_provider import RestProvider
from .sql_provider import SQLStore

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], DataProvider]
Cleanup = Callable[[], Awaitable[None]]


def build_provider_factory(settings: Settings) -> Tuple[ProviderFactory, Cleanup]:
    if settings.provider == "rest":
        if not settings.rest_url or settings.rest_api_key is None:
            raise ValueError("DASHBOARD_REST_URL and DASHBOARD_REST_API_KEY are required for the rest provider")
        http = httpx.AsyncClient(base_url=settings.rest_url, timeout=settings.rest_timeout_seconds)
        api_key = settings.rest_api_key.get_secret_value()
        logger.info(f"Using hosted REST provider at {settings.rest_url}")

        async def close_http() -> None:
            await http.aclose()

        return (lambda: RestProvider(http, api_key)), close_http

    engine = build_engine(settings.database_url)
    create_tables(engine)
    store = SQLStore(
        build_session_factory(engine),
        session_ttl=timedelta(minutes=settings.session_ttl_minutes),
    )
    logger.info(f"Using SQL provider at {engine.url.render_as_string(hide_password=True)}")

    async def dispose_engine() -> None:
        engine.dispose()

    return store.client, dispose_engine
