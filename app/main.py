# /app/main.py

# --- Core FastAPI Imports ---
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# --- Application-specific Imports ---
from .core.config import Settings, get_settings
from .core.logging_config import configure_logging
from .routers import auth_router, dashboard_router, students_router
from .services.providers.factory import ProviderFactory, build_provider_factory
from .services.workspace_service import WorkspaceRegistry


def create_app(
    settings: Optional[Settings] = None,
    provider_factory: Optional[ProviderFactory] = None,
) -> FastAPI:
    """
    Builds the application. Tests pass their own settings and provider
    factory; in production both come from the environment.
    """
    settings = settings or get_settings()

    # --- Application Lifecycle Management ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # This code runs ONCE when the application starts up.
        configure_logging(settings.log_level)
        factory, cleanup = provider_factory, None
        if factory is None:
            factory, cleanup = build_provider_factory(settings)
        app.state.registry = WorkspaceRegistry(factory, settings)
        yield
        # This code runs ONCE when the application shuts down.
        await app.state.registry.close()
        if cleanup is not None:
            await cleanup()

    # --- FastAPI Application Instance Creation ---
    app = FastAPI(
        title="Teacher Dashboard API",
        description="Sign-in and student roster management for the teacher dashboard.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # --- Middleware Configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- API Router Inclusion ---
    app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(dashboard_router.router, prefix="/api/dashboard", tags=["Dashboard"])
    app.include_router(students_router.router, prefix="/api/students", tags=["Students"])

    # --- Root / Health Check Endpoint ---
    @app.get("/", tags=["Health Check"])
    async def read_root():
        """A simple health check endpoint to confirm the API is online."""
        return {"status": "Teacher Dashboard API is running!", "version": app.version}

    return app


app = create_app()
