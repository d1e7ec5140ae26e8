"""FastAPI application factory."""

from fastapi import FastAPI

from api import middleware
from api.lifespan import lifespan
from migrations.supabase_to_better_auth.state import MigrationStateManager


def create_app(state_manager: MigrationStateManager | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        state_manager: Migration state to expose; a fresh one when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Supabase to Better Auth Migrator",
        description="Resumable batch migration of Supabase auth users into Better Auth.",
        lifespan=lifespan,
    )

    app.state.migration_state = state_manager or MigrationStateManager()
    app.state.migration_task = None

    # Added last runs first: logging wraps timing so X-Process-Time is set when logged
    app.add_middleware(middleware.SecureHeadersMiddleware)
    app.add_middleware(middleware.TimingMiddleware)
    app.add_middleware(middleware.SecureLoggingMiddleware)

    # Register routers
    _register_routers(app)

    return app


def _register_routers(app: FastAPI) -> None:
    """Register all API routers.

    Args:
        app: FastAPI application instance.
    """
    # Import routers here to avoid circular imports
    from api.routers.migration import get_router as get_migration_router

    app.include_router(get_migration_router())  # supabase start, pause, status
