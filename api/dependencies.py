"""
FastAPI Dependencies for API endpoints.

The migration state manager lives on ``app.state`` so every request of one
application shares the same run, while separate applications (and tests)
stay isolated.
"""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from db.config import Settings, get_settings
from migrations.supabase_to_better_auth.state import MigrationStateManager

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_state_manager(request: Request) -> MigrationStateManager:
    return request.app.state.migration_state


async def verify_api_password(
    api_key: str | None = Depends(api_key_header),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless it carries the configured API password.

    Open when no ``api_password`` is configured.
    """
    if not settings.api_password:
        return
    if not api_key or not secrets.compare_digest(api_key, settings.api_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
