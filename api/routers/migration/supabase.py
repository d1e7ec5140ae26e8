"""Supabase migration control endpoints.

Start a migration in the background, pause it between batches, and poll its
progress.
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from api.dependencies import get_state_manager, verify_api_password
from db.config import Settings, get_settings
from db.schemas import MigrateRequest, MigrationConfig, MigrationStatusResponse
from migrations.supabase_to_better_auth.migrator import migrate_users
from migrations.supabase_to_better_auth.state import MigrationStateManager
from utils import const

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/supabase",
    tags=["Supabase Migration"],
    dependencies=[Depends(verify_api_password)],
)

STATUS_ERROR_LIMIT = 10


def _is_migration_active(request: Request, state_manager: MigrationStateManager) -> bool:
    task: asyncio.Task | None = getattr(request.app.state, "migration_task", None)
    return state_manager.is_running or (task is not None and not task.done())


async def _run_migration(
    settings: Settings,
    state_manager: MigrationStateManager,
    batch_size: int,
    resume_from_id: str | None,
):
    try:
        await migrate_users(settings, state_manager, batch_size=batch_size, resume_from_id=resume_from_id)
    except Exception as e:
        # Already recorded as failed in the state; surface it in the server log
        logger.error(f"Migration failed: {e}")


@router.get("/status", response_model=MigrationStatusResponse)
async def get_status(state_manager: MigrationStateManager = Depends(get_state_manager)):
    state = state_manager.get_state()
    return MigrationStatusResponse(
        **state.model_dump(exclude={"errors"}),
        errors=state.errors[:STATUS_ERROR_LIMIT],
        progress=f"{state_manager.get_progress()}%",
        eta=state_manager.get_eta(),
    )


@router.post("/migrate")
async def start_migration(
    request: Request,
    payload: MigrateRequest | None = Body(default=None),
    settings: Settings = Depends(get_settings),
    state_manager: MigrationStateManager = Depends(get_state_manager),
):
    if _is_migration_active(request, state_manager):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Migration already in progress",
                "state": state_manager.get_state().model_dump(mode="json"),
            },
            headers=const.NO_CACHE_HEADERS,
        )

    payload = payload or MigrateRequest()
    config = MigrationConfig(
        batchSize=payload.batchSize or settings.batch_size,
        resumeFromId=payload.resumeFromId or settings.resume_from_id,
        tempEmailDomain=settings.temp_email_domain,
    )

    # A task rather than BackgroundTasks keeps the run on the server's event loop
    request.app.state.migration_task = asyncio.create_task(
        _run_migration(settings, state_manager, config.batchSize, config.resumeFromId)
    )
    logger.info(f"Migration started (batch size {config.batchSize}, resume from {config.resumeFromId})")

    return {"message": "Migration started", "config": config.model_dump()}


@router.post("/pause")
async def pause_migration(state_manager: MigrationStateManager = Depends(get_state_manager)):
    if not state_manager.is_running:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"No running migration to pause (status: {state_manager.status})"},
            headers=const.NO_CACHE_HEADERS,
        )

    state_manager.pause()
    state = state_manager.get_state()
    return {
        "message": "Migration will pause after the current batch",
        "lastProcessedId": state.lastProcessedId,
    }
