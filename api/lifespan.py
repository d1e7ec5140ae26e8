"""Application lifecycle management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from db.config import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Handles:
    - Settings validation at startup
    - Stopping an in-flight migration on shutdown
    """
    # Startup logic
    settings = get_settings()
    logging.getLogger().setLevel(settings.logging_level)
    logging.info(f"{settings.app_name} {settings.version} ready")

    yield

    # Shutdown logic
    task: asyncio.Task | None = getattr(app.state, "migration_task", None)
    if task and not task.done():
        logging.warning("Shutting down with a migration in progress; resume from the last processed id")
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logging.info("Migration task cancelled")
