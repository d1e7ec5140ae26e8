import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

logger = logging.getLogger(__name__)


def _async_uri(uri: str) -> str:
    # Accept plain postgres:// URIs as copied from the Supabase dashboard
    for prefix in ("postgres://", "postgresql://"):
        if uri.startswith(prefix):
            return "postgresql+asyncpg://" + uri[len(prefix) :]
    return uri


class MigrationConnections:
    """Source and target engines, held for one migration run.

    Use as ``async with``: both engines are disposed on every exit path,
    including when the run raises.
    """

    def __init__(self, source_uri: str, target_uri: str, pool_size: int = 5, max_overflow: int = 10):
        self.source_uri = _async_uri(source_uri)
        self.target_uri = _async_uri(target_uri)
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.source_engine: AsyncEngine | None = None
        self.target_engine: AsyncEngine | None = None

    def _create_engine(self, uri: str) -> AsyncEngine:
        return create_async_engine(
            uri,
            echo=False,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_pre_ping=True,
            pool_recycle=300,
        )

    async def init_connections(self):
        """Create both engines and check connectivity."""
        try:
            self.source_engine = self._create_engine(self.source_uri)
            self.target_engine = self._create_engine(self.target_uri)
            for engine in (self.source_engine, self.target_engine):
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            logger.info("✅ Source and target database connections initialized")
        except Exception as e:
            logger.exception(f"Failed to initialize connections: {str(e)}")
            await self.close_connections()
            raise

    async def close_connections(self):
        """Close database connections"""
        for label, engine in (("source", self.source_engine), ("target", self.target_engine)):
            if engine is None:
                continue
            try:
                await engine.dispose()
            except Exception as e:
                logger.exception(f"Error closing {label} connection: {str(e)}")
        self.source_engine = None
        self.target_engine = None

    async def __aenter__(self) -> "MigrationConnections":
        await self.init_connections()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        logger.info("Cleaning up database connections...")
        await self.close_connections()
