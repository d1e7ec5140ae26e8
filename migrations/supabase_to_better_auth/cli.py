import asyncio
import logging

import typer
from sqlalchemy import func, select

from db.config import Settings
from db.models.auth import Account, User
from migrations.supabase_to_better_auth.capabilities import AuthCapabilities
from migrations.supabase_to_better_auth.connections import MigrationConnections
from migrations.supabase_to_better_auth.migrator import log_summary, migrate_users
from migrations.supabase_to_better_auth.paginator import SupabaseUserPaginator
from migrations.supabase_to_better_auth.state import CheckpointStore, MigrationStateManager

# Set up logging with more detailed format
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer()


def _load_settings(source_uri: str | None, target_uri: str | None, **overrides) -> Settings:
    """Environment / .env settings with command line values taking precedence."""
    if source_uri:
        overrides["source_postgres_uri"] = source_uri
    if target_uri:
        overrides["target_postgres_uri"] = target_uri
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


@app.command()
def migrate(
    source_uri: str | None = typer.Option(None, help="Supabase PostgreSQL URI (defaults to SOURCE_POSTGRES_URI)"),
    target_uri: str | None = typer.Option(None, help="Better Auth PostgreSQL URI (defaults to TARGET_POSTGRES_URI)"),
    batch_size: int | None = typer.Option(None, min=1, help="Users per fetch/write cycle (default 5000)"),
    resume_from_id: str | None = typer.Option(None, help="Only migrate users whose id is greater than this id"),
    resume: bool = typer.Option(
        False,
        "--resume",
        "-r",
        help="Resume after the last processed id recorded in the checkpoint file",
    ),
    checkpoint_path: str | None = typer.Option(None, help="JSON checkpoint file written after every batch"),
):
    """Migrate Supabase auth users into Better Auth.

    Examples:
      # Full migration
      python -m migrations.supabase_to_better_auth migrate --checkpoint-path migration_state.json

      # Continue an interrupted run
      python -m migrations.supabase_to_better_auth migrate --checkpoint-path migration_state.json --resume
    """
    settings = _load_settings(source_uri, target_uri, batch_size=batch_size, checkpoint_path=checkpoint_path)

    if resume:
        if not settings.checkpoint_path:
            logger.error("--resume needs a checkpoint file (--checkpoint-path or CHECKPOINT_PATH)")
            raise typer.Exit(code=1)
        checkpoint_id = CheckpointStore(settings.checkpoint_path).last_processed_id()
        if checkpoint_id:
            resume_from_id = checkpoint_id
        else:
            logger.warning("Checkpoint has no processed id yet, starting from the beginning")

    resume_from_id = resume_from_id or settings.resume_from_id
    state_manager = MigrationStateManager()

    try:
        asyncio.run(migrate_users(settings, state_manager, resume_from_id=resume_from_id, show_progress=True))
    except Exception as e:
        logger.error(f"Migration failed: {str(e)}")
        log_summary(state_manager.get_state())
        raise typer.Exit(code=1)

    typer.echo(f"Migration {state_manager.status}.")


@app.command()
def status(
    source_uri: str | None = typer.Option(None, help="Supabase PostgreSQL URI (defaults to SOURCE_POSTGRES_URI)"),
    target_uri: str | None = typer.Option(None, help="Better Auth PostgreSQL URI (defaults to TARGET_POSTGRES_URI)"),
):
    """Compare source user count with rows already present in the Better Auth tables"""
    settings = _load_settings(source_uri, target_uri)

    async def run_status():
        async with MigrationConnections(settings.source_postgres_uri, settings.target_postgres_uri) as connections:
            source_users = await SupabaseUserPaginator(connections.source_engine).count_users()
            async with connections.target_engine.connect() as conn:
                target_users = await conn.scalar(select(func.count()).select_from(User.__table__))
                target_accounts = await conn.scalar(select(func.count()).select_from(Account.__table__))
            return source_users, target_users or 0, target_accounts or 0

    try:
        source_users, target_users, target_accounts = asyncio.run(run_status())
    except Exception as e:
        logger.exception(f"Status check failed: {str(e)}")
        raise typer.Exit(code=1)

    typer.echo(f"🔌 Target {AuthCapabilities.from_settings(settings).describe()}")
    typer.echo(f"👤 Supabase users:      {source_users:,}")
    typer.echo(f"👤 Better Auth users:   {target_users:,}")
    typer.echo(f"🔑 Better Auth accounts: {target_accounts:,}")
    if source_users:
        typer.echo(f"📈 Overall progress: {target_users / source_users * 100:.1f}% (skipped users are never written)")

    if settings.checkpoint_path:
        state = CheckpointStore(settings.checkpoint_path).load()
        if state:
            typer.echo(f"💾 Checkpoint: {state.status}, last processed id {state.lastProcessedId}")


if __name__ == "__main__":
    app()
