"""
Batch migration of Supabase auth users into Better Auth.

Each batch is one fetch → transform → write → state update cycle. Batches
run strictly in cursor order; the fetch of batch n+1 overlaps with the write
of batch n, but its result is only consumed after batch n has been recorded.
"""

import asyncio
import contextlib
import logging
import time
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from tqdm.asyncio import tqdm

from db.config import Settings
from db.enums import MigrationStatus, SkipReason
from db.schemas import LinkedAccount, MigrationState, TransformedUser
from migrations.supabase_models import SupabaseUser
from migrations.supabase_to_better_auth.accounts import derive_accounts
from migrations.supabase_to_better_auth.capabilities import AuthCapabilities
from migrations.supabase_to_better_auth.connections import MigrationConnections
from migrations.supabase_to_better_auth.paginator import SupabaseUserPaginator
from migrations.supabase_to_better_auth.state import CheckpointStore, MigrationStateManager
from migrations.supabase_to_better_auth.transformer import UserTransformer
from migrations.supabase_to_better_auth.writer import BulkUserWriter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[MigrationState], None]


@dataclass
class BatchStats:
    """Outcome of one batch"""

    success: int = 0
    failure: int = 0
    skip: int = 0
    skip_reasons: Counter = field(default_factory=Counter)
    errors: list[tuple[str, str]] = field(default_factory=list)


class SupabaseUserMigrator:
    def __init__(
        self,
        paginator: SupabaseUserPaginator,
        transformer: UserTransformer,
        writer: BulkUserWriter,
        state_manager: MigrationStateManager,
        checkpoint: CheckpointStore | None = None,
        on_progress: ProgressCallback | None = None,
        show_progress: bool = False,
    ):
        self.paginator = paginator
        self.transformer = transformer
        self.writer = writer
        self.state_manager = state_manager
        self.checkpoint = checkpoint
        self.on_progress = on_progress
        self.show_progress = show_progress
        self.skip_reasons: Counter = Counter()

    async def process_batch(self, users: Sequence[SupabaseUser]) -> BatchStats:
        """Transform a batch and write it in a single transaction."""
        stats = BatchStats()
        valid_users: list[TransformedUser] = []
        accounts: list[LinkedAccount] = []
        supported_providers = self.transformer.capabilities.social_providers

        for user in users:
            try:
                result = self.transformer.transform(user)
                if isinstance(result, SkipReason):
                    stats.skip += 1
                    stats.skip_reasons[result] += 1
                    continue
                user_accounts = derive_accounts(user, result, supported_providers)
            except Exception as e:
                logger.error(f"Error transforming user {user.id}: {e}")
                stats.failure += 1
                stats.errors.append((user.id, f"transform: {e}"))
                continue

            valid_users.append(result)
            accounts.extend(user_accounts)

        if not valid_users:
            return stats

        write_result = await self.writer.write_batch(valid_users, accounts)
        stats.success += write_result.success_count
        stats.failure += write_result.failure_count
        if write_result.error:
            stats.errors.append(("bulk", write_result.error))
        return stats

    async def run(self, batch_size: int, resume_from_id: str | None = None) -> MigrationState:
        """Migrate every source user after ``resume_from_id`` and return the final state."""
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        state_manager = self.state_manager
        try:
            total_users = await self.paginator.count_users(resume_from_id)
            logger.info(f"🚀 Starting migration for {total_users:,} users (batch size: {batch_size:,})")
            if resume_from_id:
                logger.info(f"🔄 Resuming after user id {resume_from_id}")
            logger.info(f"🔌 Target {self.transformer.capabilities.describe()}")

            state_manager.start(total_users, batch_size)
            self.skip_reasons = Counter()
            total_batches = state_manager.get_state().totalBatches

            with tqdm(total=total_users, desc="Migrating users", disable=not self.show_progress) as pbar:
                batch = await self.paginator.fetch_batch(resume_from_id, batch_size)
                batch_number = 0
                paused = False

                while batch:
                    batch_number += 1
                    batch_start = time.monotonic()
                    has_more = len(batch) == batch_size
                    last_id = batch[-1].id

                    next_fetch = asyncio.create_task(self.paginator.fetch_batch(last_id, batch_size)) if has_more else None
                    try:
                        stats = await self.process_batch(batch)
                    except BaseException:
                        await _cancel(next_fetch)
                        raise

                    self._record_batch(len(batch), stats, last_id)
                    pbar.update(len(batch))
                    self._log_batch(batch_number, total_batches, len(batch), stats, time.monotonic() - batch_start)

                    if state_manager.status == MigrationStatus.PAUSED:
                        await _cancel(next_fetch)
                        logger.info(f"⏸️  Migration paused after batch {batch_number}; resume from {last_id}")
                        paused = True
                        break

                    batch = await next_fetch if next_fetch else []

            # A pause requested during the final fetch still finishes the run
            if not paused:
                state_manager.complete()
            self._save_checkpoint()
            final_state = state_manager.get_state()
            log_summary(final_state, self.skip_reasons)
            return final_state

        except Exception as e:
            logger.exception(f"Migration failed: {str(e)}")
            if not state_manager.is_terminal:
                state_manager.fail()
            self._save_checkpoint()
            raise
        except asyncio.CancelledError:
            logger.warning(f"Migration cancelled; resume from {state_manager.get_state().lastProcessedId}")
            if not state_manager.is_terminal:
                state_manager.fail()
            self._save_checkpoint()
            raise

    def _record_batch(self, processed: int, stats: BatchStats, last_id: str):
        self.state_manager.update_progress(processed, stats.success, stats.failure, stats.skip, last_id)
        for user_id, error in stats.errors:
            self.state_manager.add_error(user_id, error)
        self.skip_reasons.update(stats.skip_reasons)
        self._save_checkpoint()
        if self.on_progress:
            self.on_progress(self.state_manager.get_state())

    def _save_checkpoint(self):
        if not self.checkpoint:
            return
        try:
            self.checkpoint.save(self.state_manager.get_state())
        except OSError as e:
            logger.error(f"Failed to write checkpoint {self.checkpoint.path}: {e}")

    def _log_batch(self, batch_number: int, total_batches: int, size: int, stats: BatchStats, elapsed: float):
        state = self.state_manager.get_state()
        users_per_sec = size / elapsed if elapsed > 0 else float(size)
        logger.info(f"📦 Batch {batch_number}/{total_batches} ({size:,} users)")
        logger.info(f"  Success: {stats.success:,} | Skip: {stats.skip:,} | Failure: {stats.failure:,}")
        logger.info(
            f"  Progress: {self.state_manager.get_progress()}% ({state.processedUsers:,}/{state.totalUsers:,})"
        )
        logger.info(f"  Speed: {users_per_sec:,.0f} users/sec ({elapsed:.2f}s for this batch)")
        eta = self.state_manager.get_eta()
        if eta:
            logger.info(f"  ETA: {eta}")


async def _cancel(task: asyncio.Task | None):
    if task is None:
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await task


def log_summary(state: MigrationState, skip_reasons: Counter | None = None):
    logger.info("\n" + "=" * 60)
    logger.info(f"📊 MIGRATION SUMMARY ({state.status})")
    logger.info("=" * 60)
    logger.info(f"  Total Processed: {state.processedUsers:,} / {state.totalUsers:,}")
    logger.info(f"  Successful: {state.successCount:,}")
    logger.info(f"  Skipped: {state.skipCount:,}")
    for reason, count in sorted((skip_reasons or {}).items()):
        logger.info(f"    - {reason}: {count:,}")
    logger.info(f"  Failed: {state.failureCount:,}")

    if state.startedAt and state.completedAt:
        minutes = (state.completedAt - state.startedAt).total_seconds() / 60
        logger.info(f"  Total time: {minutes:.1f} minutes")
    if state.lastProcessedId:
        logger.info(f"  Last processed id: {state.lastProcessedId}")

    if state.errors:
        logger.info(f"\n📋 First {min(10, len(state.errors))} errors:")
        for entry in state.errors[:10]:
            logger.info(f"    - User {entry.userId}: {entry.error}")

    logger.info("=" * 60 + "\n")


async def migrate_users(
    settings: Settings,
    state_manager: MigrationStateManager,
    batch_size: int | None = None,
    resume_from_id: str | None = None,
    on_progress: ProgressCallback | None = None,
    show_progress: bool = False,
) -> MigrationState:
    """Run a complete migration with connections scoped to the run."""
    batch_size = batch_size or settings.batch_size
    state_manager.reset()
    capabilities = AuthCapabilities.from_settings(settings)
    checkpoint = CheckpointStore(settings.checkpoint_path) if settings.checkpoint_path else None

    try:
        async with MigrationConnections(
            settings.source_postgres_uri,
            settings.target_postgres_uri,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        ) as connections:
            migrator = SupabaseUserMigrator(
                paginator=SupabaseUserPaginator(connections.source_engine),
                transformer=UserTransformer(capabilities, settings.temp_email_domain),
                writer=BulkUserWriter(connections.target_engine, settings.max_query_params),
                state_manager=state_manager,
                checkpoint=checkpoint,
                on_progress=on_progress,
                show_progress=show_progress,
            )
            return await migrator.run(batch_size, resume_from_id)
    except (Exception, asyncio.CancelledError):
        if not state_manager.is_terminal:
            state_manager.fail()
        raise
