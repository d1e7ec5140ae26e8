import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from db.models.auth import Account, User
from db.schemas import ACCOUNT_FIELDS, LinkedAccount, TransformedUser

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL caps a statement at 65535 bound parameters
DEFAULT_MAX_QUERY_PARAMS = 65000


@dataclass
class BatchWriteResult:
    success_count: int = 0
    failure_count: int = 0
    error: str | None = None


def chunk_size_for(fields_per_record: int, max_params: int = DEFAULT_MAX_QUERY_PARAMS) -> int:
    if fields_per_record <= 0:
        raise ValueError("fields_per_record must be positive")
    size = max_params // fields_per_record
    if size == 0:
        raise ValueError(f"{fields_per_record} fields per record exceed the {max_params} parameter limit")
    return size


def chunk_records(
    records: Sequence[T], fields_per_record: int, max_params: int = DEFAULT_MAX_QUERY_PARAMS
) -> list[Sequence[T]]:
    """Split records so no chunk binds more than ``max_params`` parameters."""
    size = chunk_size_for(fields_per_record, max_params)
    return [records[i : i + size] for i in range(0, len(records), size)]


def collect_user_fields(users: Sequence[TransformedUser]) -> list[str]:
    """Union of the fields set on any user, in declaration order.

    Capability gating makes rows heterogeneous; every row of a multi-row
    insert has to bind the same column list.
    """
    present: set[str] = set()
    for user in users:
        present.update(user.present_fields)
    return [name for name in TransformedUser.model_fields if name in present]


class BulkUserWriter:
    """Chunked ``INSERT ... ON CONFLICT (id) DO NOTHING`` into Better Auth tables.

    One transaction spans every chunk of both tables: if any statement
    fails the whole batch is rolled back and reported as failed.
    """

    def __init__(self, engine: AsyncEngine, max_query_params: int = DEFAULT_MAX_QUERY_PARAMS):
        self.engine = engine
        self.max_query_params = max_query_params
        self.user_table: Table = User.__table__
        self.account_table: Table = Account.__table__

    async def write_batch(self, users: Sequence[TransformedUser], accounts: Sequence[LinkedAccount]) -> BatchWriteResult:
        if not users:
            return BatchWriteResult()

        try:
            async with self.engine.begin() as conn:
                await self._insert_users(conn, users)
                if accounts:
                    await self._insert_accounts(conn, accounts)
        except Exception as e:
            logger.exception(f"[TRANSACTION] Batch failed, rolled back: {e}")
            return BatchWriteResult(failure_count=len(users), error=str(e))

        return BatchWriteResult(success_count=len(users))

    async def _insert_users(self, conn: AsyncConnection, users: Sequence[TransformedUser]):
        fields = collect_user_fields(users)
        for chunk in chunk_records(users, len(fields), self.max_query_params):
            rows = [self._user_row(user, fields) for user in chunk]
            await self._insert(conn, self.user_table, rows)

    async def _insert_accounts(self, conn: AsyncConnection, accounts: Sequence[LinkedAccount]):
        for chunk in chunk_records(accounts, len(ACCOUNT_FIELDS), self.max_query_params):
            await self._insert(conn, self.account_table, [account.to_row() for account in chunk])

    @staticmethod
    def _user_row(user: TransformedUser, fields: list[str]) -> dict[str, Any]:
        row = user.to_row()
        return {field: row.get(field) for field in fields}

    @staticmethod
    async def _insert(conn: AsyncConnection, table: Table, rows: list[dict[str, Any]]):
        stmt = pg_insert(table).values(rows).on_conflict_do_nothing(index_elements=["id"])
        await conn.execute(stmt)
