import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from migrations.supabase_models import SupabaseUser

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    u.id::text AS id,
    u.email,
    u.encrypted_password,
    u.email_confirmed_at,
    u.phone,
    u.phone_confirmed_at,
    u.role,
    u.is_super_admin,
    u.is_anonymous,
    u.banned_until,
    u.raw_user_meta_data,
    u.raw_app_meta_data,
    u.invited_at,
    u.last_sign_in_at,
    u.created_at,
    u.updated_at,
    u.deleted_at
"""

FETCH_AFTER_CURSOR = text(
    f"""
    SELECT {USER_COLUMNS},
        COALESCE(
            json_agg(i.* ORDER BY i.id) FILTER (WHERE i.id IS NOT NULL),
            '[]'::json
        ) AS identities
    FROM auth.users u
    LEFT JOIN auth.identities i ON u.id = i.user_id
    WHERE u.id > CAST(:after_id AS uuid)
    GROUP BY u.id
    ORDER BY u.id ASC
    LIMIT :limit
    """
)

FETCH_FIRST = text(
    f"""
    SELECT {USER_COLUMNS},
        COALESCE(
            json_agg(i.* ORDER BY i.id) FILTER (WHERE i.id IS NOT NULL),
            '[]'::json
        ) AS identities
    FROM auth.users u
    LEFT JOIN auth.identities i ON u.id = i.user_id
    GROUP BY u.id
    ORDER BY u.id ASC
    LIMIT :limit
    """
)

COUNT_AFTER_CURSOR = text("SELECT COUNT(*) FROM auth.users WHERE id > CAST(:after_id AS uuid)")
COUNT_ALL = text("SELECT COUNT(*) FROM auth.users")


class SupabaseUserPaginator:
    """Keyset pagination over ``auth.users`` ordered by ``id``.

    Batches are strictly ascending by id, so restarting with the last
    processed id as cursor continues exactly where a previous run stopped.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def count_users(self, after_id: str | None = None) -> int:
        async with self.engine.connect() as conn:
            if after_id:
                result = await conn.execute(COUNT_AFTER_CURSOR, {"after_id": after_id})
            else:
                result = await conn.execute(COUNT_ALL)
            return int(result.scalar() or 0)

    async def fetch_batch(self, after_id: str | None, limit: int) -> list[SupabaseUser]:
        async with self.engine.connect() as conn:
            if after_id:
                result = await conn.execute(FETCH_AFTER_CURSOR, {"after_id": after_id, "limit": limit})
            else:
                result = await conn.execute(FETCH_FIRST, {"limit": limit})
            rows = result.mappings().all()

        users = [SupabaseUser.model_validate(dict(row)) for row in rows]
        logger.debug(f"Fetched {len(users)} users after cursor {after_id}")
        return users
