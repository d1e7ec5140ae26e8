"""
Supabase to Better Auth user migration.

Moves every ``auth.users`` row (with its ``auth.identities``) from a Supabase
database into the Better Auth ``user`` and ``account`` tables:
- Keyset pagination by user id, resumable from any processed id
- Skip rules and plugin-gated fields (admin, anonymous, phone-number)
- Password credentials and configured social providers as accounts
- Chunked conflict-skipping inserts, one transaction per batch

CLI Usage:
    python -m migrations.supabase_to_better_auth migrate --source-uri ... --target-uri ...
    python -m migrations.supabase_to_better_auth migrate --checkpoint-path state.json --resume
    python -m migrations.supabase_to_better_auth status --source-uri ... --target-uri ...
"""

from migrations.supabase_to_better_auth.accounts import derive_accounts
from migrations.supabase_to_better_auth.capabilities import AuthCapabilities
from migrations.supabase_to_better_auth.connections import MigrationConnections
from migrations.supabase_to_better_auth.migrator import SupabaseUserMigrator, migrate_users
from migrations.supabase_to_better_auth.paginator import SupabaseUserPaginator
from migrations.supabase_to_better_auth.state import CheckpointStore, MigrationStateManager
from migrations.supabase_to_better_auth.transformer import UserTransformer
from migrations.supabase_to_better_auth.writer import BulkUserWriter

__all__ = [
    "AuthCapabilities",
    "BulkUserWriter",
    "CheckpointStore",
    "MigrationConnections",
    "MigrationStateManager",
    "SupabaseUserMigrator",
    "SupabaseUserPaginator",
    "UserTransformer",
    "derive_accounts",
    "migrate_users",
]
