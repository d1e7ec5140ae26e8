import logging
import uuid
from collections.abc import Iterable

from db.enums import CREDENTIAL_PROVIDER, EMAIL_PROVIDER
from db.schemas import LinkedAccount, TransformedUser
from migrations.supabase_models import SupabaseUser

logger = logging.getLogger(__name__)

# Fixed namespace so the same identity always maps to the same account id
ACCOUNT_ID_NAMESPACE = uuid.UUID("5b0c8f3e-2a41-4f57-9d0e-6f1c3a7b9e21")


def account_row_id(user_id: str, provider_id: str, account_id: str) -> str:
    """Deterministic 32-character account id.

    Re-running a batch yields the same ids, so the primary-key conflict skip
    leaves previously migrated accounts untouched.
    """
    return uuid.uuid5(ACCOUNT_ID_NAMESPACE, f"{user_id}:{provider_id}:{account_id}").hex


def derive_accounts(
    user: SupabaseUser,
    transformed: TransformedUser,
    supported_providers: Iterable[str],
) -> list[LinkedAccount]:
    """Build the Better Auth ``account`` rows for one migrated user.

    - ``email`` identities become a ``credential`` account carrying the
      Supabase bcrypt hash (``None`` for passwordless users).
    - Identities of a configured social provider become a provider account
      keyed by the identity's ``sub`` claim, falling back to ``provider_id``.
    - Anything else is dropped; the target does not offer that provider.
    """
    supported = set(supported_providers)
    accounts: list[LinkedAccount] = []

    for identity in user.identities:
        if identity.provider == EMAIL_PROVIDER:
            accounts.append(
                LinkedAccount(
                    id=account_row_id(transformed.id, CREDENTIAL_PROVIDER, transformed.id),
                    userId=transformed.id,
                    providerId=CREDENTIAL_PROVIDER,
                    accountId=transformed.id,
                    password=user.encrypted_password or None,
                    createdAt=transformed.createdAt,
                    updatedAt=transformed.updatedAt,
                )
            )
        elif identity.provider in supported:
            account_id = str(identity.identity_data.get("sub") or identity.provider_id)
            accounts.append(
                LinkedAccount(
                    id=account_row_id(transformed.id, identity.provider, account_id),
                    userId=transformed.id,
                    providerId=identity.provider,
                    accountId=account_id,
                    password=None,
                    createdAt=identity.created_at or transformed.createdAt,
                    updatedAt=identity.updated_at or transformed.updatedAt,
                )
            )
        else:
            logger.debug(f"Dropping {identity.provider} identity of user {transformed.id}: provider not configured")

    return accounts
