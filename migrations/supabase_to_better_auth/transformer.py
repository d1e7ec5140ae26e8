"""
Supabase user → Better Auth user transformation.

Skip rules are evaluated in order and the first match wins:
- no email and no phone
- phone-only user while the phone-number plugin is disabled
- soft-deleted user
- banned user while the admin plugin is disabled (the ban would be lost)
"""

import logging
import re
from datetime import datetime
from typing import Any

import pytz

from db.enums import SkipReason, UserRole
from db.schemas import TransformedUser
from migrations.supabase_models import SupabaseUser
from migrations.supabase_to_better_auth.capabilities import AuthCapabilities

logger = logging.getLogger(__name__)

BAN_REASON = "Migrated from Supabase (banned)"

USER_NAME_KEYS = ("name", "full_name", "username", "user_name")
IDENTITY_NAME_KEYS = (*USER_NAME_KEYS, "preferred_username")
IMAGE_KEYS = ("avatar_url", "picture")

NON_DIGITS = re.compile(r"[^0-9]")


def temp_email_for_phone(phone: str, domain: str) -> str:
    """``"010-1234-5678"`` → ``"01012345678@{domain}"``"""
    return f"{NON_DIGITS.sub('', phone)}@{domain}"


def _first_present(data: dict[str, Any] | None, keys: tuple[str, ...]) -> Any | None:
    if not data:
        return None
    for key in keys:
        if data.get(key):
            return data[key]
    return None


class UserTransformer:
    """Reshape Supabase ``auth.users`` rows into Better Auth ``user`` rows."""

    def __init__(self, capabilities: AuthCapabilities, temp_email_domain: str):
        self.capabilities = capabilities
        self.temp_email_domain = temp_email_domain

    def skip_reason(self, user: SupabaseUser) -> SkipReason | None:
        if not user.email and not user.phone:
            return SkipReason.NO_CONTACT
        if not user.email and not self.capabilities.phone_number:
            return SkipReason.PHONE_UNSUPPORTED
        if user.deleted_at:
            return SkipReason.DELETED
        if user.banned_until and not self.capabilities.admin:
            return SkipReason.BAN_UNSUPPORTED
        return None

    def transform(self, user: SupabaseUser, now: datetime | None = None) -> TransformedUser | SkipReason:
        reason = self.skip_reason(user)
        if reason:
            logger.debug(f"Skipping user {user.id}: {reason}")
            return reason

        now = now or datetime.now(pytz.UTC)
        created_at = user.created_at or now
        data: dict[str, Any] = {
            "id": user.id,
            "email": user.email or temp_email_for_phone(user.phone, self.temp_email_domain),
            "emailVerified": user.email_confirmed_at is not None,
            "name": self._get_name(user),
            "createdAt": created_at,
            "updatedAt": user.updated_at or created_at,
        }

        image = self._get_image(user)
        if image:
            data["image"] = image

        if self.capabilities.anonymous:
            data["isAnonymous"] = user.is_anonymous

        if self.capabilities.phone_number and user.phone:
            data["phoneNumber"] = user.phone
            data["phoneNumberVerified"] = user.phone_confirmed_at is not None

        if self.capabilities.admin:
            data.update(self._admin_fields(user, now))

        if user.raw_user_meta_data:
            data["userMetadata"] = user.raw_user_meta_data
        if user.raw_app_meta_data:
            data["appMetadata"] = user.raw_app_meta_data
        if user.invited_at:
            data["invitedAt"] = user.invited_at
        if user.last_sign_in_at:
            data["lastSignInAt"] = user.last_sign_in_at

        return TransformedUser(**data)

    @staticmethod
    def _get_name(user: SupabaseUser) -> str:
        name = _first_present(user.raw_user_meta_data, USER_NAME_KEYS)
        if name:
            return str(name)

        if user.identities:
            name = _first_present(user.identities[0].identity_data, IDENTITY_NAME_KEYS)
            if name:
                return str(name)

        if user.email:
            return user.email.split("@")[0]
        if user.phone:
            return user.phone
        return "Unknown"

    @staticmethod
    def _get_image(user: SupabaseUser) -> str | None:
        image = _first_present(user.raw_user_meta_data, IMAGE_KEYS)
        if not image and user.identities:
            image = _first_present(user.identities[0].identity_data, IMAGE_KEYS)
        return str(image) if image else None

    @staticmethod
    def _admin_fields(user: SupabaseUser, now: datetime) -> dict[str, Any]:
        if user.is_super_admin:
            role = UserRole.ADMIN.value
        else:
            role = user.role or UserRole.USER.value

        fields: dict[str, Any] = {"role": role, "banned": False}
        banned_until = user.banned_until
        if banned_until and banned_until.tzinfo is None:
            banned_until = pytz.UTC.localize(banned_until)
        if banned_until and banned_until > now:
            fields.update(banned=True, banExpires=banned_until, banReason=BAN_REASON)
        return fields
