from enum import StrEnum


# Enums
class MigrationStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class UserRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


class SkipReason(StrEnum):
    """Why a source user was intentionally left out of the target."""

    NO_CONTACT = "no_email_or_phone"
    PHONE_UNSUPPORTED = "phone_only_without_phone_plugin"
    DELETED = "soft_deleted"
    BAN_UNSUPPORTED = "banned_without_admin_plugin"


# Reserved identity provider meaning "this user signs in with a password"
EMAIL_PROVIDER = "email"
# Better Auth providerId for password accounts
CREDENTIAL_PROVIDER = "credential"
