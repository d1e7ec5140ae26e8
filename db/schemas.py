from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from db.enums import MigrationStatus


class TransformedUser(BaseModel):
    """A Supabase user reshaped into a Better Auth ``user`` row.

    Only explicitly set fields are written; optional plugin columns are left
    unset when the matching capability is disabled or the source has no value.
    """

    id: str
    email: str | None
    name: str
    emailVerified: bool
    createdAt: datetime
    updatedAt: datetime

    image: str | None = None
    isAnonymous: bool | None = None
    phoneNumber: str | None = None
    phoneNumberVerified: bool | None = None
    role: str | None = None
    banned: bool | None = None
    banExpires: datetime | None = None
    banReason: str | None = None
    userMetadata: dict[str, Any] | None = None
    appMetadata: dict[str, Any] | None = None
    invitedAt: datetime | None = None
    lastSignInAt: datetime | None = None

    @property
    def present_fields(self) -> list[str]:
        """Set fields in declaration order."""
        return [name for name in type(self).model_fields if name in self.model_fields_set]

    def to_row(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.present_fields}


class LinkedAccount(BaseModel):
    """A Better Auth ``account`` row: a password credential or a social identity."""

    id: str
    userId: str
    providerId: str
    accountId: str
    password: str | None = None
    createdAt: datetime
    updatedAt: datetime

    def to_row(self) -> dict[str, Any]:
        return self.model_dump()


ACCOUNT_FIELDS: tuple[str, ...] = tuple(LinkedAccount.model_fields)


class MigrationErrorEntry(BaseModel):
    userId: str
    error: str


class MigrationState(BaseModel):
    status: MigrationStatus = MigrationStatus.IDLE
    totalUsers: int = 0
    processedUsers: int = 0
    successCount: int = 0
    failureCount: int = 0
    skipCount: int = 0
    currentBatch: int = 0
    totalBatches: int = 0
    startedAt: datetime | None = None
    completedAt: datetime | None = None
    lastProcessedId: str | None = None
    errors: list[MigrationErrorEntry] = Field(default_factory=list)


class MigrationStatusResponse(MigrationState):
    progress: str
    eta: str | None = None


class MigrateRequest(BaseModel):
    batchSize: int | None = Field(default=None, gt=0)
    resumeFromId: str | None = None


class MigrationConfig(BaseModel):
    batchSize: int
    resumeFromId: str | None = None
    tempEmailDomain: str
