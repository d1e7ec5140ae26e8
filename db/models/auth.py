"""Better Auth tables written by the migration.

Attribute names mirror Better Auth's camelCase column names so that an insert
row keyed by field name binds straight onto the table columns. The tables are
created by Better Auth itself; these declarations only drive the inserts.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """``user`` table including the admin, anonymous and phone-number plugin columns."""

    __tablename__ = "user"

    id: str = Field(primary_key=True, sa_type=Text)
    email: str | None = Field(default=None, sa_type=Text)
    name: str = Field(sa_type=Text)
    emailVerified: bool = Field(default=False)
    image: str | None = Field(default=None, sa_type=Text)
    createdAt: datetime = Field(sa_type=DateTime(timezone=True))
    updatedAt: datetime = Field(sa_type=DateTime(timezone=True))

    # anonymous plugin
    isAnonymous: bool | None = Field(default=None)
    # phone-number plugin
    phoneNumber: str | None = Field(default=None, sa_type=Text)
    phoneNumberVerified: bool | None = Field(default=None)
    # admin plugin
    role: str | None = Field(default=None, sa_type=Text)
    banned: bool | None = Field(default=None)
    banReason: str | None = Field(default=None, sa_type=Text)
    banExpires: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))

    # additional fields carried over from Supabase
    userMetadata: dict[str, Any] | None = Field(default=None, sa_type=JSONB)
    appMetadata: dict[str, Any] | None = Field(default=None, sa_type=JSONB)
    invitedAt: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    lastSignInAt: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))


class Account(SQLModel, table=True):
    """``account`` table: one row per password credential or linked social identity."""

    __tablename__ = "account"

    id: str = Field(primary_key=True, sa_type=Text)
    userId: str = Field(sa_type=Text, index=True)
    providerId: str = Field(sa_type=Text)
    accountId: str = Field(sa_type=Text)
    password: str | None = Field(default=None, sa_type=Text)
    createdAt: datetime = Field(sa_type=DateTime(timezone=True))
    updatedAt: datetime = Field(sa_type=DateTime(timezone=True))
