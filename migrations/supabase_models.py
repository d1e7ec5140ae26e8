"""Supabase ``auth`` schema rows as read by the migration."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SupabaseIdentity(BaseModel):
    """One row of ``auth.identities`` (aggregated into its user via ``json_agg``)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str | None = None
    provider: str
    provider_id: str
    identity_data: dict[str, Any] = Field(default_factory=dict)
    email: str | None = None
    last_sign_in_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", "user_id", "provider_id", mode="before")
    @classmethod
    def coerce_to_str(cls, value: Any) -> Any:
        return str(value) if value is not None else value

    @field_validator("identity_data", mode="before")
    @classmethod
    def default_identity_data(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value)
        return value


class SupabaseUser(BaseModel):
    """One row of ``auth.users`` with its identities, ordered by identity id."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    encrypted_password: str | None = None
    email_confirmed_at: datetime | None = None
    phone: str | None = None
    phone_confirmed_at: datetime | None = None
    role: str | None = None
    is_super_admin: bool | None = None
    is_anonymous: bool = False
    banned_until: datetime | None = None
    raw_user_meta_data: dict[str, Any] | None = None
    raw_app_meta_data: dict[str, Any] | None = None
    invited_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    identities: list[SupabaseIdentity] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if value is not None else value

    @field_validator("is_anonymous", mode="before")
    @classmethod
    def default_is_anonymous(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("raw_user_meta_data", "raw_app_meta_data", "identities", mode="before")
    @classmethod
    def parse_json_column(cls, value: Any) -> Any:
        # asyncpg hands back json/jsonb as text unless a codec is registered
        if isinstance(value, str):
            return json.loads(value)
        return value

    @field_validator("identities", mode="before")
    @classmethod
    def default_identities(cls, value: Any) -> Any:
        return [] if value is None else value
