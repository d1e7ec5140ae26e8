from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Core Application Settings
    app_name: str = "Supabase to Better Auth Migrator"
    version: str = "1.0.0"
    description: str = "Resumable batch migration of Supabase auth users into a Better Auth database."
    host: str = "0.0.0.0"
    port: int = 7777
    api_password: str | None = None
    logging_level: str = "INFO"

    # Database Settings
    source_postgres_uri: str
    target_postgres_uri: str
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Migration Settings
    batch_size: int = Field(default=5000, gt=0)
    resume_from_id: str | None = None
    # Phone-only users get "{digits}@{temp_email_domain}" so Better Auth has an email to key on
    temp_email_domain: str = "temp.better-auth.com"
    # PostgreSQL rejects statements with more than 65535 bound parameters
    max_query_params: int = Field(default=65000, gt=0, le=65535)
    checkpoint_path: str | None = None

    # Better Auth Target Configuration
    enable_admin_plugin: bool = True
    enable_anonymous_plugin: bool = True
    enable_phone_number_plugin: bool = True
    social_providers: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def normalize_social_providers(self) -> "Settings":
        self.social_providers = sorted({provider.strip().lower() for provider in self.social_providers if provider})
        return self

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Load settings once; URIs are required so loading is deferred until first use."""
    return Settings()
