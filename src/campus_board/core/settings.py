"""Application settings and configuration.

This module defines all configuration options for the Campus Board application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Campus Board", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Record store (async SQLAlchemy URL)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./campus_board.db",
        alias="DATABASE_URL",
    )
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Identity provider: bearer tokens are JWTs signed with this secret
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: str | None = Field(default=None, alias="JWT_AUDIENCE")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Blob store
    storage_root: str = Field(default="./storage", alias="STORAGE_ROOT")
    storage_public_base_url: str = Field(
        default="http://localhost:8000/storage/v1/object/public",
        alias="STORAGE_PUBLIC_BASE_URL",
    )
    attachment_bucket: str = Field(default="post-images", alias="ATTACHMENT_BUCKET")
    max_attachment_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_ATTACHMENT_BYTES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
