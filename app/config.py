"""Configuration management for the VidTube accounts service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="VT_", extra="ignore")

    # Token signing
    access_token_secret: str
    refresh_token_secret: str
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 10
    jwt_algorithm: str = "HS256"

    # Database
    database_url: str = "sqlite+aiosqlite:///./dev.db"

    # CORS
    frontend_origin: str = "http://localhost:5173"

    # Multipart uploads are staged here before being pushed to media storage
    upload_tmp_dir: str = Field(default="./public/temp")

    # Media storage
    media_storage_backend: str = Field(
        default="local", pattern="^(local|gcs)$"
    )  # local or gcs
    media_local_path: str = Field(default="./media")
    media_url_base: str = Field(default="http://localhost:8000")

    # Google Cloud Storage (only needed if media_storage_backend=gcs)
    gcs_bucket_name: str = Field(default="")
    gcs_credentials_file: str = Field(default="")

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")
    log_level: str = Field(default="INFO")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
