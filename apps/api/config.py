"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./knowledge_vault.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Identity provider assertions exchanged for session tokens
    IDENTITY_TOKEN_SECRET: str = ""
    IDENTITY_TOKEN_AUDIENCE: str = ""

    # Uploaded media
    MEDIA_UPLOAD_DIR: str = "/tmp/knowledge_vault_media"
    MEDIA_PUBLIC_BASE_URL: str = "/media"
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024

    # Link previews
    PREVIEW_FETCH_CHANNELS: List[str] = ["direct", "allorigins", "cors-proxy"]
    PREVIEW_FETCH_TIMEOUT_SECONDS: float = 5.0
    PREVIEW_TOTAL_TIMEOUT_SECONDS: float = 20.0
    PREVIEW_ALLORIGINS_ENDPOINT: str = "https://api.allorigins.win/get"
    PREVIEW_CORS_PROXY_PREFIX: str = "https://cors-anywhere.herokuapp.com/"
    PREVIEW_USER_AGENT: str = "Mozilla/5.0 (compatible; KnowledgeVaultPreview/0.1)"

    # Document store readiness probe
    STORE_HEALTH_TIMEOUT_SECONDS: float = 2.0

    # Security
    JWT_SECRET: str = "change_me_in_production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24
    AUTO_CREATE_DB_SCHEMA: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def require_identity_secret() -> str:
    """Return configured identity assertion secret or raise a configuration error."""
    secret = (settings.IDENTITY_TOKEN_SECRET or "").strip()
    if not secret:
        raise ValueError("IDENTITY_TOKEN_SECRET is not configured")
    return secret


def validate_security_settings() -> None:
    """Fail fast when insecure default secrets are still configured."""
    insecure_values = {
        "",
        "change_me_in_production",
        "your_jwt_secret_change_in_production",
    }
    jwt_secret = (settings.JWT_SECRET or "").strip()

    if jwt_secret in insecure_values or len(jwt_secret) < 24:
        raise ValueError("JWT_SECRET is insecure. Configure a strong non-default secret (>=24 chars).")
