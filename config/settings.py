"""
Application settings loaded from environment variables.
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from connectors.errors import ConfigurationError

ENCRYPTION_KEY_BYTES = 32  # AES-256


class Settings(BaseSettings):
    # ── GitHub OAuth2 ───────────────────────────────────────────────────
    github_client_id: str = ""
    github_client_secret: str = ""
    github_redirect_url: str = "http://localhost:8080/callback"
    github_scopes: List[str] = ["repo", "user:email", "read:org"]
    github_authorize_url: str = "https://github.com/login/oauth/authorize"
    github_token_url: str = "https://github.com/login/oauth/access_token"
    github_api_url: str = "https://api.github.com"

    # ── Security Secrets ──────────────────────────────────────────────────
    token_encryption_key: str = ""   # exactly 32 bytes, AES-256-GCM key for credentials at rest

    # ── Linking flow ─────────────────────────────────────────────────────
    link_ttl_seconds: int = 600             # pending link lifetime
    link_sweep_interval_seconds: int = 60   # how often expired pending links are purged
    provider_timeout_seconds: float = 5.0   # code exchange / identity lookup timeout

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./bot.db"

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 8080
    host: str = "localhost"
    public_url: Optional[str] = None
    debug: bool = False

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    @field_validator("token_encryption_key")
    @classmethod
    def _check_key_length(cls, value: str) -> str:
        if value and len(value.encode()) != ENCRYPTION_KEY_BYTES:
            raise ValueError(
                f"TOKEN_ENCRYPTION_KEY must be exactly {ENCRYPTION_KEY_BYTES} bytes for AES-256"
            )
        return value

    @property
    def base_url(self) -> str:
        """Public base URL users reach the callback server on."""
        return (self.public_url or f"http://{self.host}:{self.port}").rstrip("/")

    def require_oauth(self) -> None:
        """
        Fail fast when a value the linking flow cannot run without is missing.

        Called once at startup; raises ``ConfigurationError``.
        """
        required = {
            "GITHUB_CLIENT_ID": self.github_client_id,
            "GITHUB_CLIENT_SECRET": self.github_client_secret,
            "GITHUB_REDIRECT_URL": self.github_redirect_url,
            "TOKEN_ENCRYPTION_KEY": self.token_encryption_key,
        }
        for name, value in required.items():
            if not value:
                raise ConfigurationError(f"{name} is required")


config = Settings()
