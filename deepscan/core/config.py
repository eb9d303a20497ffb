"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. Vendor API keys are NOT configured here: every
detection call carries the user's own credential.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from deepscan.models.detection import Vendor


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    @property
    def is_development(self) -> bool:
        """Diagnostic details are only attached to failures in development."""
        return self.environment == "development"

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the browser front end.
    cors_origins_str: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Detection vendor ──────────────────────────────────────────
    detection_vendor: Vendor = Vendor.HIVE

    # Base URLs can be pointed at a sandbox or a local mock server.
    hive_api_url: str = Field(
        default="https://api.thehive.ai/api/v2",
        validation_alias="HIVE_API_URL",
    )
    deepai_api_url: str = Field(
        default="https://api.deepai.org/api",
        validation_alias="DEEPAI_API_URL",
    )

    # Detection uploads can be large videos; status probes should be quick.
    detect_timeout_seconds: float = 60.0
    status_timeout_seconds: float = 10.0

    # ─── Uploads ───────────────────────────────────────────────────
    max_upload_bytes: int = 100 * 1024 * 1024  # 100 MB

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
        populate_by_name=True,
    )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
