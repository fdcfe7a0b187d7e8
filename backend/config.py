"""
Configuration management for the EcoSpin orders backend.

Loads settings from .env via pydantic-settings.

Deployment notes:
    - STORAGE_BACKEND selects "json" (flat files) or "database" (SQLAlchemy)
    - The JSON backend keeps its order counter in-process; run a single worker
    - validate_production_settings() enforces strict CORS in production
"""
import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("json", "database")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Business ────────────────────────────────────────────────────
    business_name: str = "EcoSpin Laundry"
    business_number: str = ""           # M-Pesa number customers pay to
    order_id_prefix: str = "ECOSPIN"

    # ── Storage ─────────────────────────────────────────────────────
    storage_backend: str = "json"       # "json" | "database"
    data_dir: str = "./data"
    database_url: str = "sqlite:///./data/ecospin.db"

    # ── Background tasks ────────────────────────────────────────────
    cache_refresh_seconds: int = 60
    autosave_seconds: int = 300         # JSON backend only

    # ── Email (SMTP) ────────────────────────────────────────────────
    admin_email: str = ""
    email_user: str = ""
    email_pass: str = ""
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_timeout_seconds: float = 15.0

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    public_base_url: str = "http://localhost:3000"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_pass)

    def validate_production_settings(self):
        """
        Validate settings before the app starts serving.

        Raises ValueError for an unknown storage backend in any environment,
        and for unsafe settings in production. Called during app startup.
        """
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, "
                f"got {self.storage_backend!r}"
            )

        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if self.storage_backend == "json":
                raise ValueError(
                    "STORAGE_BACKEND=json is not allowed in production. "
                    "The flat-file counter is process-local; use the database backend."
                )
            if not self.business_number:
                raise ValueError(
                    "BUSINESS_NUMBER must be set in production. "
                    "Customers are told to send M-Pesa payments to it."
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if not self.email_configured:
                warnings.append("EMAIL_USER/EMAIL_PASS not set (email notifications disabled)")
            if not self.business_number:
                warnings.append("BUSINESS_NUMBER not set (payment instructions incomplete)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
