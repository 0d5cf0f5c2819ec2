"""
offshore.settings
=================

Configuration settings for the incorporation backend.

Module-level constants cover the process (database file, host/port) and are
read straight from the environment. Integration settings (mail transport,
reminder sweep, public URLs) live on the pydantic :class:`Settings` model so
they can also come from a ``.env`` file.
"""

from __future__ import annotations

import os
from pathlib import Path
from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# Database settings
# ---------------------------------------------------------------------------
DB_FILE = os.environ.get("OFFSHORE_DB_FILE", BASE_DIR / "offshore.db")
DB_URL = os.environ.get("OFFSHORE_DB_URL", f"sqlite:///{DB_FILE}")
DB_ECHO = os.environ.get("OFFSHORE_DB_ECHO", "False").lower() == "true"

# API settings
# ---------------------------------------------------------------------------
API_HOST = os.environ.get("OFFSHORE_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("OFFSHORE_API_PORT", "8000"))
API_DEBUG = os.environ.get("OFFSHORE_API_DEBUG", "False").lower() == "true"


# ---------------------------------------------------------------------------
# Pydantic settings model for integrations
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Pydantic model for application settings, loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="",          # no prefix, use variable names as-is
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Public URL used to build links in emails and redirects
    app_url: str = Field("http://localhost:3000", description="Public base URL of the web app")

    # Outbound email (Resend HTTP API). No key -> simulated sends.
    resend_api_key: str = Field("", description="Resend API key; empty means simulate")
    resend_base_url: HttpUrl = Field("https://api.resend.com", description="Resend API base URL")
    email_from: str = Field("no-reply@example.test", description="Sender identity for outbound mail")
    email_fallback: str = Field("test@example.com", description="Recipient used when an order has no address")
    mail_timeout: float = Field(10.0, description="Outbound mail request timeout in seconds")

    # Reminder sweep
    cron_secret: str = Field("", description="Shared secret for the scheduled reminder sweep")
    admin_email_domain: str = Field("@scg.local", description="Email suffix treated as admin")
    reminder_interval_hours: int = Field(24, description="Minimum gap between payment reminders")
    reminder_batch_size: int = Field(50, description="Max orders reminded per sweep")

    log_level: str = Field("INFO", description="Root log level for the API process")

    @property
    def simulate_email(self) -> bool:
        return not self.resend_api_key


# Initialize settings
settings = Settings()
