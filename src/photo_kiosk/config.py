"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Server settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    ai_gateway_api_key: str
    ai_gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_model: str = "google/gemini-2.5-flash-image-preview"
    ai_timeout_seconds: float = 30.0
    resend_api_key: str
    email_from: str = "Snap & Transform <onboarding@resend.dev>"
    email_timeout_seconds: float = 15.0
    image_fetch_timeout_seconds: float = 15.0
    transform_rate_limit: int = 10
    deliver_rate_limit: int = 5
    rate_window_seconds: int = 3600
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


class KioskSettings(BaseSettings):
    """Kiosk-side settings for the capture/transform/deliver flow."""

    api_base_url: str = "http://localhost:8000"
    api_timeout_seconds: float = 45.0
    idle_timeout_seconds: float = 60.0
    delivered_display_seconds: float = 2.0
    session_ttl_hours: int = 24
    session_store_path: Path = Path.home() / ".photo_kiosk" / "session.json"

    model_config = SettingsConfigDict(
        env_prefix="KIOSK_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
