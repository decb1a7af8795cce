"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class BookingConfig(BaseSettings):
    """Booking wizard configuration."""

    model_config = {"env_prefix": "CHAMBY_BOOKING_"}

    verticals_dir: str = "config/verticals"
    countdown_seconds: int = 15
    title_max_length: int = 80
    text_max_length: int = 200
    draft_max_age_hours: int = 24
    draft_key_prefix: str = "chamby_form_"
    drafts_dir: str | None = None
    session_ttl_minutes: int = 1440
    base_rate: int = 1


class BlobStoreConfig(BaseSettings):
    """Photo blob store configuration."""

    model_config = {"env_prefix": "CHAMBY_BLOB_"}

    provider: str = "memory"
    base_url: str = "http://localhost:54321"
    api_key: str | None = None
    bucket: str = "job-photos"
    signed_url_ttl_seconds: int = 31_536_000
    temp_prefix: str = "temp-uploads"
    timeout_seconds: int = 30
    max_retries: int = 1


class JobStoreConfig(BaseSettings):
    """Job store configuration."""

    model_config = {"env_prefix": "CHAMBY_JOBS_"}

    provider: str = "memory"
    base_url: str = "http://localhost:54321"
    api_key: str | None = None
    table: str = "jobs"
    timeout_seconds: int = 30
    max_retries: int = 1


class AuthConfig(BaseSettings):
    """Authentication configuration."""

    model_config = {"env_prefix": "CHAMBY_AUTH_"}

    provider: str = "mock"
    fixtures_path: str = "config/auth_fixtures.yml"
    token_expiry_minutes: int = 60
    login_route: str = "/login"


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "CHAMBY_"}

    debug: bool = False
    log_level: str = "INFO"

    booking: BookingConfig = Field(default_factory=BookingConfig)
    blob: BlobStoreConfig = Field(default_factory=BlobStoreConfig)
    jobs: JobStoreConfig = Field(default_factory=JobStoreConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
