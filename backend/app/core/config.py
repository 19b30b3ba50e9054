"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageProvider(str, Enum):
    GCS = "gcs"
    S3 = "s3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_name: str = "Saifauto Car Rental"
    debug: bool = False
    allowed_origins: str = "http://localhost:3000"
    api_prefix: str = "/api"

    # Database - service role (dashboard writes)
    database_url: str
    # Database - restricted role (public reads), falls back to database_url
    public_database_url: Optional[str] = None

    # Firebase Auth (staff dashboard)
    firebase_project_id: str
    google_application_credentials: Optional[str] = None

    # Storage
    storage_provider: StorageProvider = StorageProvider.GCS
    car_images_prefix: str = "car-images"

    # GCS Config
    gcs_bucket_name: Optional[str] = None
    gcs_project_id: Optional[str] = None

    # S3 Config
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = "us-east-1"
    s3_bucket_name: Optional[str] = None

    # Presigned URLs
    presign_ttl_seconds: int = 300
    max_upload_size_mb: int = 5

    # Resend (confirmation email)
    resend_api_key: Optional[str] = None
    email_from: str = "Saifauto <reservations@saifauto.ma>"

    # Twilio (staff WhatsApp notifications)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_whatsapp_from: Optional[str] = None
    twilio_to_number: Optional[str] = None

    # Booking form
    booking_rules_phrase: str = "I accept the rental rules"
    currency: str = "MAD"

    @property
    def bucket_name(self) -> str:
        """Get the appropriate bucket name based on storage provider."""
        if self.storage_provider == StorageProvider.GCS:
            if not self.gcs_bucket_name:
                raise ValueError("GCS_BUCKET_NAME required when STORAGE_PROVIDER=gcs")
            return self.gcs_bucket_name
        else:
            if not self.s3_bucket_name:
                raise ValueError("S3_BUCKET_NAME required when STORAGE_PROVIDER=s3")
            return self.s3_bucket_name

    @property
    def public_db_url(self) -> str:
        return self.public_database_url or self.database_url

    def missing(self, *names: str) -> list[str]:
        """Return the environment variable names of unset settings."""
        return [name.upper() for name in names if not getattr(self, name, None)]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
