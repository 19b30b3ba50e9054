"""
Runtime Environment Validation Module

Validates the environment variables the service cannot run without at
application startup. If validation fails, the application refuses to start.

Provider credentials (Resend, Twilio) are optional here: the endpoints that
need them answer 500 naming the missing variables instead.
"""

import os
import sys
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProductionSettings(BaseSettings):
    """
    Strict validation schema for production environment variables.

    All required fields MUST be present and valid, or the application will not start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="forbid",  # Fail on unknown keys in the .env file
    )

    # ========================================================================
    # CRITICAL: Database Configuration
    # ========================================================================
    database_url: str  # REQUIRED: service-role PostgreSQL connection string
    public_database_url: Optional[str] = None  # Restricted role for public reads

    # ========================================================================
    # CRITICAL: Firebase Authentication (staff dashboard)
    # ========================================================================
    firebase_project_id: str
    google_application_credentials: Optional[str] = None

    # ========================================================================
    # CRITICAL: Storage Provider (car images)
    # ========================================================================
    storage_provider: str  # REQUIRED: "gcs" or "s3"
    car_images_prefix: str = "car-images"

    gcs_bucket_name: Optional[str] = None
    gcs_project_id: Optional[str] = None

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = None
    s3_bucket_name: Optional[str] = None

    # ========================================================================
    # Application Configuration
    # ========================================================================
    app_name: str = "Saifauto Car Rental"
    debug: bool = False
    api_prefix: str = "/api"

    # ========================================================================
    # CRITICAL: CORS Configuration
    # ========================================================================
    allowed_origins: str  # REQUIRED: Comma-separated list of allowed origins

    # ========================================================================
    # Optional: Notification Providers
    # ========================================================================
    resend_api_key: Optional[str] = None
    email_from: Optional[str] = None

    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_whatsapp_from: Optional[str] = None
    twilio_to_number: Optional[str] = None

    # ========================================================================
    # Optional: Booking / Upload Configuration
    # ========================================================================
    booking_rules_phrase: Optional[str] = None
    currency: Optional[str] = None
    presign_ttl_seconds: int = 300
    max_upload_size_mb: int = 5


def validate_environment() -> ProductionSettings:
    """
    Validate all required environment variables at startup.

    This function MUST be called before the FastAPI app starts.
    If validation fails, the application will exit with code 1.

    Returns:
        ProductionSettings: Validated settings object

    Raises:
        SystemExit: If validation fails (exit code 1)
    """

    try:
        settings = ProductionSettings()

        # 1. CORS: Ensure wildcard is not used in production
        if not settings.debug:
            origins = [o.strip() for o in settings.allowed_origins.split(",")]
            if "*" in origins:
                print(
                    "❌ FATAL: Wildcard CORS origin (*) detected in production mode.",
                    file=sys.stderr
                )
                print(
                    "   Set ALLOWED_ORIGINS to specific domains (comma-separated).",
                    file=sys.stderr
                )
                sys.exit(1)

        # 2. Storage Provider: Validate provider-specific configuration
        if settings.storage_provider == "gcs":
            if not settings.gcs_bucket_name or not settings.gcs_project_id:
                print(
                    "❌ FATAL: GCS_BUCKET_NAME and GCS_PROJECT_ID required when STORAGE_PROVIDER=gcs",
                    file=sys.stderr
                )
                sys.exit(1)
        elif settings.storage_provider == "s3":
            if not settings.s3_bucket_name or not settings.aws_access_key_id or not settings.aws_secret_access_key:
                print(
                    "❌ FATAL: S3_BUCKET_NAME, AWS_ACCESS_KEY_ID, and AWS_SECRET_ACCESS_KEY required when STORAGE_PROVIDER=s3",
                    file=sys.stderr
                )
                sys.exit(1)
        else:
            print(
                f"❌ FATAL: Invalid STORAGE_PROVIDER '{settings.storage_provider}'. Must be 'gcs' or 's3'.",
                file=sys.stderr
            )
            sys.exit(1)

        # 3. Firebase: Validate credentials path exists (if provided)
        if settings.google_application_credentials:
            if not os.path.exists(settings.google_application_credentials):
                print(
                    f"❌ FATAL: Firebase credentials file not found: {settings.google_application_credentials}",
                    file=sys.stderr
                )
                sys.exit(1)

        # 4. Database URLs: Basic format validation
        for name, url in (
            ("DATABASE_URL", settings.database_url),
            ("PUBLIC_DATABASE_URL", settings.public_database_url),
        ):
            if url and not url.startswith("postgresql"):
                print(
                    f"❌ FATAL: {name} must be a PostgreSQL connection string (postgresql:// or postgresql+asyncpg://)",
                    file=sys.stderr
                )
                sys.exit(1)

        # 5. Notification providers: warn only, endpoints report at call time
        if not settings.resend_api_key:
            print("⚠️  RESEND_API_KEY not set - confirmation emails will fail")
        twilio_missing = [
            name.upper()
            for name in ("twilio_account_sid", "twilio_auth_token", "twilio_whatsapp_from", "twilio_to_number")
            if not getattr(settings, name)
        ]
        if twilio_missing:
            print(f"⚠️  Twilio not fully configured - missing {', '.join(twilio_missing)}")

        # ====================================================================
        # Success: Log validated configuration
        # ====================================================================
        print("✅ Environment validation passed")
        print(f"   App: {settings.app_name}")
        print(f"   Debug: {settings.debug}")
        print(f"   Storage: {settings.storage_provider}")
        print(f"   Public DB tier: {'dedicated' if settings.public_database_url else 'shared'}")
        print(f"   CORS Origins: {settings.allowed_origins}")

        return settings

    except ValidationError as e:
        print("❌ FATAL: Environment validation failed", file=sys.stderr)
        print("\nMissing or invalid environment variables:", file=sys.stderr)
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"   • {field}: {msg}", file=sys.stderr)

        print("\nThe application cannot start with invalid configuration.", file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    # Allow running this module directly to test validation
    validate_environment()
    print("\n✅ All environment variables are valid!")
