"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # API SECURITY
    # ===================
    admin_api_key: Optional[str] = Field(
        None,
        description="Shared secret expected in the X-Admin-Key header"
    )

    # ===================
    # GOOGLE SHEETS
    # ===================
    google_service_account_file: Optional[str] = Field(
        None,
        description="Path to a service account JSON key file"
    )
    google_client_email: Optional[str] = Field(
        None,
        description="Service account e-mail (used when no key file is given)"
    )
    google_private_key: Optional[str] = Field(
        None,
        description="Service account private key, newlines escaped as \\n"
    )
    spreadsheet_id: Optional[str] = Field(
        None,
        description="Spreadsheet holding the catalog and the response log"
    )
    catalog_sheet_range: str = Field(
        default="Data!A2:C",
        description="Range with sector / group / product columns"
    )
    response_sheet_range: str = Field(
        default="Response!A:K",
        description="Range new sample requests are appended to"
    )

    # ===================
    # EMAIL
    # ===================
    smtp_host: Optional[str] = Field(
        None,
        description="SMTP host (unset = log-only mode)"
    )
    smtp_port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP port"
    )
    smtp_username: Optional[str] = Field(None, description="SMTP username")
    smtp_password: Optional[str] = Field(None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS")
    mail_from: str = Field(
        default="no-reply@localhost",
        description="Sender address for outgoing mail"
    )
    admin_email: Optional[str] = Field(
        None,
        description="Recipient of new sample request notifications"
    )
    display_timezone: str = Field(
        default="Europe/Istanbul",
        description="IANA timezone for dates in the sheet row and admin mail"
    )

    # ===================
    # LOCATION DIRECTORY
    # ===================
    location_api_url: Optional[str] = Field(
        None,
        description="Province / district directory base URL, e.g. https://api.turkiyeapi.dev/v1"
    )
    location_api_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the location directory"
    )

    # ===================
    # OBJECT STORAGE
    # ===================
    aws_region: str = Field(default="eu-central-1", description="S3 region")
    aws_s3_bucket: Optional[str] = Field(None, description="Bucket for sector images")
    aws_access_key_id: Optional[str] = Field(None, description="AWS access key")
    aws_secret_access_key: Optional[str] = Field(None, description="AWS secret key")

    # ===================
    # BUSINESS SETTINGS
    # ===================
    import_chunk_size: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Rows per batch in the assignment phase of an import"
    )
    customers_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Requests per page in the admin customer list"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed to call the API from a browser"
    )

    # ===================
    # VALIDATORS
    # ===================
    @field_validator("display_timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        """Reject unknown timezone names at startup."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def sheets_configured(self) -> bool:
        """Check if Google Sheets access is configured."""
        has_credentials = bool(
            self.google_service_account_file
            or (self.google_client_email and self.google_private_key)
        )
        return has_credentials and bool(self.spreadsheet_id)

    @property
    def mail_configured(self) -> bool:
        """Check if notification mail can be sent."""
        return bool(self.smtp_host and self.admin_email)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
