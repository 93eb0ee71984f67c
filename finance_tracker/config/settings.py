"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each external collaborator (billing, AI, SMS, spreadsheet storage) gets its
own settings class with an env prefix, so a missing key only breaks the
service that needs it.
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StripeSettings(BaseSettings):
    """Stripe billing provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STRIPE_",
        extra="ignore"
    )

    secret_key: str = Field(
        ...,
        description="Stripe secret API key"
    )
    price_id: Optional[str] = Field(
        default=None,
        description="Price used when creating premium checkout sessions"
    )


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for financial analysis."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    basic_max_tokens: int = Field(
        default=512,
        ge=100,
        le=8192,
        description="Maximum tokens for the basic (free tier) analysis"
    )
    advanced_max_tokens: int = Field(
        default=4096,
        ge=100,
        le=8192,
        description="Maximum tokens for the advanced (premium) analysis"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )


class TwilioSettings(BaseSettings):
    """Twilio SMS gateway configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TWILIO_",
        extra="ignore"
    )

    account_sid: str = Field(
        ...,
        description="Twilio account SID"
    )
    auth_token: str = Field(
        ...,
        description="Twilio auth token"
    )
    phone_number: str = Field(
        default="",
        description="Sender phone number"
    )
    api_base_url: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for a single send"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets record store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    entitlement_sheet_name: str = Field(
        default="SubscriptionStatus",
        description="Name of the sheet holding cached entitlement state"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class PromotionSettings(BaseSettings):
    """
    Promotional premium window.

    While the window is open every signed-in user is treated as premium
    and the billing provider is not consulted.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROMO_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Whether the promotional window applies at all"
    )
    start: datetime = Field(
        default=datetime(2025, 10, 14, tzinfo=timezone.utc),
        description="Start of the promotional window (UTC)"
    )
    duration_days: int = Field(
        default=10,
        ge=0,
        description="Length of the promotional window in days"
    )
    offer_id: str = Field(
        default="diwali_offer_2025",
        description="Product id reported while the promotion is active"
    )

    @field_validator('start')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(days=self.duration_days)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Entitlement
    entitlement_poll_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How often the signed-in user's entitlement is re-checked"
    )

    # Dashboard thresholds
    budget_near_threshold: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Percentage above which a budget is 'near' its limit"
    )
    bill_due_soon_days: int = Field(
        default=3,
        ge=0,
        description="Bills due within this many days are flagged as due soon"
    )

    # Input sanity
    max_amount: float = Field(
        default=100000000.0,
        description="Maximum accepted amount on any form"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Currency symbol used in prompts and reports"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def stripe(self) -> StripeSettings:
        return StripeSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def twilio(self) -> TwilioSettings:
        return TwilioSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def promotion(self) -> PromotionSettings:
        return PromotionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each section that failed to load.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("stripe", "gemini", "twilio", "google_sheets", "promotion", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
