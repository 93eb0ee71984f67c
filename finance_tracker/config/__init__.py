"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    PromotionSettings,
    Settings,
    StripeSettings,
    TwilioSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "PromotionSettings",
    "Settings",
    "StripeSettings",
    "TwilioSettings",
    "get_settings",
    "validate_all_settings",
]
