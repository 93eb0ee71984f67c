"""Billing provider interface and the Stripe implementation."""

from finance_tracker.services.billing.interface import (
    BillingConfigurationError,
    BillingCustomer,
    BillingError,
    BillingProvider,
    BillingSubscription,
    CheckoutSession,
)
from finance_tracker.services.billing.stripe_service import StripeBillingProvider

__all__ = [
    "BillingConfigurationError",
    "BillingCustomer",
    "BillingError",
    "BillingProvider",
    "BillingSubscription",
    "CheckoutSession",
    "StripeBillingProvider",
]
