"""
Billing Provider Interface

DESIGN DECISION: Entitlement resolution only needs two lookups from the
billing provider (customer by email, active subscriptions by customer)
plus checkout-session creation for the upgrade path. Keeping them behind
an ABC lets the resolver be tested with a fake provider that counts calls.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.errors import ErrorKind, FinanceTrackerError


class BillingCustomer(BaseModel):
    """Customer record at the billing provider."""

    id: str = Field(..., min_length=1)
    email: Optional[str] = None


class BillingSubscription(BaseModel):
    """An active subscription, reduced to what entitlement needs."""

    id: str = Field(..., min_length=1)
    product_id: Optional[str] = Field(
        default=None,
        description="Product of the first item's price"
    )
    current_period_end: int = Field(
        ...,
        description="End of the current billing period, epoch seconds"
    )


class CheckoutSession(BaseModel):
    """Hosted checkout page the user is redirected to."""

    id: str
    url: Optional[str] = None


class BillingProvider(ABC):
    """Abstract interface for the subscription billing provider."""

    @abstractmethod
    async def find_customer_by_email(self, email: str) -> Optional[BillingCustomer]:
        """
        First customer registered with this email, or None.

        Raises:
            BillingError: If the provider cannot be reached
        """
        pass

    @abstractmethod
    async def list_active_subscriptions(
        self,
        customer_id: str,
    ) -> list[BillingSubscription]:
        """
        Active subscriptions of a customer, in provider order.

        Raises:
            BillingError: If the provider cannot be reached
        """
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        email: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Start a premium subscription checkout for `email`."""
        pass


class BillingError(FinanceTrackerError):
    """Billing provider call failed."""
    kind = ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE


class BillingConfigurationError(BillingError):
    """Billing provider is not configured (e.g. missing API key)."""
    pass
