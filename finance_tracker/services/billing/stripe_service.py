"""
Stripe Billing Provider

Wraps the three Stripe calls the app makes: customer lookup by email,
active subscription listing, and subscription checkout creation.

The API key is passed per request rather than set on the global
`stripe.api_key`, so two providers with different keys can coexist
(e.g. in tests).
"""

from typing import Optional

import stripe
import structlog

from finance_tracker.config import StripeSettings, get_settings
from finance_tracker.services.billing.interface import (
    BillingConfigurationError,
    BillingCustomer,
    BillingError,
    BillingProvider,
    BillingSubscription,
    CheckoutSession,
)


logger = structlog.get_logger(__name__)


def _first_item(subscription) -> Optional[object]:
    items = subscription["items"]["data"] if subscription.get("items") else []
    return items[0] if items else None


def _subscription_from_stripe(subscription) -> BillingSubscription:
    """
    Reduce a Stripe subscription object.

    Newer API versions moved `current_period_end` from the subscription
    onto its items; both places are checked. A subscription with neither
    is a billing error, never an entitlement without an end date.
    """
    item = _first_item(subscription)

    product_id = None
    if item is not None and item.get("price"):
        product = item["price"].get("product")
        # Product may come back expanded
        product_id = product if isinstance(product, str) else getattr(product, "id", None)

    period_end = subscription.get("current_period_end")
    if period_end is None and item is not None:
        period_end = item.get("current_period_end")
    if period_end is None:
        raise BillingError(
            f"Stripe subscription {subscription['id']} has no current_period_end"
        )

    return BillingSubscription(
        id=subscription["id"],
        product_id=product_id,
        current_period_end=int(period_end),
    )


class StripeBillingProvider(BillingProvider):
    """Stripe implementation of the billing provider."""

    def __init__(self, settings: Optional[StripeSettings] = None):
        if settings is None:
            try:
                settings = get_settings().stripe
            except Exception as e:
                raise BillingConfigurationError(f"STRIPE_SECRET_KEY is not set: {e}")

        if not settings.secret_key:
            raise BillingConfigurationError("STRIPE_SECRET_KEY is not set")

        self._settings = settings

    async def find_customer_by_email(self, email: str) -> Optional[BillingCustomer]:
        try:
            customers = stripe.Customer.list(
                email=email,
                limit=1,
                api_key=self._settings.secret_key,
            )
        except stripe.StripeError as e:
            raise BillingError(f"Stripe customer lookup failed: {e}")

        if not customers.data:
            return None

        customer = customers.data[0]
        logger.debug("stripe_customer_found", customer_id=customer["id"])
        return BillingCustomer(id=customer["id"], email=customer.get("email"))

    async def list_active_subscriptions(
        self,
        customer_id: str,
    ) -> list[BillingSubscription]:
        try:
            subscriptions = stripe.Subscription.list(
                customer=customer_id,
                status="active",
                limit=1,
                api_key=self._settings.secret_key,
            )
        except stripe.StripeError as e:
            raise BillingError(f"Stripe subscription lookup failed: {e}")

        return [_subscription_from_stripe(s) for s in subscriptions.data]

    async def create_checkout_session(
        self,
        email: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        if not self._settings.price_id:
            raise BillingConfigurationError("STRIPE_PRICE_ID is not set")

        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": self._settings.price_id, "quantity": 1}],
                customer_email=email,
                success_url=success_url + "?session_id={CHECKOUT_SESSION_ID}",
                cancel_url=cancel_url,
                api_key=self._settings.secret_key,
            )
        except stripe.StripeError as e:
            raise BillingError(f"Stripe checkout creation failed: {e}")

        return CheckoutSession(id=session["id"], url=session.get("url"))
