"""
Entitlement Resolver

DESIGN DECISION: Premium access is decided in one place, in a fixed order:

1. No signed-in user -> not subscribed (nothing is called or written)
2. Promotional window open -> subscribed until the window closes,
   billing provider is NOT consulted
3. Otherwise ask the billing provider: customer by email, then the
   first active subscription

Every outcome except (1) is written to the entitlement store, keyed by
user id, so other parts of the app can read the cached state cheaply.

CRITICAL: A billing failure is an error, never "not subscribed".
Treating an outage as a downgrade would lock paying users out.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import PromotionSettings
from finance_tracker.errors import (
    AuthenticationRequiredError,
    ErrorKind,
    FinanceTrackerError,
)
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.entitlement import (
    EntitlementSource,
    EntitlementState,
    UserIdentity,
)
from finance_tracker.services.billing import (
    BillingError,
    BillingProvider,
)
from finance_tracker.services.storage import EntitlementStore


logger = structlog.get_logger(__name__)


Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Naive timestamps are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class EntitlementResolutionError(FinanceTrackerError):
    """Entitlement could not be determined (billing unavailable or unconfigured)."""
    kind = ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE

    def __init__(self, message: str):
        super().__init__(
            message,
            user_message="Could not check your subscription right now. Please try again.",
        )


def promotional_state(promotion: PromotionSettings, now: datetime) -> Optional[EntitlementState]:
    """
    Premium state granted by the promotional window, if `now` falls inside it.

    Both ends of the window are inclusive.
    """
    if not promotion.enabled:
        return None
    now = as_utc(now)
    if promotion.start <= now <= promotion.end:
        return EntitlementState(
            subscribed=True,
            product_id=promotion.offer_id,
            subscription_end=promotion.end,
            source=EntitlementSource.PROMOTIONAL,
        )
    return None


class EntitlementResolver:
    """
    Resolves and caches premium entitlement for a user.

    Safe to call concurrently for the same user; the last write wins.
    """

    def __init__(
        self,
        billing_provider: Optional[BillingProvider],
        store: EntitlementStore,
        promotion: Optional[PromotionSettings] = None,
        clock: Optional[Clock] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            billing_provider: None when billing is not configured; resolution
                outside a promotional window then fails.
            store: Entitlement cache written on every resolution
            promotion: Promotional window, or None for no promotion
            clock: Returns the current UTC time (injected for tests)
        """
        self._billing = billing_provider
        self._store = store
        self._promotion = promotion
        self._clock = clock or system_clock
        self._audit = audit_logger or AuditLogger()

    async def resolve(self, user: Optional[UserIdentity]) -> EntitlementState:
        """
        Determine the user's current entitlement and cache it.

        Raises:
            AuthenticationRequiredError: User has no email and no promotion applies
            EntitlementResolutionError: Billing provider missing or failing
            StorageError: The cache write failed
        """
        if user is None:
            return EntitlementState.unsubscribed()

        now = as_utc(self._clock())
        state = None
        if self._promotion is not None:
            state = promotional_state(self._promotion, now)

        if state is not None:
            logger.info("promotional_entitlement_granted", user_id=user.id)
        else:
            try:
                state = await self._resolve_from_billing(user)
            except BillingError as e:
                await self._audit.log_external_service_error(
                    service="billing",
                    error_message=str(e),
                    user_id=user.id,
                )
                await self._audit.log(AuditEventBuilder.entitlement_resolution_failed(
                    user_id=user.id,
                    error_message=str(e),
                ))
                raise EntitlementResolutionError(f"Billing lookup failed: {e}")
            except FinanceTrackerError as e:
                await self._audit.log(AuditEventBuilder.entitlement_resolution_failed(
                    user_id=user.id,
                    error_message=str(e),
                ))
                raise

        await self._store.upsert(user.id, state)

        logger.info("entitlement_resolved", user_id=user.id, **state.to_log_dict())
        await self._audit.log(AuditEventBuilder.entitlement_resolved(
            user_id=user.id,
            state=state.to_log_dict(),
        ))
        return state

    async def _resolve_from_billing(self, user: UserIdentity) -> EntitlementState:
        if not user.email:
            raise AuthenticationRequiredError(
                f"User {user.id} has no email available for billing lookup"
            )
        if self._billing is None:
            raise EntitlementResolutionError("Billing provider is not configured")

        customer = await self._billing.find_customer_by_email(user.email)
        if customer is None:
            logger.info("billing_customer_not_found", user_id=user.id)
            return EntitlementState.unsubscribed()

        subscriptions = await self._billing.list_active_subscriptions(customer.id)

        if not subscriptions:
            logger.info("no_active_subscription", user_id=user.id, customer_id=customer.id)
            return EntitlementState.unsubscribed()

        subscription = subscriptions[0]
        return EntitlementState(
            subscribed=True,
            product_id=subscription.product_id,
            subscription_end=datetime.fromtimestamp(
                subscription.current_period_end,
                tz=timezone.utc,
            ),
            source=EntitlementSource.BILLING,
        )

    async def get_cached(self, user: Optional[UserIdentity]) -> EntitlementState:
        """Last stored state for the user, or unsubscribed if none."""
        if user is None:
            return EntitlementState.unsubscribed()
        state = await self._store.get(user.id)
        return state or EntitlementState.unsubscribed()
