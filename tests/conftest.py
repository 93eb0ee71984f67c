"""
Shared fixtures.

No test talks to a real service: billing, the AI model and SMS HTTP are
replaced with fakes, and storage is in memory.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config import PromotionSettings
from finance_tracker.entitlement import EntitlementResolver
from finance_tracker.models.entitlement import UserIdentity
from finance_tracker.models.records import Expense, Income, Investment
from finance_tracker.services.billing import (
    BillingCustomer,
    BillingError,
    BillingProvider,
    BillingSubscription,
    CheckoutSession,
)
from finance_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryEntitlementStore,
    InMemoryRecordStore,
)
from finance_tracker.validation import FormValidator


USER_ID = "user-1"
TODAY = date(2025, 6, 15)


class FakeBillingProvider(BillingProvider):
    """Billing provider with canned answers and call counting."""

    def __init__(
        self,
        customer: Optional[BillingCustomer] = None,
        subscriptions: Optional[list[BillingSubscription]] = None,
        fail: bool = False,
        delay: float = 0.0,
    ):
        self.customer = customer
        self.subscriptions = subscriptions or []
        self.fail = fail
        self.delay = delay
        self.calls: list[str] = []

    async def find_customer_by_email(self, email):
        self.calls.append("find_customer_by_email")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise BillingError("billing unreachable")
        return self.customer

    async def list_active_subscriptions(self, customer_id):
        self.calls.append("list_active_subscriptions")
        if self.fail:
            raise BillingError("billing unreachable")
        return self.subscriptions

    async def create_checkout_session(self, email, success_url, cancel_url):
        self.calls.append("create_checkout_session")
        return CheckoutSession(id="cs_test_1", url="https://checkout.example/cs_test_1")


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_expense(amount, category="Food", day=TODAY, description=None, user_id=USER_ID) -> Expense:
    return Expense(
        user_id=user_id,
        amount=Decimal(str(amount)),
        category=category,
        date=day,
        description=description,
    )


def make_income(amount, source="Salary", day=TODAY, user_id=USER_ID) -> Income:
    return Income(user_id=user_id, amount=Decimal(str(amount)), source=source, date=day)


def make_investment(amount, type_="Stocks", day=TODAY, user_id=USER_ID) -> Investment:
    return Investment(user_id=user_id, amount=Decimal(str(amount)), type=type_, date=day)


@pytest.fixture
def user() -> UserIdentity:
    return UserIdentity(id=USER_ID, email="user@example.com")


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def entitlement_store() -> InMemoryEntitlementStore:
    return InMemoryEntitlementStore()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def validator() -> FormValidator:
    return FormValidator(max_amount=100000000.0)


@pytest.fixture
def promotion() -> PromotionSettings:
    return PromotionSettings(
        enabled=True,
        start=datetime(2025, 10, 14, tzinfo=timezone.utc),
        duration_days=10,
        offer_id="diwali_offer_2025",
    )


@pytest.fixture
def outside_promo_clock() -> FixedClock:
    return FixedClock(datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def billing() -> FakeBillingProvider:
    return FakeBillingProvider()


@pytest.fixture
def resolver(billing, entitlement_store, promotion, outside_promo_clock, audit_logger) -> EntitlementResolver:
    return EntitlementResolver(
        billing_provider=billing,
        store=entitlement_store,
        promotion=promotion,
        clock=outside_promo_clock,
        audit_logger=audit_logger,
    )
