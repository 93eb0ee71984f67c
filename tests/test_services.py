"""Tests for the external service adapters, with fake transports."""

import pytest
import requests
import stripe
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from google.api_core import exceptions as google_exceptions

from conftest import USER_ID, make_expense, make_income, make_investment
from finance_tracker.config import GeminiSettings, StripeSettings, TwilioSettings
from finance_tracker.entitlement import EntitlementResolutionError, EntitlementResolver
from finance_tracker.errors import ErrorKind
from finance_tracker.services.ai import (
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    FinancialAnalysisService,
    build_advanced_prompt,
    build_basic_prompt,
)
from finance_tracker.services.billing import BillingConfigurationError, BillingError
from finance_tracker.services.billing.stripe_service import (
    StripeBillingProvider,
    _subscription_from_stripe,
)
from finance_tracker.services.sms import SMSError, TwilioSMSGateway
from finance_tracker.services.storage import Collection, InMemoryRecordStore, NotFoundError


# =============================================================================
# AI
# =============================================================================

class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, text="Spend less on food.", error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


def _ai_service(model: FakeModel) -> tuple[FinancialAnalysisService, list[int]]:
    token_limits = []

    def factory(max_output_tokens):
        token_limits.append(max_output_tokens)
        return model

    service = FinancialAnalysisService(
        settings=GeminiSettings(api_key="test-key"),
        currency_symbol="₹",
        model_factory=factory,
    )
    return service, token_limits


class TestPrompts:
    """Prompt contents per tier."""

    def test_basic_prompt_has_totals_only(self):
        prompt = build_basic_prompt([make_expense(40)], [make_income(100)], [make_investment(10)])
        assert "Income: ₹100.00" in prompt
        assert "Expenses: ₹40.00" in prompt
        assert "Net Balance: ₹50.00" in prompt
        assert "Investments" not in prompt
        assert "one key recommendation" in prompt

    def test_advanced_prompt_has_breakdown_and_brief(self):
        prompt = build_advanced_prompt(
            [make_expense(40, "Food"), make_expense(10, "Rent")],
            [make_income(100)],
            [make_investment(10)],
            currency_symbol="$",
        )
        assert '(breakdown: {"Food": 40.0, "Rent": 10.0})' in prompt
        assert "Investments: $10.00" in prompt
        assert "5. Tax optimization strategies" in prompt
        assert "7. Key action items" in prompt


class TestFinancialAnalysisService:
    """Gemini adapter behavior with a fake model."""

    @pytest.mark.asyncio
    async def test_returns_stripped_text(self):
        model = FakeModel(text="  Save more.  ")
        service, limits = _ai_service(model)

        text = await service.analyze([make_expense(1)], [], [], advanced=False)

        assert text == "Save more."
        assert limits == [512]
        assert "Income: ₹0.00" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_models_are_cached_per_tier(self):
        service, limits = _ai_service(FakeModel())
        await service.analyze([], [], [], advanced=True)
        await service.analyze([], [], [], advanced=True)
        await service.analyze([], [], [], advanced=False)
        assert limits == [4096, 512]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, error_type, kind",
        [
            (429, AIRateLimitError, ErrorKind.RATE_LIMITED),
            (402, AIQuotaExceededError, ErrorKind.QUOTA_EXCEEDED),
            (500, AIServiceError, ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE),
        ],
    )
    async def test_gateway_errors_are_mapped(self, status, error_type, kind):
        error = google_exceptions.from_http_status(status, "gateway said no")
        service, _ = _ai_service(FakeModel(error=error))

        with pytest.raises(error_type) as exc_info:
            await service.analyze([], [], [])
        assert exc_info.value.kind == kind

    @pytest.mark.asyncio
    async def test_rate_limit_user_message(self):
        error = google_exceptions.from_http_status(429, "slow down")
        service, _ = _ai_service(FakeModel(error=error))

        with pytest.raises(AIRateLimitError) as exc_info:
            await service.analyze([], [], [])
        assert "Rate limit" in exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_service_error(self):
        service, _ = _ai_service(FakeModel(error=ConnectionError("reset")))
        with pytest.raises(AIServiceError):
            await service.analyze([], [], [])

    @pytest.mark.asyncio
    async def test_empty_text_is_an_error(self):
        service, _ = _ai_service(FakeModel(text="   "))
        with pytest.raises(AIServiceError):
            await service.analyze([], [], [])


# =============================================================================
# SMS
# =============================================================================

class FakeHTTPResponse:
    def __init__(self, status_code=201, payload=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload if payload is not None else {"sid": "SM123"}
        self.text = str(self._payload)

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeHTTPResponse()
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _twilio_settings() -> TwilioSettings:
    return TwilioSettings(
        account_sid="AC123",
        auth_token="secret",
        phone_number="+15550000",
    )


class TestTwilioSMSGateway:
    """Twilio adapter with a fake HTTP session."""

    @pytest.mark.asyncio
    async def test_send_posts_form_and_returns_sid(self):
        session = FakeSession()
        gateway = TwilioSMSGateway(_twilio_settings(), session=session)

        sid = await gateway.send("+15550100", "Rent due")

        assert sid == "SM123"
        url, kwargs = session.calls[0]
        assert url == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        assert kwargs["data"] == {"To": "+15550100", "From": "+15550000", "Body": "Rent due"}
        assert kwargs["auth"] == ("AC123", "secret")

    @pytest.mark.asyncio
    async def test_rejected_send(self):
        session = FakeSession(FakeHTTPResponse(400, {"message": "invalid number"}))
        gateway = TwilioSMSGateway(_twilio_settings(), session=session)

        with pytest.raises(SMSError):
            await gateway.send("bad", "hi")

    @pytest.mark.asyncio
    async def test_network_failure(self):
        session = FakeSession(error=requests.ConnectionError("down"))
        gateway = TwilioSMSGateway(_twilio_settings(), session=session)

        with pytest.raises(SMSError) as exc_info:
            await gateway.send("+15550100", "hi")
        assert exc_info.value.user_message == "Failed to send notification. Please try again."

    @pytest.mark.asyncio
    async def test_missing_sid(self):
        session = FakeSession(FakeHTTPResponse(201, {"status": "queued"}))
        gateway = TwilioSMSGateway(_twilio_settings(), session=session)

        with pytest.raises(SMSError):
            await gateway.send("+15550100", "hi")


# =============================================================================
# BILLING
# =============================================================================

class TestStripeMapping:
    """Reduction of Stripe subscription payloads."""

    def test_period_end_on_subscription(self):
        subscription = {
            "id": "sub_1",
            "current_period_end": 1767225600,
            "items": {"data": [{"price": {"product": "prod_X"}}]},
        }
        result = _subscription_from_stripe(subscription)
        assert result.product_id == "prod_X"
        assert result.current_period_end == 1767225600

    def test_period_end_on_item(self):
        subscription = {
            "id": "sub_1",
            "items": {"data": [{"price": {"product": "prod_X"}, "current_period_end": 1767225600}]},
        }
        assert _subscription_from_stripe(subscription).current_period_end == 1767225600

    def test_no_items(self):
        result = _subscription_from_stripe({"id": "sub_1", "current_period_end": 5})
        assert result.product_id is None

    def test_missing_period_end_is_an_error(self):
        subscription = {"id": "sub_1", "items": {"data": [{"price": {"product": "prod_X"}}]}}
        with pytest.raises(BillingError, match="no current_period_end"):
            _subscription_from_stripe(subscription)

    @pytest.mark.asyncio
    async def test_missing_period_end_fails_resolution(
        self, monkeypatch, entitlement_store, promotion, outside_promo_clock, user,
    ):
        monkeypatch.setattr(
            stripe.Customer, "list",
            lambda **kwargs: SimpleNamespace(data=[{"id": "cus_1", "email": user.email}]),
        )
        monkeypatch.setattr(
            stripe.Subscription, "list",
            lambda **kwargs: SimpleNamespace(
                data=[{"id": "sub_1", "items": {"data": [{"price": {"product": "prod_X"}}]}}]
            ),
        )
        provider = StripeBillingProvider(StripeSettings(secret_key="sk_test_1"))
        resolver = EntitlementResolver(provider, entitlement_store, promotion, outside_promo_clock)

        with pytest.raises(EntitlementResolutionError):
            await resolver.resolve(user)
        assert entitlement_store.write_count == 0

    def test_missing_secret_key(self):
        with pytest.raises(BillingConfigurationError):
            StripeBillingProvider(StripeSettings(secret_key=""))

    @pytest.mark.asyncio
    async def test_checkout_requires_price(self):
        provider = StripeBillingProvider(StripeSettings(secret_key="sk_test_1", price_id=None))
        with pytest.raises(BillingConfigurationError):
            await provider.create_checkout_session("a@b.c", "https://app/success", "https://app/cancel")


# =============================================================================
# STORAGE
# =============================================================================

class TestInMemoryRecordStore:
    """Per-user isolation and ordering."""

    @pytest.mark.asyncio
    async def test_records_are_scoped_to_user(self):
        store = InMemoryRecordStore()
        mine = await store.insert(Collection.EXPENSES, make_expense(10))
        await store.insert(Collection.EXPENSES, make_expense(20, user_id="someone-else"))

        assert await store.list_records(Collection.EXPENSES, USER_ID) == [mine]
        assert await store.get(Collection.EXPENSES, mine.id, "someone-else") is None
        assert await store.delete(Collection.EXPENSES, mine.id, "someone-else") is False
        assert await store.delete(Collection.EXPENSES, mine.id, USER_ID) is True
        assert await store.list_records(Collection.EXPENSES, USER_ID) == []

    @pytest.mark.asyncio
    async def test_ordering(self):
        store = InMemoryRecordStore()
        old = await store.insert(Collection.EXPENSES, make_expense(1, day=date(2025, 1, 1)))
        new = await store.insert(Collection.EXPENSES, make_expense(1, day=date(2025, 3, 1)))

        assert await store.list_records(
            Collection.EXPENSES, USER_ID, order_by="date", descending=True,
        ) == [new, old]

    @pytest.mark.asyncio
    async def test_update_missing_record(self):
        store = InMemoryRecordStore()
        with pytest.raises(NotFoundError):
            await store.update(Collection.EXPENSES, make_expense(1))

    @pytest.mark.asyncio
    async def test_update_replaces_record(self):
        store = InMemoryRecordStore()
        expense = await store.insert(Collection.EXPENSES, make_expense(1))
        changed = expense.model_copy(update={"amount": Decimal("2")})

        await store.update(Collection.EXPENSES, changed)
        assert (await store.get(Collection.EXPENSES, expense.id, USER_ID)).amount == Decimal("2")

    @pytest.mark.asyncio
    async def test_get_unknown_id(self):
        store = InMemoryRecordStore()
        assert await store.get(Collection.BUDGETS, uuid4(), USER_ID) is None
