"""
Integration tests for the user-facing flows.

Flows run against in-memory stores with fake billing, AI and SMS.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from conftest import TODAY, USER_ID
from finance_tracker.errors import AuthenticationRequiredError, PremiumRequiredError
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.entitlement import (
    EntitlementSource,
    EntitlementState,
    UserIdentity,
)
from finance_tracker.models.records import NotificationStatus, TransactionKind
from finance_tracker.models.summaries import BillDueState, BudgetTier, SortKey
from finance_tracker.orchestrator import (
    AnalysisFlow,
    BudgetFlow,
    DashboardFlow,
    ExportFlow,
    GoalFlow,
    NotificationFlow,
    ReminderFlow,
    SubscriptionFlow,
    TransactionFlow,
    create_app_components,
)
from finance_tracker.services.ai import AIRateLimitError, AIServiceError
from finance_tracker.services.billing import BillingConfigurationError
from finance_tracker.services.sms import SMSError
from finance_tracker.services.storage import Collection, NotFoundError
from finance_tracker.validation import InputValidationError


PREMIUM = EntitlementState(subscribed=True, product_id="prod_X", source=EntitlementSource.BILLING)
FREE = EntitlementState.unsubscribed()


class FakeAIService:
    def __init__(self, text="Cut dining out.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def analyze(self, expenses, income, investments, advanced=False):
        self.calls.append({"expenses": len(expenses), "income": len(income), "advanced": advanced})
        if self.error is not None:
            raise self.error
        return self.text


class FakeSMSGateway:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def send(self, to, body):
        if self.error is not None:
            raise self.error
        self.sent.append((to, body))
        return "SM123"


@pytest.fixture
def flow_args(record_store, validator, audit_logger):
    return dict(
        store=record_store,
        validator=validator,
        audit_logger=audit_logger,
        today=lambda: TODAY,
    )


def _event_types(audit_storage) -> list[AuditEventType]:
    return [event.event_type for event in audit_storage.events]


class TestTransactionFlow:
    """Adding, listing, deleting and searching transactions."""

    @pytest.mark.asyncio
    async def test_add_expense_stores_and_audits(self, flow_args, record_store, audit_storage, user):
        flow = TransactionFlow(**flow_args)
        expense = await flow.add_expense(user, {"amount": "25", "category": "Food"})

        assert expense.user_id == USER_ID
        assert expense.date == TODAY
        assert await record_store.list_records(Collection.EXPENSES, USER_ID) == [expense]
        assert _event_types(audit_storage) == [AuditEventType.RECORD_CREATED]

    @pytest.mark.asyncio
    async def test_invalid_form_writes_nothing(self, flow_args, record_store, audit_storage, user):
        flow = TransactionFlow(**flow_args)
        with pytest.raises(InputValidationError):
            await flow.add_income(user, {"amount": "lots", "source": "Salary"})

        assert await record_store.list_records(Collection.INCOME, USER_ID) == []
        assert _event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    @pytest.mark.asyncio
    async def test_signed_out_user_is_rejected(self, flow_args):
        flow = TransactionFlow(**flow_args)
        with pytest.raises(AuthenticationRequiredError):
            await flow.add_investment(None, {"amount": "1", "type": "Stocks"})

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, flow_args, user):
        flow = TransactionFlow(**flow_args)
        old = await flow.add_expense(user, {"amount": "1", "category": "Food", "date": "2025-01-01"})
        new = await flow.add_expense(user, {"amount": "1", "category": "Food", "date": "2025-03-01"})

        assert await flow.list_transactions(user, TransactionKind.EXPENSE) == [new, old]

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_owner(self, flow_args, user):
        flow = TransactionFlow(**flow_args)
        expense = await flow.add_expense(user, {"amount": "1", "category": "Food"})
        other = UserIdentity(id="someone-else", email="x@example.com")

        with pytest.raises(NotFoundError):
            await flow.delete(other, TransactionKind.EXPENSE, expense.id)

        await flow.delete(user, TransactionKind.EXPENSE, expense.id)
        assert await flow.list_transactions(user, TransactionKind.EXPENSE) == []

    @pytest.mark.asyncio
    async def test_history_search_and_sort(self, flow_args, user):
        flow = TransactionFlow(**flow_args)
        await flow.add_expense(user, {"amount": "10", "category": "Food", "description": "lunch"})
        await flow.add_expense(user, {"amount": "30", "category": "Food", "description": "dinner"})
        await flow.add_expense(user, {"amount": "5", "category": "Transportation", "description": "bus"})

        food = await flow.history(user, category="Food", sort=SortKey.AMOUNT_ASC)
        assert [e.amount for e in food] == [Decimal("10"), Decimal("30")]

        found = await flow.history(user, term="BUS")
        assert [e.description for e in found] == ["bus"]

        assert await flow.categories(user) == ["Food", "Transportation"]


class TestPlanningFlows:
    """Budgets, goals and reminders."""

    @pytest.mark.asyncio
    async def test_budget_status_from_current_expenses(self, flow_args, user):
        transactions = TransactionFlow(**flow_args)
        budgets = BudgetFlow(**flow_args)

        await budgets.create(user, {"category": "Food", "amount": "500"})
        await transactions.add_expense(user, {"amount": "450", "category": "Food"})

        [status] = await budgets.statuses(user)
        assert status.spent == Decimal("450")
        assert status.tier == BudgetTier.NEAR

    @pytest.mark.asyncio
    async def test_add_funds_completes_goal(self, flow_args, audit_storage, user):
        goals = GoalFlow(**flow_args)
        goal = await goals.create(
            user, {"title": "Laptop", "target_amount": "1000", "current_amount": "800"}
        )

        updated = await goals.add_funds(user, goal.id, {"amount": "250"})

        assert updated.current_amount == Decimal("1050")
        assert updated.is_completed is True
        active, completed = await goals.progress(user)
        assert active == []
        assert completed[0].goal.id == goal.id
        assert audit_storage.events[-1].event_type == AuditEventType.GOAL_FUNDS_ADDED

    @pytest.mark.asyncio
    async def test_add_funds_rejects_zero(self, flow_args, user):
        goals = GoalFlow(**flow_args)
        goal = await goals.create(user, {"title": "Laptop", "target_amount": "1000"})

        with pytest.raises(InputValidationError):
            await goals.add_funds(user, goal.id, {"amount": "0"})

    @pytest.mark.asyncio
    async def test_add_funds_to_unknown_goal(self, flow_args, user):
        goals = GoalFlow(**flow_args)
        with pytest.raises(NotFoundError):
            await goals.add_funds(user, uuid4(), {"amount": "10"})

    @pytest.mark.asyncio
    async def test_bill_lifecycle(self, flow_args, user):
        reminders = ReminderFlow(**flow_args)
        bill = await reminders.create_bill(
            user, {"title": "Power", "amount": "60", "due_date": "2025-06-17"}
        )

        unpaid, paid = await reminders.bill_statuses(user)
        assert [s.state for s in unpaid] == [BillDueState.DUE_SOON]
        assert paid == []

        updated = await reminders.mark_bill_paid(user, bill.id)
        assert updated.is_paid is True
        assert updated.paid_date is not None

        unpaid, paid = await reminders.bill_statuses(user)
        assert unpaid == []
        assert paid[0].state == BillDueState.PAID

    @pytest.mark.asyncio
    async def test_recurring_toggle(self, flow_args, user):
        reminders = ReminderFlow(**flow_args)
        later = await reminders.create_recurring(
            user,
            {"description": "Gym", "amount": "30", "category": "Health", "next_due_date": "2025-08-01"},
        )
        sooner = await reminders.create_recurring(
            user,
            {"description": "Phone", "amount": "20", "category": "Bills", "next_due_date": "2025-07-01"},
        )

        paused = await reminders.toggle_recurring(user, later.id)
        assert paused.is_active is False
        assert [r.id for r in await reminders.list_recurring(user)] == [sooner.id, later.id]

        await reminders.delete_recurring(user, sooner.id)
        assert [r.id for r in await reminders.list_recurring(user)] == [later.id]


class TestDashboardFlow:

    @pytest.mark.asyncio
    async def test_summary_and_trend(self, flow_args, record_store, user):
        transactions = TransactionFlow(**flow_args)
        await transactions.add_income(user, {"amount": "1000", "source": "Salary"})
        await transactions.add_expense(user, {"amount": "300", "category": "Food", "date": "2025-05-10"})

        dashboard = DashboardFlow(record_store, today=lambda: TODAY)
        summary = await dashboard.summary(user)
        assert summary.net_balance == Decimal("700")

        trend = await dashboard.trend(user)
        assert trend[-1].month == "Jun 2025"
        assert trend[-1].income == Decimal("1000")
        assert trend[-2].expenses == Decimal("300")


class TestAnalysisFlow:
    """AI analysis tier follows entitlement."""

    @pytest.mark.asyncio
    async def test_free_user_gets_basic(self, record_store, resolver, audit_logger, audit_storage, user):
        ai = FakeAIService()
        flow = AnalysisFlow(record_store, resolver, ai, audit_logger)

        assert await flow.analyze(user) == "Cut dining out."
        assert ai.calls[0]["advanced"] is False
        assert _event_types(audit_storage) == [
            AuditEventType.ANALYSIS_REQUESTED,
            AuditEventType.ANALYSIS_COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_premium_user_gets_advanced(self, record_store, resolver, audit_logger, user):
        ai = FakeAIService()
        flow = AnalysisFlow(record_store, resolver, ai, audit_logger)

        await flow.analyze(user, entitlement=PREMIUM)
        assert ai.calls[0]["advanced"] is True

    @pytest.mark.asyncio
    async def test_failure_is_audited_and_raised(self, record_store, resolver, audit_logger, audit_storage, user):
        flow = AnalysisFlow(record_store, resolver, FakeAIService(error=AIRateLimitError("429")), audit_logger)

        with pytest.raises(AIRateLimitError):
            await flow.analyze(user, entitlement=FREE)
        assert audit_storage.events[-1].event_type == AuditEventType.ANALYSIS_FAILED

    @pytest.mark.asyncio
    async def test_unconfigured_service(self, record_store, resolver, audit_logger, user):
        flow = AnalysisFlow(record_store, resolver, None, audit_logger)
        with pytest.raises(AIServiceError):
            await flow.analyze(user, entitlement=FREE)


class TestNotificationFlow:
    """Premium-gated SMS with a notification log."""

    def _flow(self, record_store, resolver, validator, audit_logger, gateway):
        return NotificationFlow(record_store, resolver, gateway, validator, audit_logger)

    @pytest.mark.asyncio
    async def test_free_user_is_refused_without_log(self, record_store, resolver, validator, audit_logger, user):
        gateway = FakeSMSGateway()
        flow = self._flow(record_store, resolver, validator, audit_logger, gateway)

        with pytest.raises(PremiumRequiredError):
            await flow.send(user, {"to": "+15550100", "message": "hi"}, entitlement=FREE)

        assert gateway.sent == []
        assert await flow.history(user) == []

    @pytest.mark.asyncio
    async def test_successful_send_is_logged(self, record_store, resolver, validator, audit_logger, user):
        gateway = FakeSMSGateway()
        flow = self._flow(record_store, resolver, validator, audit_logger, gateway)

        message_id = await flow.send(
            user, {"to": "+15550100", "message": "Rent due", "type": "bill"}, entitlement=PREMIUM
        )

        assert message_id == "SM123"
        assert gateway.sent == [("+15550100", "Rent due")]
        [entry] = await flow.history(user)
        assert entry.status == NotificationStatus.SENT
        assert entry.provider_message_id == "SM123"
        assert entry.notification_type == "bill"

    @pytest.mark.asyncio
    async def test_gateway_failure_is_logged_and_raised(
        self, record_store, resolver, validator, audit_logger, audit_storage, user,
    ):
        gateway = FakeSMSGateway(error=SMSError("Twilio error: 400"))
        flow = self._flow(record_store, resolver, validator, audit_logger, gateway)

        with pytest.raises(SMSError):
            await flow.send(user, {"to": "+15550100", "message": "Rent due"}, entitlement=PREMIUM)

        [entry] = await flow.history(user)
        assert entry.status == NotificationStatus.FAILED
        assert entry.message == "Rent due"
        assert _event_types(audit_storage)[-2:] == [
            AuditEventType.NOTIFICATION_FAILED,
            AuditEventType.EXTERNAL_SERVICE_ERROR,
        ]

    @pytest.mark.asyncio
    async def test_missing_fields_are_logged_as_failed(self, record_store, resolver, validator, audit_logger, user):
        flow = self._flow(record_store, resolver, validator, audit_logger, FakeSMSGateway())

        with pytest.raises(InputValidationError):
            await flow.send(user, {"to": "+15550100", "message": ""}, entitlement=PREMIUM)

        [entry] = await flow.history(user)
        assert entry.status == NotificationStatus.FAILED
        assert entry.message == "Failed to send"

    @pytest.mark.asyncio
    async def test_unconfigured_gateway(self, record_store, resolver, validator, audit_logger, user):
        flow = self._flow(record_store, resolver, validator, audit_logger, None)

        with pytest.raises(SMSError):
            await flow.send(user, {"to": "+15550100", "message": "hi"}, entitlement=PREMIUM)
        assert (await flow.history(user))[0].status == NotificationStatus.FAILED

    @pytest.mark.asyncio
    async def test_uses_cached_entitlement(
        self, record_store, resolver, entitlement_store, validator, audit_logger, user,
    ):
        await entitlement_store.upsert(user.id, PREMIUM)
        flow = self._flow(record_store, resolver, validator, audit_logger, FakeSMSGateway())

        assert await flow.send(user, {"to": "+15550100", "message": "hi"}) == "SM123"


class TestExportFlow:

    @pytest.mark.asyncio
    async def test_csv_export(self, flow_args, record_store, audit_storage, user):
        transactions = TransactionFlow(**flow_args)
        await transactions.add_expense(
            user, {"amount": "10", "category": "Food", "description": "lunch", "date": "2025-01-01"}
        )

        exports = ExportFlow(record_store, flow_args["audit_logger"], today=lambda: TODAY)
        filename, content = await exports.csv(user)

        assert filename == "financial-data-2025-06-15.csv"
        assert content.splitlines()[1] == 'Expense,2025-01-01,"lunch",Food,10'
        assert audit_storage.events[-1].event_type == AuditEventType.EXPORT_GENERATED

    @pytest.mark.asyncio
    async def test_pdf_export(self, record_store, audit_logger, user):
        exports = ExportFlow(record_store, audit_logger, today=lambda: date(2025, 6, 15))
        filename, content = await exports.pdf(user)

        assert filename == "financial-report-2025-06-15.pdf"
        assert content.startswith(b"%PDF")


class TestSubscriptionFlow:

    @pytest.mark.asyncio
    async def test_checkout(self, resolver, billing, audit_logger, audit_storage, user):
        flow = SubscriptionFlow(resolver, billing, audit_logger)
        session = await flow.start_checkout(user, "https://app/success", "https://app/cancel")

        assert session.url == "https://checkout.example/cs_test_1"
        assert audit_storage.events[-1].event_type == AuditEventType.CHECKOUT_STARTED

    @pytest.mark.asyncio
    async def test_checkout_without_billing(self, resolver, audit_logger, user):
        flow = SubscriptionFlow(resolver, None, audit_logger)
        with pytest.raises(BillingConfigurationError):
            await flow.start_checkout(user, "https://app/success", "https://app/cancel")

    @pytest.mark.asyncio
    async def test_checkout_needs_email(self, resolver, billing, audit_logger):
        flow = SubscriptionFlow(resolver, billing, audit_logger)
        with pytest.raises(AuthenticationRequiredError):
            await flow.start_checkout(UserIdentity(id="u2"), "https://a", "https://b")

    @pytest.mark.asyncio
    async def test_check_resolves(self, resolver, user):
        flow = SubscriptionFlow(resolver)
        assert (await flow.check(user)).subscribed is False


class TestCreateAppComponents:

    @pytest.mark.asyncio
    async def test_wires_explicit_collaborators(self, record_store, entitlement_store, billing, user):
        ai = FakeAIService()
        components = create_app_components(
            use_storage=False,
            record_store=record_store,
            entitlement_store=entitlement_store,
            billing_provider=billing,
            ai_service=ai,
            sms_gateway=FakeSMSGateway(),
            today=lambda: TODAY,
        )

        expense = await components.transactions.add_expense(user, {"amount": "5", "category": "Food"})
        assert await record_store.list_records(Collection.EXPENSES, USER_ID) == [expense]
        assert components.sheets_client is None

        await components.analysis.analyze(user, entitlement=FREE)
        assert ai.calls[0]["expenses"] == 1
