"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
user-facing flows:
1. Transactions (validate -> store -> audit), history search and sort
2. Budgets, savings goals, recurring expenses and bill reminders
3. Dashboard summary and monthly trend
4. AI analysis (tier chosen by entitlement)
5. SMS notifications (premium only, every attempt logged)
6. CSV / PDF export
7. Subscription check and checkout

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written before validation passes
- Every record is scoped to the signed-in user
- Premium features check entitlement before calling out
- Every step is audited

Flows raise FinanceTrackerError subclasses; presentation layers wrap
calls with `run_operation` to get an OperationResult.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping, Optional
from uuid import UUID

import structlog

from finance_tracker.aggregation import (
    ALL_CATEGORIES,
    add_funds,
    bill_due_status,
    budget_statuses,
    dashboard_summary,
    distinct_categories,
    goal_progress,
    monthly_trend,
    search_records,
    sort_records,
    split_bills,
    split_goals,
)
from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.entitlement import EntitlementMonitor, EntitlementResolver
from finance_tracker.errors import AuthenticationRequiredError, PremiumRequiredError
from finance_tracker.export import (
    csv_filename,
    export_csv,
    export_pdf,
    pdf_filename,
)
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.entitlement import EntitlementState, UserIdentity
from finance_tracker.models.records import (
    BillReminder,
    Budget,
    Expense,
    Income,
    Investment,
    NotificationLogEntry,
    NotificationStatus,
    RecurringExpense,
    SavingsGoal,
    TransactionKind,
    TransactionRecord,
    utc_now,
)
from finance_tracker.models.summaries import (
    BillDueStatus,
    BudgetStatus,
    DashboardSummary,
    GoalProgress,
    SortKey,
    TrendPoint,
)
from finance_tracker.services.ai import AIServiceError, FinancialAnalysisService
from finance_tracker.services.billing import (
    BillingConfigurationError,
    BillingProvider,
    CheckoutSession,
    StripeBillingProvider,
)
from finance_tracker.services.sms import (
    SMSConfigurationError,
    SMSError,
    TwilioSMSGateway,
)
from finance_tracker.services.storage import (
    Collection,
    EntitlementStore,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntitlementStore,
    GoogleSheetsRecordStore,
    InMemoryEntitlementStore,
    InMemoryRecordStore,
    NotFoundError,
    RecordStore,
)
from finance_tracker.validation import FormValidator, InputValidationError


logger = structlog.get_logger(__name__)


Today = Callable[[], date]

TRANSACTION_COLLECTIONS: dict[TransactionKind, Collection] = {
    TransactionKind.EXPENSE: Collection.EXPENSES,
    TransactionKind.INCOME: Collection.INCOME,
    TransactionKind.INVESTMENT: Collection.INVESTMENTS,
}


def require_user(user: Optional[UserIdentity]) -> UserIdentity:
    if user is None:
        raise AuthenticationRequiredError("No signed-in user")
    return user


async def load_transactions(
    store: RecordStore,
    user_id: str,
) -> tuple[list[Expense], list[Income], list[Investment]]:
    """All three transaction kinds for one user, newest first."""
    expenses = await store.list_records(Collection.EXPENSES, user_id, order_by="date", descending=True)
    income = await store.list_records(Collection.INCOME, user_id, order_by="date", descending=True)
    investments = await store.list_records(Collection.INVESTMENTS, user_id, order_by="date", descending=True)
    return expenses, income, investments


class _RecordFlow:
    """Shared plumbing: validated insert, scoped delete, audit."""

    def __init__(
        self,
        store: RecordStore,
        validator: Optional[FormValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[Today] = None,
    ):
        self._store = store
        self._validator = validator or FormValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._today = today or date.today

    async def _validated(self, user: UserIdentity, form: str, build: Callable[[], Any]):
        try:
            return build()
        except InputValidationError as e:
            await self._audit_logger.log_validation_failed(
                form=form,
                issues=[issue.model_dump() for issue in e.issues],
                user_id=user.id,
            )
            raise

    async def _insert(self, user: UserIdentity, collection: Collection, record):
        await self._store.insert(collection, record)
        await self._audit_logger.log_record_created(
            collection=collection.value,
            record_id=record.id,
            user_id=user.id,
        )
        return record

    async def _delete(self, user: UserIdentity, collection: Collection, record_id: UUID) -> None:
        deleted = await self._store.delete(collection, record_id, user.id)
        if not deleted:
            raise NotFoundError(f"{collection.value} record not found: {record_id}")
        await self._audit_logger.log_record_deleted(
            collection=collection.value,
            record_id=record_id,
            user_id=user.id,
        )

    async def _get(self, user: UserIdentity, collection: Collection, record_id: UUID):
        record = await self._store.get(collection, record_id, user.id)
        if record is None:
            raise NotFoundError(f"{collection.value} record not found: {record_id}")
        return record


class TransactionFlow(_RecordFlow):
    """
    Expenses, income and investments.

    Records are created from forms and deleted explicitly; they are
    never edited.
    """

    async def add_expense(self, user: Optional[UserIdentity], form: Mapping[str, Any]) -> Expense:
        user = require_user(user)
        expense = await self._validated(
            user, "expense", lambda: self._validator.expense(user.id, form, self._today())
        )
        return await self._insert(user, Collection.EXPENSES, expense)

    async def add_income(self, user: Optional[UserIdentity], form: Mapping[str, Any]) -> Income:
        user = require_user(user)
        income = await self._validated(
            user, "income", lambda: self._validator.income(user.id, form, self._today())
        )
        return await self._insert(user, Collection.INCOME, income)

    async def add_investment(self, user: Optional[UserIdentity], form: Mapping[str, Any]) -> Investment:
        user = require_user(user)
        investment = await self._validated(
            user, "investment", lambda: self._validator.investment(user.id, form, self._today())
        )
        return await self._insert(user, Collection.INVESTMENTS, investment)

    async def delete(
        self,
        user: Optional[UserIdentity],
        kind: TransactionKind,
        record_id: UUID,
    ) -> None:
        user = require_user(user)
        await self._delete(user, TRANSACTION_COLLECTIONS[kind], record_id)

    async def list_transactions(
        self,
        user: Optional[UserIdentity],
        kind: TransactionKind,
    ) -> list[TransactionRecord]:
        """Records of one kind, newest first."""
        user = require_user(user)
        return await self._store.list_records(
            TRANSACTION_COLLECTIONS[kind], user.id, order_by="date", descending=True
        )

    async def history(
        self,
        user: Optional[UserIdentity],
        term: str = "",
        category: str = ALL_CATEGORIES,
        sort: SortKey = SortKey.DATE_DESC,
        kind: TransactionKind = TransactionKind.EXPENSE,
    ) -> list[TransactionRecord]:
        """Searchable, filterable, sortable history of one kind."""
        records = await self.list_transactions(user, kind)
        return sort_records(search_records(records, term, category), sort)

    async def categories(
        self,
        user: Optional[UserIdentity],
        kind: TransactionKind = TransactionKind.EXPENSE,
    ) -> list[str]:
        """Values for the history category filter."""
        return distinct_categories(await self.list_transactions(user, kind))


class BudgetFlow(_RecordFlow):
    """Per-category spending limits."""

    def __init__(self, *args, near_threshold: float = 80.0, **kwargs):
        super().__init__(*args, **kwargs)
        self._near_threshold = near_threshold

    async def create(self, user: Optional[UserIdentity], form: Mapping[str, Any]) -> Budget:
        user = require_user(user)
        budget = await self._validated(user, "budget", lambda: self._validator.budget(user.id, form))
        return await self._insert(user, Collection.BUDGETS, budget)

    async def delete(self, user: Optional[UserIdentity], budget_id: UUID) -> None:
        user = require_user(user)
        await self._delete(user, Collection.BUDGETS, budget_id)

    async def statuses(self, user: Optional[UserIdentity]) -> list[BudgetStatus]:
        """Spending against every budget, recomputed from current expenses."""
        user = require_user(user)
        budgets = await self._store.list_records(
            Collection.BUDGETS, user.id, order_by="created_at", descending=True
        )
        expenses = await self._store.list_records(Collection.EXPENSES, user.id)
        return budget_statuses(budgets, expenses, self._today(), self._near_threshold)


class GoalFlow(_RecordFlow):
    """Savings goals and fund additions."""

    async def create(self, user: Optional[UserIdentity], form: Mapping[str, Any]) -> SavingsGoal:
        user = require_user(user)
        goal = await self._validated(
            user, "savings_goal", lambda: self._validator.savings_goal(user.id, form)
        )
        return await self._insert(user, Collection.SAVINGS_GOALS, goal)

    async def add_funds(
        self,
        user: Optional[UserIdentity],
        goal_id: UUID,
        form: Mapping[str, Any],
    ) -> SavingsGoal:
        """
        Add money to a goal. The stored amount is not clamped to the target;
        the goal completes once it reaches it.
        """
        user = require_user(user)
        correlation_id = create_correlation_id()
        amount = await self._validated(user, "add_funds", lambda: self._validator.funds_amount(form))

        goal = await self._get(user, Collection.SAVINGS_GOALS, goal_id)
        updated = add_funds(goal, amount)
        await self._store.update(Collection.SAVINGS_GOALS, updated)

        await self._audit_logger.log(AuditEventBuilder.goal_funds_added(
            goal_id=goal_id,
            user_id=user.id,
            amount=str(amount),
            new_total=str(updated.current_amount),
            completed=updated.is_completed,
            correlation_id=correlation_id,
        ))
        return updated

    async def delete(self, user: Optional[UserIdentity], goal_id: UUID) -> None:
        user = require_user(user)
        await self._delete(user, Collection.SAVINGS_GOALS, goal_id)

    async def progress(
        self,
        user: Optional[UserIdentity],
    ) -> tuple[list[GoalProgress], list[GoalProgress]]:
        """(active, completed) goals with their progress."""
        user = require_user(user)
        goals = await self._store.list_records(
            Collection.SAVINGS_GOALS, user.id, order_by="created_at", descending=True
        )
        active, completed = split_goals(goals)
        return [goal_progress(g) for g in active], [goal_progress(g) for g in completed]


class ReminderFlow(_RecordFlow):
    """Recurring expense reminders and one-off bill reminders."""

    def __init__(self, *args, due_soon_days: int = 3, **kwargs):
        super().__init__(*args, **kwargs)
        self._due_soon_days = due_soon_days

    async def create_recurring(
        self,
        user: Optional[UserIdentity],
        form: Mapping[str, Any],
    ) -> RecurringExpense:
        user = require_user(user)
        recurring = await self._validated(
            user, "recurring_expense", lambda: self._validator.recurring_expense(user.id, form)
        )
        return await self._insert(user, Collection.RECURRING_EXPENSES, recurring)

    async def toggle_recurring(self, user: Optional[UserIdentity], recurring_id: UUID) -> RecurringExpense:
        """Flip a recurring expense between active and paused."""
        user = require_user(user)
        recurring = await self._get(user, Collection.RECURRING_EXPENSES, recurring_id)
        updated = recurring.model_copy(update={"is_active": not recurring.is_active})
        await self._store.update(Collection.RECURRING_EXPENSES, updated)
        await self._audit_logger.log_record_updated(
            collection=Collection.RECURRING_EXPENSES.value,
            record_id=recurring_id,
            user_id=user.id,
            changes={"is_active": updated.is_active},
        )
        return updated

    async def delete_recurring(self, user: Optional[UserIdentity], recurring_id: UUID) -> None:
        user = require_user(user)
        await self._delete(user, Collection.RECURRING_EXPENSES, recurring_id)

    async def list_recurring(self, user: Optional[UserIdentity]) -> list[RecurringExpense]:
        """Ordered by next due date."""
        user = require_user(user)
        return await self._store.list_records(
            Collection.RECURRING_EXPENSES, user.id, order_by="next_due_date"
        )

    async def create_bill(self, user: Optional[UserIdentity], form: Mapping[str, Any]) -> BillReminder:
        user = require_user(user)
        bill = await self._validated(user, "bill", lambda: self._validator.bill(user.id, form))
        return await self._insert(user, Collection.BILLS, bill)

    async def mark_bill_paid(self, user: Optional[UserIdentity], bill_id: UUID) -> BillReminder:
        user = require_user(user)
        bill = await self._get(user, Collection.BILLS, bill_id)
        data = bill.model_dump()
        data.update(is_paid=True, paid_date=utc_now())
        updated = BillReminder.model_validate(data)
        await self._store.update(Collection.BILLS, updated)
        await self._audit_logger.log_record_updated(
            collection=Collection.BILLS.value,
            record_id=bill_id,
            user_id=user.id,
            changes={"is_paid": True, "paid_date": updated.paid_date.isoformat()},
        )
        return updated

    async def delete_bill(self, user: Optional[UserIdentity], bill_id: UUID) -> None:
        user = require_user(user)
        await self._delete(user, Collection.BILLS, bill_id)

    async def bill_statuses(
        self,
        user: Optional[UserIdentity],
    ) -> tuple[list[BillDueStatus], list[BillDueStatus]]:
        """(unpaid, paid) bills ordered by due date, with due state."""
        user = require_user(user)
        bills = await self._store.list_records(Collection.BILLS, user.id, order_by="due_date")
        unpaid, paid = split_bills(bills)
        today = self._today()
        return (
            [bill_due_status(b, today, self._due_soon_days) for b in unpaid],
            [bill_due_status(b, today, self._due_soon_days) for b in paid],
        )


class DashboardFlow:
    """Read-only dashboard figures."""

    def __init__(self, store: RecordStore, today: Optional[Today] = None):
        self._store = store
        self._today = today or date.today

    async def summary(self, user: Optional[UserIdentity]) -> DashboardSummary:
        user = require_user(user)
        expenses, income, investments = await load_transactions(self._store, user.id)
        return dashboard_summary(expenses, income, investments)

    async def trend(self, user: Optional[UserIdentity], months: int = 6) -> list[TrendPoint]:
        user = require_user(user)
        expenses, income, investments = await load_transactions(self._store, user.id)
        return monthly_trend(expenses, income, investments, self._today(), months)


class AnalysisFlow:
    """
    AI analysis of the user's finances.

    Premium users get the advanced analysis, everyone else the basic one.
    """

    def __init__(
        self,
        store: RecordStore,
        resolver: EntitlementResolver,
        ai_service: Optional[FinancialAnalysisService] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._resolver = resolver
        self._ai_service = ai_service
        self._audit_logger = audit_logger or AuditLogger()

    async def analyze(
        self,
        user: Optional[UserIdentity],
        entitlement: Optional[EntitlementState] = None,
    ) -> str:
        """
        Args:
            entitlement: Known state (e.g. from the session monitor);
                the cached state is read when omitted.
        """
        user = require_user(user)
        if entitlement is None:
            entitlement = await self._resolver.get_cached(user)
        advanced = entitlement.subscribed
        correlation_id = create_correlation_id()

        await self._audit_logger.log(AuditEventBuilder.analysis_requested(
            user_id=user.id,
            advanced=advanced,
            correlation_id=correlation_id,
        ))

        try:
            if self._ai_service is None:
                raise AIServiceError("AI service is not configured")
            expenses, income, investments = await load_transactions(self._store, user.id)
            analysis = await self._ai_service.analyze(expenses, income, investments, advanced=advanced)
        except AIServiceError as e:
            await self._audit_logger.log(AuditEventBuilder.analysis_failed(
                user_id=user.id,
                error_kind=e.kind.value,
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            raise

        await self._audit_logger.log(AuditEventBuilder.analysis_completed(
            user_id=user.id,
            advanced=advanced,
            response_chars=len(analysis),
            correlation_id=correlation_id,
        ))
        return analysis


class NotificationFlow:
    """
    SMS notifications (premium only).

    Every attempt past the premium check is written to the notification
    log, as `sent` or `failed`.
    """

    def __init__(
        self,
        store: RecordStore,
        resolver: EntitlementResolver,
        sms_gateway: Optional[TwilioSMSGateway] = None,
        validator: Optional[FormValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._resolver = resolver
        self._sms = sms_gateway
        self._validator = validator or FormValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def send(
        self,
        user: Optional[UserIdentity],
        form: Mapping[str, Any],
        entitlement: Optional[EntitlementState] = None,
    ) -> str:
        """
        Send an SMS and return the provider message id.

        Raises:
            PremiumRequiredError: User is not subscribed
            InputValidationError: Phone number or message missing
            SMSError: Gateway not configured or send failed
        """
        user = require_user(user)
        if entitlement is None:
            entitlement = await self._resolver.get_cached(user)
        if not entitlement.subscribed:
            raise PremiumRequiredError(f"User {user.id} is not subscribed")

        notification_type = str(form.get("type") or "general")
        message = str(form.get("message") or "Failed to send")

        try:
            request = self._validator.notification(form)
            if self._sms is None:
                raise SMSConfigurationError("Twilio credentials not configured")
            message_id = await self._sms.send(request.to, request.message)
        except (InputValidationError, SMSError) as e:
            await self._store.insert(Collection.NOTIFICATION_LOG, NotificationLogEntry(
                user_id=user.id,
                notification_type=notification_type[:50],
                message=message,
                status=NotificationStatus.FAILED,
            ))
            await self._audit_logger.log(AuditEventBuilder.notification_failed(
                user_id=user.id,
                notification_type=notification_type,
                error_message=str(e),
            ))
            if isinstance(e, SMSError):
                await self._audit_logger.log_external_service_error(
                    service="twilio",
                    error_message=str(e),
                    user_id=user.id,
                )
            raise

        await self._store.insert(Collection.NOTIFICATION_LOG, NotificationLogEntry(
            user_id=user.id,
            notification_type=request.notification_type,
            message=request.message,
            status=NotificationStatus.SENT,
            provider_message_id=message_id,
        ))
        await self._audit_logger.log(AuditEventBuilder.notification_sent(
            user_id=user.id,
            notification_type=request.notification_type,
            message_id=message_id,
        ))
        return message_id

    async def history(self, user: Optional[UserIdentity]) -> list[NotificationLogEntry]:
        user = require_user(user)
        return await self._store.list_records(
            Collection.NOTIFICATION_LOG, user.id, order_by="created_at", descending=True
        )


class ExportFlow:
    """Downloadable CSV and PDF exports of all transactions."""

    def __init__(
        self,
        store: RecordStore,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[Today] = None,
        currency_symbol: str = "Rs. ",
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._today = today or date.today
        self._currency_symbol = currency_symbol

    async def _export_log(self, user: UserIdentity, export_format: str, count: int) -> None:
        await self._audit_logger.log(AuditEventBuilder.export_generated(
            user_id=user.id,
            export_format=export_format,
            record_count=count,
        ))

    async def csv(self, user: Optional[UserIdentity]) -> tuple[str, str]:
        """(filename, csv text)"""
        user = require_user(user)
        expenses, income, investments = await load_transactions(self._store, user.id)
        content = export_csv(expenses, income, investments)
        await self._export_log(user, "csv", len(expenses) + len(income) + len(investments))
        return csv_filename(self._today()), content

    async def pdf(self, user: Optional[UserIdentity]) -> tuple[str, bytes]:
        """(filename, pdf bytes)"""
        user = require_user(user)
        today = self._today()
        expenses, income, investments = await load_transactions(self._store, user.id)
        content = export_pdf(expenses, income, investments, today, self._currency_symbol)
        await self._export_log(user, "pdf", len(expenses) + len(income) + len(investments))
        return pdf_filename(today), content


class SubscriptionFlow:
    """Subscription status check and premium checkout."""

    def __init__(
        self,
        resolver: EntitlementResolver,
        billing_provider: Optional[BillingProvider] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._resolver = resolver
        self._billing = billing_provider
        self._audit_logger = audit_logger or AuditLogger()

    async def check(self, user: Optional[UserIdentity]) -> EntitlementState:
        return await self._resolver.resolve(user)

    async def start_checkout(
        self,
        user: Optional[UserIdentity],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        user = require_user(user)
        if not user.email:
            raise AuthenticationRequiredError(f"User {user.id} has no email for checkout")
        if self._billing is None:
            raise BillingConfigurationError("Billing provider is not configured")

        session = await self._billing.create_checkout_session(user.email, success_url, cancel_url)
        await self._audit_logger.log(AuditEventBuilder.checkout_started(
            user_id=user.id,
            session_id=session.id,
        ))
        return session


@dataclass
class AppComponents:
    """Everything a presentation layer needs, wired together."""

    transactions: TransactionFlow
    budgets: BudgetFlow
    goals: GoalFlow
    reminders: ReminderFlow
    dashboard: DashboardFlow
    analysis: AnalysisFlow
    notifications: NotificationFlow
    exports: ExportFlow
    subscription: SubscriptionFlow
    resolver: EntitlementResolver
    monitor: EntitlementMonitor
    sheets_client: Optional[GoogleSheetsClient] = None


def create_app_components(
    use_storage: bool = True,
    record_store: Optional[RecordStore] = None,
    entitlement_store: Optional[EntitlementStore] = None,
    billing_provider: Optional[BillingProvider] = None,
    ai_service: Optional[FinancialAnalysisService] = None,
    sms_gateway: Optional[TwilioSMSGateway] = None,
    today: Optional[Today] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for in-memory storage.
        record_store, entitlement_store, billing_provider, ai_service,
        sms_gateway: Explicit collaborators; any left as None is built
                    from settings, or left unconfigured if settings are missing.
    """
    settings = get_settings()
    app_settings = settings.app

    sheets_client = None
    audit_logger = AuditLogger()  # Local-only logging until storage is up

    if use_storage and record_store is None:
        try:
            sheets_client = GoogleSheetsClient()
            record_store = GoogleSheetsRecordStore(sheets_client)
            entitlement_store = entitlement_store or GoogleSheetsEntitlementStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            record_store = None

    record_store = record_store or InMemoryRecordStore()
    entitlement_store = entitlement_store or InMemoryEntitlementStore()

    if billing_provider is None:
        try:
            billing_provider = StripeBillingProvider()
        except BillingConfigurationError as e:
            logger.warning("billing_not_configured", error=str(e))

    if ai_service is None:
        try:
            ai_service = FinancialAnalysisService()
        except Exception as e:
            logger.warning("ai_not_configured", error=str(e))

    if sms_gateway is None:
        try:
            sms_gateway = TwilioSMSGateway()
        except SMSConfigurationError as e:
            logger.warning("sms_not_configured", error=str(e))

    resolver = EntitlementResolver(
        billing_provider=billing_provider,
        store=entitlement_store,
        promotion=settings.promotion,
        audit_logger=audit_logger,
    )
    validator = FormValidator(max_amount=app_settings.max_amount)
    record_args = dict(
        store=record_store,
        validator=validator,
        audit_logger=audit_logger,
        today=today,
    )

    return AppComponents(
        transactions=TransactionFlow(**record_args),
        budgets=BudgetFlow(**record_args, near_threshold=app_settings.budget_near_threshold),
        goals=GoalFlow(**record_args),
        reminders=ReminderFlow(**record_args, due_soon_days=app_settings.bill_due_soon_days),
        dashboard=DashboardFlow(record_store, today=today),
        analysis=AnalysisFlow(record_store, resolver, ai_service, audit_logger),
        notifications=NotificationFlow(record_store, resolver, sms_gateway, validator, audit_logger),
        exports=ExportFlow(record_store, audit_logger, today=today),
        subscription=SubscriptionFlow(resolver, billing_provider, audit_logger),
        resolver=resolver,
        monitor=EntitlementMonitor(resolver, poll_seconds=app_settings.entitlement_poll_seconds),
        sheets_client=sheets_client,
    )
