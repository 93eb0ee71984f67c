"""
Form Input Validation

DESIGN DECISION: Every form submission passes two stages before anything
is written or any external service is called:

STAGE 1 - FIELD VALIDATION:
- Required field presence
- Amount parsing (non-numeric amounts are rejected, never coerced to 0)
- Date and enum parsing

STAGE 2 - RANGE CHECKS:
- Negative amounts
- Amounts above the configured maximum
- Zero targets for savings goals and zero-amount fund additions

Any issue blocks the submission and all issues are reported together.
Validation NEVER silently fixes issues.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from finance_tracker.config import get_settings
from finance_tracker.errors import ErrorKind, FinanceTrackerError
from finance_tracker.models.records import (
    BillReminder,
    Budget,
    BudgetPeriod,
    Expense,
    Income,
    Investment,
    RecurrenceFrequency,
    RecurringExpense,
    SavingsGoal,
)


E = TypeVar("E", bound=Enum)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class NotificationRequest(BaseModel):
    """Validated SMS request."""

    to: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=1600)
    notification_type: str = Field(default="general", max_length=50)


class InputValidationError(FinanceTrackerError):
    """Form input failed validation. Carries every issue found."""
    kind = ErrorKind.VALIDATION_FAILURE

    def __init__(self, form: str, issues: list[ValidationIssue]):
        self.form = form
        self.issues = issues
        summary = "; ".join(f"{i.field}: {i.message}" for i in issues)
        super().__init__(f"Invalid {form} input: {summary}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class _FormCheck:
    """Collects issues while reading one submitted form."""

    def __init__(self, form: str, data: Mapping[str, Any]):
        self.form = form
        self.data = data
        self.issues: list[ValidationIssue] = []

    def error(self, field: str, issue_type: str, message: str) -> None:
        self.issues.append(ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=message,
        ))

    def text(self, field: str, required: bool = False) -> Optional[str]:
        value = self.data.get(field)
        if _is_blank(value):
            if required:
                self.error(field, "missing", f"{field} is required")
            return None
        return str(value).strip()

    def amount(
        self,
        field: str,
        required: bool = True,
        max_amount: Optional[Decimal] = None,
    ) -> Optional[Decimal]:
        value = self.data.get(field)
        if _is_blank(value):
            if required:
                self.error(field, "missing", f"{field} is required")
            return None
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            self.error(field, "invalid_format", f"{field} must be a number")
            return None
        if not amount.is_finite():
            self.error(field, "invalid_format", f"{field} must be a number")
            return None
        if amount < 0:
            self.error(field, "out_of_range", f"{field} cannot be negative")
            return None
        if max_amount is not None and amount > max_amount:
            self.error(field, "out_of_range", f"{field} exceeds the maximum of {max_amount}")
            return None
        return amount

    def calendar_date(
        self,
        field: str,
        required: bool = True,
        default: Optional[date] = None,
    ) -> Optional[date]:
        value = self.data.get(field)
        if _is_blank(value):
            if default is not None:
                return default
            if required:
                self.error(field, "missing", f"{field} is required")
            return None
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip())
        except ValueError:
            self.error(field, "invalid_format", f"{field} must be a date (YYYY-MM-DD)")
            return None

    def choice(self, field: str, enum_type: Type[E], default: E) -> Optional[E]:
        value = self.data.get(field)
        if _is_blank(value):
            return default
        try:
            return enum_type(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in enum_type)
            self.error(field, "invalid_value", f"{field} must be one of: {allowed}")
            return None

    def build(self, model: Type[BaseModel], **values) -> BaseModel:
        """Raise collected issues, otherwise construct the model."""
        if self.issues:
            raise InputValidationError(self.form, self.issues)
        try:
            return model(**values)
        except ValidationError as e:
            for err in e.errors():
                field = ".".join(str(loc) for loc in err["loc"]) or self.form
                self.error(field, "invalid_value", err["msg"])
            raise InputValidationError(self.form, self.issues)


class FormValidator:
    """
    Turns raw form submissions into validated records.

    Every method either returns a model ready to store or raises
    InputValidationError listing all problems at once.
    """

    def __init__(self, max_amount: Optional[float] = None):
        if max_amount is None:
            max_amount = get_settings().app.max_amount
        self._max_amount = Decimal(str(max_amount))

    def expense(self, user_id: str, form: Mapping[str, Any], today: date) -> Expense:
        check = _FormCheck("expense", form)
        amount = check.amount("amount", max_amount=self._max_amount)
        category = check.text("category", required=True)
        return check.build(
            Expense,
            user_id=user_id,
            amount=amount,
            category=category,
            description=check.text("description"),
            date=check.calendar_date("date", default=today),
        )

    def income(self, user_id: str, form: Mapping[str, Any], today: date) -> Income:
        check = _FormCheck("income", form)
        amount = check.amount("amount", max_amount=self._max_amount)
        source = check.text("source", required=True)
        return check.build(
            Income,
            user_id=user_id,
            amount=amount,
            source=source,
            description=check.text("description"),
            date=check.calendar_date("date", default=today),
        )

    def investment(self, user_id: str, form: Mapping[str, Any], today: date) -> Investment:
        check = _FormCheck("investment", form)
        amount = check.amount("amount", max_amount=self._max_amount)
        investment_type = check.text("type", required=True)
        return check.build(
            Investment,
            user_id=user_id,
            amount=amount,
            type=investment_type,
            description=check.text("description"),
            date=check.calendar_date("date", default=today),
        )

    def budget(self, user_id: str, form: Mapping[str, Any]) -> Budget:
        check = _FormCheck("budget", form)
        return check.build(
            Budget,
            user_id=user_id,
            category=check.text("category", required=True),
            amount=check.amount("amount", max_amount=self._max_amount),
            period=check.choice("period", BudgetPeriod, BudgetPeriod.MONTHLY),
        )

    def savings_goal(self, user_id: str, form: Mapping[str, Any]) -> SavingsGoal:
        check = _FormCheck("savings_goal", form)
        title = check.text("title", required=True)
        target = check.amount("target_amount", max_amount=self._max_amount)
        if target is not None and target == 0:
            check.error("target_amount", "out_of_range", "target_amount must be greater than zero")
        current = check.amount("current_amount", required=False, max_amount=self._max_amount)
        return check.build(
            SavingsGoal,
            user_id=user_id,
            title=title,
            target_amount=target,
            current_amount=current if current is not None else Decimal("0"),
            target_date=check.calendar_date("target_date", required=False),
            category=check.text("category"),
            description=check.text("description"),
        )

    def funds_amount(self, form: Mapping[str, Any]) -> Decimal:
        """Amount for adding funds to a savings goal; must be positive."""
        check = _FormCheck("add_funds", form)
        amount = check.amount("amount", max_amount=self._max_amount)
        if amount is not None and amount == 0:
            check.error("amount", "out_of_range", "amount must be greater than zero")
        if check.issues:
            raise InputValidationError(check.form, check.issues)
        return amount

    def recurring_expense(self, user_id: str, form: Mapping[str, Any]) -> RecurringExpense:
        check = _FormCheck("recurring_expense", form)
        return check.build(
            RecurringExpense,
            user_id=user_id,
            description=check.text("description", required=True),
            amount=check.amount("amount", max_amount=self._max_amount),
            category=check.text("category", required=True),
            frequency=check.choice("frequency", RecurrenceFrequency, RecurrenceFrequency.MONTHLY),
            next_due_date=check.calendar_date("next_due_date"),
        )

    def bill(self, user_id: str, form: Mapping[str, Any]) -> BillReminder:
        check = _FormCheck("bill", form)
        return check.build(
            BillReminder,
            user_id=user_id,
            title=check.text("title", required=True),
            amount=check.amount("amount", max_amount=self._max_amount),
            due_date=check.calendar_date("due_date"),
            category=check.text("category"),
            notes=check.text("notes"),
        )

    def notification(self, form: Mapping[str, Any]) -> NotificationRequest:
        check = _FormCheck("notification", form)
        to = check.text("to", required=True)
        message = check.text("message", required=True)
        return check.build(
            NotificationRequest,
            to=to,
            message=message,
            notification_type=check.text("type") or "general",
        )
