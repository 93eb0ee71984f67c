"""
Core Data Models for Finance Tracker

These models define the schemas for every record a user owns:
transactions (expenses, income, investments), budgets, savings goals,
recurring-expense and bill reminders, and the notification log.

DESIGN DECISION: Each record kind is an explicit model. The field that
plays the "category" role differs per transaction kind (category,
source, type); it is read through a single `group_label` accessor so
aggregation code never looks up fields by name.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """The three kinds of money movement a user records."""
    EXPENSE = "expense"
    INCOME = "income"
    INVESTMENT = "investment"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class BudgetPeriod(str, Enum):
    """Cadence a budget limit applies to."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurrenceFrequency(str, Enum):
    """How often a recurring expense comes due."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class NotificationStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


# Pick-list values offered by the entry forms. Free text is accepted too.
EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Housing",
    "Utilities",
    "Healthcare",
    "Entertainment",
    "Shopping",
    "Monthly Expense",
    "Other",
]

INCOME_SOURCES = [
    "Salary",
    "Freelance",
    "Business",
    "Investments",
    "Rental",
    "Other",
]

INVESTMENT_TYPES = [
    "Stocks",
    "Bonds",
    "Real Estate",
    "Cryptocurrency",
    "Mutual Funds",
    "Retirement Account",
    "Other",
]

# Label used when a record has no category-equivalent value
UNGROUPED_LABEL = "Other"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionRecord(BaseModel):
    """
    Fields shared by expenses, income and investments.

    Records are owned by one user, created from a form and deleted
    explicitly. They are never updated in place.

    Never instantiated directly: each subclass sets `kind` and
    provides `group_label`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the record"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in the account currency"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-text note"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the record was created"
    )
    date: date

    kind: ClassVar[TransactionKind]

    @property
    def group_label(self) -> str:
        """Category-equivalent value used for grouping and filtering."""
        raise NotImplementedError


class Expense(TransactionRecord):
    """Money spent."""

    kind: ClassVar[TransactionKind] = TransactionKind.EXPENSE
    category: str = Field(
        ...,
        max_length=100,
        description="Spending category"
    )

    @property
    def group_label(self) -> str:
        return self.category or UNGROUPED_LABEL


class Income(TransactionRecord):
    """Money received."""

    kind: ClassVar[TransactionKind] = TransactionKind.INCOME
    source: str = Field(
        ...,
        max_length=100,
        description="Where the income came from"
    )

    @property
    def group_label(self) -> str:
        return self.source or UNGROUPED_LABEL


class Investment(TransactionRecord):
    """Money put into an investment."""

    kind: ClassVar[TransactionKind] = TransactionKind.INVESTMENT
    type: str = Field(
        ...,
        max_length=100,
        description="Investment type"
    )

    @property
    def group_label(self) -> str:
        return self.type or UNGROUPED_LABEL


# =============================================================================
# PLANNING RECORDS
# =============================================================================

class Budget(BaseModel):
    """
    Spending limit for one category over one period.

    Spent amount and percentage are derived from expenses each time;
    they are never stored on the budget.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Expense category the limit applies to"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Limit for the period"
    )
    period: BudgetPeriod = Field(
        default=BudgetPeriod.MONTHLY,
        description="Budget cadence"
    )
    created_at: datetime = Field(default_factory=utc_now)


class SavingsGoal(BaseModel):
    """
    A savings target the user adds funds to.

    CRITICAL: `is_completed` always equals current_amount >= target_amount.
    It is recomputed on validation; build updated goals with
    model_validate, not model_copy (which skips validators).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Goal name"
    )
    target_amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount to save"
    )
    current_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Amount saved so far (not clamped to the target)"
    )
    target_date: Optional[date] = None
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_completed: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def sync_completion(self) -> 'SavingsGoal':
        self.is_completed = self.current_amount >= self.target_amount
        return self


class RecurringExpense(BaseModel):
    """
    Reminder for an expense that repeats.

    Reminder only: nothing in the system generates expenses from it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=100)
    frequency: RecurrenceFrequency = RecurrenceFrequency.MONTHLY
    next_due_date: date
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)


class BillReminder(BaseModel):
    """A one-off bill to pay by a due date."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    due_date: date
    category: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)
    is_paid: bool = False
    paid_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_paid_date(self) -> 'BillReminder':
        if self.paid_date and not self.is_paid:
            raise ValueError("Paid date set on an unpaid bill")
        return self


class NotificationLogEntry(BaseModel):
    """One SMS notification attempt, successful or not."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    notification_type: str = Field(default="general", max_length=50)
    message: str
    status: NotificationStatus
    provider_message_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
