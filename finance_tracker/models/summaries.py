"""
Derived Summary Models

Outputs of the aggregator. None of these are persisted: they are
recomputed from records on every read.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.records import BillReminder, Budget, SavingsGoal


class BudgetTier(str, Enum):
    """How close spending is to a budget limit."""
    OVER = "over"
    NEAR = "near"
    ON_TRACK = "on-track"


class SortKey(str, Enum):
    """Orderings offered by history views."""
    DATE_ASC = "date-asc"
    DATE_DESC = "date-desc"
    AMOUNT_ASC = "amount-asc"
    AMOUNT_DESC = "amount-desc"


class BillDueState(str, Enum):
    PAID = "paid"
    OVERDUE = "overdue"
    DUE_SOON = "due-soon"
    UPCOMING = "upcoming"


class BudgetStatus(BaseModel):
    """
    Consumption of one budget in its current period.

    `percentage` is None when the limit is zero and something was spent
    (the ratio is undefined); such a budget is always OVER.
    """

    budget: Budget
    spent: Decimal
    percentage: Optional[float] = Field(
        default=None,
        description="spent / limit * 100, unclamped"
    )
    tier: BudgetTier

    @property
    def display_percentage(self) -> float:
        """Percentage clamped to 100 for progress bars."""
        if self.percentage is None:
            return 100.0
        return min(self.percentage, 100.0)

    @property
    def remaining(self) -> Decimal:
        return max(self.budget.amount - self.spent, Decimal("0"))

    @property
    def over_by(self) -> Decimal:
        return max(self.spent - self.budget.amount, Decimal("0"))


class GoalProgress(BaseModel):
    """
    Progress toward a savings goal.

    `ratio` keeps the unclamped percentage; `percentage` is clamped to
    [0, 100] for display only.
    """

    goal: SavingsGoal
    ratio: float
    percentage: float = Field(ge=0.0, le=100.0)
    remaining: Decimal


class BillDueStatus(BaseModel):
    bill: BillReminder
    days_until_due: int
    state: BillDueState


class CategoryAmount(BaseModel):
    """One slice of a breakdown, in first-seen order."""
    name: str
    value: Decimal


class TrendPoint(BaseModel):
    """Totals for one calendar month."""
    month: str = Field(description="Label such as 'Oct 2025'")
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    investments: Decimal = Decimal("0")


class DashboardSummary(BaseModel):
    """Everything the dashboard shows, computed in one pass."""

    total_income: Decimal
    total_expenses: Decimal
    total_investments: Decimal
    net_balance: Decimal

    # Income / Expenses / Investments with zero values dropped
    overview: list[CategoryAmount] = Field(default_factory=list)
    expenses_by_category: list[CategoryAmount] = Field(default_factory=list)
    investments_by_type: list[CategoryAmount] = Field(default_factory=list)
