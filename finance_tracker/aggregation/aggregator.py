"""
Financial Aggregator

DESIGN DECISION: Every function here is a pure function of its input
records and an explicit evaluation date. Nothing is cached or written
back; dashboards and budget views recompute from scratch on every read,
so additions and deletions never leave stale derived numbers behind.

Amounts stay Decimal end to end. Only percentages, which are display
values, are converted to float.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence, TypeVar, Union

from finance_tracker.models.records import (
    UNGROUPED_LABEL,
    BillReminder,
    Budget,
    BudgetPeriod,
    Expense,
    Income,
    Investment,
    SavingsGoal,
    TransactionRecord,
)
from finance_tracker.models.summaries import (
    BillDueState,
    BillDueStatus,
    BudgetStatus,
    BudgetTier,
    CategoryAmount,
    DashboardSummary,
    GoalProgress,
    SortKey,
    TrendPoint,
)


R = TypeVar("R", bound=TransactionRecord)

ZERO = Decimal("0")
ALL_CATEGORIES = "all"
DEFAULT_NEAR_THRESHOLD = 80.0
DEFAULT_DUE_SOON_DAYS = 3


# =============================================================================
# TOTALS AND BREAKDOWNS
# =============================================================================

def total(records: Iterable[TransactionRecord]) -> Decimal:
    """Sum of amounts. An empty collection totals 0."""
    return sum((record.amount for record in records), ZERO)


def average(records: Sequence[TransactionRecord]) -> Decimal:
    """Mean amount, 0 for an empty collection."""
    if not records:
        return ZERO
    return total(records) / len(records)


def net_balance(
    income: Iterable[Income],
    expenses: Iterable[Expense],
    investments: Iterable[Investment],
) -> Decimal:
    """Income minus expenses minus investments."""
    return total(income) - total(expenses) - total(investments)


def category_breakdown(records: Iterable[TransactionRecord]) -> dict[str, Decimal]:
    """
    Sum amounts per category-equivalent label.

    Keys come out in first-seen order. Records without a label are
    grouped under "Other".
    """
    groups: dict[str, Decimal] = {}
    for record in records:
        label = record.group_label or UNGROUPED_LABEL
        groups[label] = groups.get(label, ZERO) + record.amount
    return groups


def breakdown_slices(records: Iterable[TransactionRecord]) -> list[CategoryAmount]:
    """category_breakdown as a list of chart slices."""
    return [
        CategoryAmount(name=name, value=value)
        for name, value in category_breakdown(records).items()
    ]


def distinct_categories(records: Iterable[TransactionRecord]) -> list[str]:
    """Labels present in the records, first-seen order, for filter drop-downs."""
    return list(dict.fromkeys(record.group_label for record in records))


# =============================================================================
# PERIODS AND BUDGETS
# =============================================================================

def period_bounds(period: BudgetPeriod, today: date) -> tuple[date, date]:
    """
    Inclusive date range of the period containing `today`.

    Weeks run Monday to Sunday (ISO weeks).
    """
    if period == BudgetPeriod.WEEKLY:
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)

    if period == BudgetPeriod.MONTHLY:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)

    return date(today.year, 1, 1), date(today.year, 12, 31)


def filter_to_period(
    records: Iterable[R],
    period: BudgetPeriod,
    today: date,
) -> list[R]:
    """Keep only records dated inside the current period."""
    start, end = period_bounds(period, today)
    return [record for record in records if start <= record.date <= end]


def budget_tier(
    percentage: Optional[float],
    near_threshold: float = DEFAULT_NEAR_THRESHOLD,
) -> BudgetTier:
    """Map a consumption percentage to a tier. None means undefined (over)."""
    if percentage is None or percentage > 100:
        return BudgetTier.OVER
    if percentage > near_threshold:
        return BudgetTier.NEAR
    return BudgetTier.ON_TRACK


def budget_status(
    budget: Budget,
    expenses: Iterable[Expense],
    today: date,
    near_threshold: float = DEFAULT_NEAR_THRESHOLD,
) -> BudgetStatus:
    """
    Spending against one budget in its current period.

    A zero limit gives 0% when nothing was spent, and an undefined
    percentage (tier OVER) otherwise.
    """
    in_period = filter_to_period(
        (expense for expense in expenses if expense.category == budget.category),
        budget.period,
        today,
    )
    spent = total(in_period)

    percentage: Optional[float]
    if budget.amount == 0:
        percentage = 0.0 if spent == 0 else None
    else:
        percentage = float(spent / budget.amount * 100)

    return BudgetStatus(
        budget=budget,
        spent=spent,
        percentage=percentage,
        tier=budget_tier(percentage, near_threshold),
    )


def budget_statuses(
    budgets: Iterable[Budget],
    expenses: Sequence[Expense],
    today: date,
    near_threshold: float = DEFAULT_NEAR_THRESHOLD,
) -> list[BudgetStatus]:
    return [
        budget_status(budget, expenses, today, near_threshold)
        for budget in budgets
    ]


# =============================================================================
# SAVINGS GOALS
# =============================================================================

def goal_progress(goal: SavingsGoal) -> GoalProgress:
    """Progress percentage, clamped for display, with the raw ratio kept."""
    ratio = float(goal.current_amount / goal.target_amount * 100)
    return GoalProgress(
        goal=goal,
        ratio=ratio,
        percentage=max(0.0, min(ratio, 100.0)),
        remaining=max(goal.target_amount - goal.current_amount, ZERO),
    )


def add_funds(goal: SavingsGoal, amount: Decimal) -> SavingsGoal:
    """
    Return a copy of the goal with `amount` added.

    Funds only ever increase. The stored amount is not clamped to the
    target; completion is recomputed by the model.
    """
    if amount <= 0:
        raise ValueError("Amount added to a goal must be positive")
    data = goal.model_dump()
    data["current_amount"] = goal.current_amount + amount
    return SavingsGoal.model_validate(data)


def split_goals(goals: Iterable[SavingsGoal]) -> tuple[list[SavingsGoal], list[SavingsGoal]]:
    """(active, completed)"""
    active, completed = [], []
    for goal in goals:
        (completed if goal.is_completed else active).append(goal)
    return active, completed


# =============================================================================
# HISTORY VIEWS
# =============================================================================

def sort_records(
    records: Iterable[R],
    sort_key: Union[SortKey, str] = SortKey.DATE_DESC,
) -> list[R]:
    """
    Order records for history views.

    Python's sort is stable (also with reverse=True), so ties keep
    their input order.
    """
    sort_key = SortKey(sort_key)
    if sort_key in (SortKey.DATE_ASC, SortKey.DATE_DESC):
        return sorted(
            records,
            key=lambda r: r.date,
            reverse=sort_key == SortKey.DATE_DESC,
        )
    return sorted(
        records,
        key=lambda r: r.amount,
        reverse=sort_key == SortKey.AMOUNT_DESC,
    )


def search_records(
    records: Iterable[R],
    term: str = "",
    category: str = ALL_CATEGORIES,
) -> list[R]:
    """
    Case-insensitive substring search over description and category.

    `category` must match exactly unless it is "all".
    """
    needle = term.strip().lower()
    results = []
    for record in records:
        if category != ALL_CATEGORIES and record.group_label != category:
            continue
        if needle and not (
            needle in (record.description or "").lower()
            or needle in record.group_label.lower()
        ):
            continue
        results.append(record)
    return results


# =============================================================================
# DASHBOARD
# =============================================================================

def dashboard_summary(
    expenses: Sequence[Expense],
    income: Sequence[Income],
    investments: Sequence[Investment],
) -> DashboardSummary:
    total_income = total(income)
    total_expenses = total(expenses)
    total_investments = total(investments)

    overview = [
        CategoryAmount(name=name, value=value)
        for name, value in (
            ("Income", total_income),
            ("Expenses", total_expenses),
            ("Investments", total_investments),
        )
        if value > 0
    ]

    return DashboardSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        total_investments=total_investments,
        net_balance=total_income - total_expenses - total_investments,
        overview=overview,
        expenses_by_category=breakdown_slices(expenses),
        investments_by_type=breakdown_slices(investments),
    )


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def monthly_trend(
    expenses: Iterable[Expense],
    income: Iterable[Income],
    investments: Iterable[Investment],
    today: date,
    months: int = 6,
) -> list[TrendPoint]:
    """
    Per-month totals for the last `months` calendar months, oldest first.

    The current month is the last point. Records outside the window
    are ignored.
    """
    keys = [_shift_month(today.year, today.month, -offset) for offset in range(months - 1, -1, -1)]
    points = {
        key: TrendPoint(month=date(key[0], key[1], 1).strftime("%b %Y"))
        for key in keys
    }

    for attr, records in (
        ("expenses", expenses),
        ("income", income),
        ("investments", investments),
    ):
        for record in records:
            point = points.get((record.date.year, record.date.month))
            if point is not None:
                setattr(point, attr, getattr(point, attr) + record.amount)

    return [points[key] for key in keys]


# =============================================================================
# BILL REMINDERS
# =============================================================================

def bill_due_status(
    bill: BillReminder,
    today: date,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> BillDueStatus:
    days_until_due = (bill.due_date - today).days

    if bill.is_paid:
        state = BillDueState.PAID
    elif days_until_due < 0:
        state = BillDueState.OVERDUE
    elif days_until_due <= due_soon_days:
        state = BillDueState.DUE_SOON
    else:
        state = BillDueState.UPCOMING

    return BillDueStatus(bill=bill, days_until_due=days_until_due, state=state)


def split_bills(bills: Iterable[BillReminder]) -> tuple[list[BillReminder], list[BillReminder]]:
    """(unpaid, paid)"""
    unpaid, paid = [], []
    for bill in bills:
        (paid if bill.is_paid else unpaid).append(bill)
    return unpaid, paid
