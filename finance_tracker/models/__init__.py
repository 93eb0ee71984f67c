"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker core.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.records import (
    EXPENSE_CATEGORIES,
    INCOME_SOURCES,
    INVESTMENT_TYPES,
    UNGROUPED_LABEL,
    BillReminder,
    Budget,
    BudgetPeriod,
    Expense,
    Income,
    Investment,
    NotificationLogEntry,
    NotificationStatus,
    RecurrenceFrequency,
    RecurringExpense,
    SavingsGoal,
    TransactionKind,
    TransactionRecord,
)
from finance_tracker.models.entitlement import (
    EntitlementSource,
    EntitlementState,
    UserIdentity,
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
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "EXPENSE_CATEGORIES",
    "INCOME_SOURCES",
    "INVESTMENT_TYPES",
    "UNGROUPED_LABEL",
    "BillReminder",
    "Budget",
    "BudgetPeriod",
    "Expense",
    "Income",
    "Investment",
    "NotificationLogEntry",
    "NotificationStatus",
    "RecurrenceFrequency",
    "RecurringExpense",
    "SavingsGoal",
    "TransactionKind",
    "TransactionRecord",
    # Entitlement models
    "EntitlementSource",
    "EntitlementState",
    "UserIdentity",
    # Derived summaries
    "BillDueState",
    "BillDueStatus",
    "BudgetStatus",
    "BudgetTier",
    "CategoryAmount",
    "DashboardSummary",
    "GoalProgress",
    "SortKey",
    "TrendPoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
