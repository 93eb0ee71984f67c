"""
Abstract Storage Interface

DESIGN DECISION: The record store is an external collaborator. The core
depends only on four primitives (insert, update-by-id, delete-by-id,
ordered read) plus user scoping. This allows us to:
1. Use in-memory storage for tests and local runs
2. Back the same flows with Google Sheets (or a hosted database later)
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel

from finance_tracker.errors import ErrorKind, FinanceTrackerError
from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.entitlement import EntitlementState
from finance_tracker.models.records import (
    BillReminder,
    Budget,
    Expense,
    Income,
    Investment,
    NotificationLogEntry,
    RecurringExpense,
    SavingsGoal,
)


M = TypeVar("M", bound=BaseModel)


class Collection(str, Enum):
    """Per-user record collections."""
    EXPENSES = "expenses"
    INCOME = "income"
    INVESTMENTS = "investments"
    BUDGETS = "budgets"
    RECURRING_EXPENSES = "recurring_expenses"
    BILLS = "bills"
    SAVINGS_GOALS = "savings_goals"
    NOTIFICATION_LOG = "notification_log"

    @property
    def model(self) -> Type[BaseModel]:
        return COLLECTION_MODELS[self]


COLLECTION_MODELS: dict[Collection, Type[BaseModel]] = {
    Collection.EXPENSES: Expense,
    Collection.INCOME: Income,
    Collection.INVESTMENTS: Investment,
    Collection.BUDGETS: Budget,
    Collection.RECURRING_EXPENSES: RecurringExpense,
    Collection.BILLS: BillReminder,
    Collection.SAVINGS_GOALS: SavingsGoal,
    Collection.NOTIFICATION_LOG: NotificationLogEntry,
}


class RecordStore(ABC):
    """
    Abstract interface for per-user record storage.

    Every record carries `id` and `user_id`; reads and deletes are
    always scoped to one user.
    """

    @abstractmethod
    async def insert(self, collection: Collection, record: M) -> M:
        """
        Store a new record.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, collection: Collection, record: M) -> M:
        """
        Replace the stored record with the same id.

        Raises:
            NotFoundError: If no such record exists for the owner
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: Collection, record_id: UUID, user_id: str) -> bool:
        """
        Delete a record owned by `user_id`.

        Returns:
            True if a record was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def get(
        self,
        collection: Collection,
        record_id: UUID,
        user_id: str,
    ) -> Optional[BaseModel]:
        """Fetch one record owned by `user_id`, or None."""
        pass

    @abstractmethod
    async def list_records(
        self,
        collection: Collection,
        user_id: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list:
        """
        List a user's records, optionally ordered by one field.

        Without `order_by` records come back in insertion order.
        """
        pass


class EntitlementStore(ABC):
    """
    Cache of the last resolved entitlement per user.

    Writes are upserts (last write wins); there is no merge.
    """

    @abstractmethod
    async def get(self, user_id: str) -> Optional[EntitlementState]:
        pass

    @abstractmethod
    async def upsert(self, user_id: str, state: EntitlementState) -> None:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent audit events, newest first."""
        pass


class StorageError(FinanceTrackerError):
    """Base exception for storage operations."""
    kind = ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE


class NotFoundError(StorageError):
    """Entity not found in storage."""
    kind = ErrorKind.NOT_FOUND


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


def sort_rows(records: list, order_by: Optional[str], descending: bool) -> list:
    """Stable sort on one attribute, shared by the store implementations."""
    if not order_by:
        return records
    return sorted(records, key=lambda r: getattr(r, order_by), reverse=descending)
