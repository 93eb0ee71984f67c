"""
In-Memory Storage

Dictionary-backed implementations of the storage interfaces, used by the
test suite and for running the flows without a backend configured.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.entitlement import EntitlementState
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    EntitlementStore,
    NotFoundError,
    RecordStore,
    sort_rows,
)


class InMemoryRecordStore(RecordStore):
    """Records kept per collection in insertion order."""

    def __init__(self):
        self._collections: dict[Collection, dict[UUID, BaseModel]] = {
            collection: {} for collection in Collection
        }

    async def insert(self, collection, record):
        self._collections[collection][record.id] = record
        return record

    async def update(self, collection, record):
        rows = self._collections[collection]
        existing = rows.get(record.id)
        if existing is None or existing.user_id != record.user_id:
            raise NotFoundError(f"{collection.value} record not found: {record.id}")
        rows[record.id] = record
        return record

    async def delete(self, collection: Collection, record_id: UUID, user_id: str) -> bool:
        rows = self._collections[collection]
        existing = rows.get(record_id)
        if existing is None or existing.user_id != user_id:
            return False
        del rows[record_id]
        return True

    async def get(
        self,
        collection: Collection,
        record_id: UUID,
        user_id: str,
    ) -> Optional[BaseModel]:
        record = self._collections[collection].get(record_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    async def list_records(
        self,
        collection: Collection,
        user_id: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list:
        records = [
            record for record in self._collections[collection].values()
            if record.user_id == user_id
        ]
        return sort_rows(records, order_by, descending)


class InMemoryEntitlementStore(EntitlementStore):

    def __init__(self):
        self._states: dict[str, EntitlementState] = {}
        self.write_count = 0

    async def get(self, user_id: str) -> Optional[EntitlementState]:
        return self._states.get(user_id)

    async def upsert(self, user_id: str, state: EntitlementState) -> None:
        self._states[user_id] = state
        self.write_count += 1


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
