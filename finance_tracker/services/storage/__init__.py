"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the
record store, the entitlement cache and the audit log. Google Sheets
and in-memory backends are interchangeable.
"""

from finance_tracker.services.storage.interface import (
    COLLECTION_MODELS,
    AuditStorageInterface,
    Collection,
    EntitlementStore,
    NotFoundError,
    RecordStore,
    StorageConnectionError,
    StorageError,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntitlementStore,
    InMemoryRecordStore,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntitlementStore,
    GoogleSheetsRecordStore,
)

__all__ = [
    # Interfaces
    "COLLECTION_MODELS",
    "AuditStorageInterface",
    "Collection",
    "EntitlementStore",
    "RecordStore",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryEntitlementStore",
    "InMemoryRecordStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntitlementStore",
    "GoogleSheetsRecordStore",
]
