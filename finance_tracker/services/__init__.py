"""Services package."""

from finance_tracker.services.ai import (
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    FinancialAnalysisService,
)
from finance_tracker.services.billing import (
    BillingConfigurationError,
    BillingError,
    BillingProvider,
    StripeBillingProvider,
)
from finance_tracker.services.sms import (
    SMSConfigurationError,
    SMSError,
    TwilioSMSGateway,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    Collection,
    EntitlementStore,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntitlementStore,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryEntitlementStore,
    InMemoryRecordStore,
    NotFoundError,
    RecordStore,
    StorageError,
)

__all__ = [
    # AI services
    "AIQuotaExceededError",
    "AIRateLimitError",
    "AIServiceError",
    "FinancialAnalysisService",
    # Billing services
    "BillingConfigurationError",
    "BillingError",
    "BillingProvider",
    "StripeBillingProvider",
    # SMS services
    "SMSConfigurationError",
    "SMSError",
    "TwilioSMSGateway",
    # Storage services
    "AuditStorageInterface",
    "Collection",
    "EntitlementStore",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntitlementStore",
    "GoogleSheetsRecordStore",
    "InMemoryAuditStorage",
    "InMemoryEntitlementStore",
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStore",
    "StorageError",
]
