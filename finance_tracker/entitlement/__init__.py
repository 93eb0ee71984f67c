"""Premium entitlement resolution and session monitoring."""

from finance_tracker.entitlement.monitor import EntitlementMonitor
from finance_tracker.entitlement.resolver import (
    EntitlementResolutionError,
    EntitlementResolver,
    promotional_state,
    system_clock,
)

__all__ = [
    "EntitlementMonitor",
    "EntitlementResolutionError",
    "EntitlementResolver",
    "promotional_state",
    "system_clock",
]
