"""
Entitlement Models

An EntitlementState answers "does this user have premium access right
now, and until when?". It is always replaced wholesale, never patched.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class EntitlementSource(str, Enum):
    """Where a premium grant came from."""
    NONE = "none"
    PROMOTIONAL = "promotional"
    BILLING = "billing"


class UserIdentity(BaseModel):
    """
    The signed-in user as supplied by the identity provider.

    The core only needs a stable id and, for billing lookups, an email.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    email: Optional[str] = None


class EntitlementState(BaseModel):
    """
    Resolved premium status for one user.

    CRITICAL: subscribed is True exactly when source is not NONE.
    """
    model_config = ConfigDict(frozen=True)

    subscribed: bool = False
    product_id: Optional[str] = None
    subscription_end: Optional[datetime] = Field(
        default=None,
        description="End of the paid period or promotional window (UTC)"
    )
    source: EntitlementSource = EntitlementSource.NONE

    @field_validator('subscription_end')
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode='after')
    def validate_source(self) -> 'EntitlementState':
        if self.subscribed and self.source == EntitlementSource.NONE:
            raise ValueError("A subscribed state needs a promotional or billing source")
        if not self.subscribed and self.source != EntitlementSource.NONE:
            raise ValueError("An unsubscribed state cannot have a source")
        return self

    @classmethod
    def unsubscribed(cls) -> 'EntitlementState':
        return cls()

    @property
    def is_promotional(self) -> bool:
        return self.source == EntitlementSource.PROMOTIONAL

    def to_log_dict(self) -> dict:
        return {
            "subscribed": self.subscribed,
            "product_id": self.product_id,
            "subscription_end": (
                self.subscription_end.isoformat() if self.subscription_end else None
            ),
            "source": self.source.value,
        }
