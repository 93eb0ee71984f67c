"""
Error Taxonomy

DESIGN DECISION: Every failure the core can produce maps to one ErrorKind.
Services raise subclasses of FinanceTrackerError (defined next to the
service that raises them); presentation layers turn them into an
OperationResult and decide how to show it.

User-facing messages describe the category of failure, never the raw
error text from an external service.
"""

from enum import Enum
from typing import Any, Awaitable, Optional

import structlog
from pydantic import BaseModel, Field


logger = structlog.get_logger(__name__)


class ErrorKind(str, Enum):
    """Categories of failure surfaced to callers."""
    AUTHENTICATION_REQUIRED = "authentication_required"
    EXTERNAL_SERVICE_UNAVAILABLE = "external_service_unavailable"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    VALIDATION_FAILURE = "validation_failure"
    NOT_FOUND = "not_found"
    PREMIUM_REQUIRED = "premium_required"


DEFAULT_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION_REQUIRED: "Please sign in to continue.",
    ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE: "A service is unavailable right now. Please try again.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please try again in a few moments.",
    ErrorKind.QUOTA_EXCEEDED: "Credits needed. Please add credits to continue using AI features.",
    ErrorKind.VALIDATION_FAILURE: "Please fill in required fields.",
    ErrorKind.NOT_FOUND: "The requested item no longer exists.",
    ErrorKind.PREMIUM_REQUIRED: "This feature is available on the Premium plan.",
}


class FinanceTrackerError(Exception):
    """
    Base exception for all expected failures.

    Subclasses set a default `kind`; a specific `user_message`
    can be passed per instance.
    """

    kind: ErrorKind = ErrorKind.EXTERNAL_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.user_message = user_message or DEFAULT_USER_MESSAGES[self.kind]


class AuthenticationRequiredError(FinanceTrackerError):
    """No signed-in user, or the identity lacks a required attribute."""
    kind = ErrorKind.AUTHENTICATION_REQUIRED


class PremiumRequiredError(FinanceTrackerError):
    """The operation needs an active entitlement."""
    kind = ErrorKind.PREMIUM_REQUIRED


class OperationResult(BaseModel):
    """
    Explicit outcome of a user-triggered operation.

    Either `success` with optional `data`, or a failure carrying the
    error kind and a message safe to show to the user.
    """

    success: bool
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = Field(
        default=None,
        description="User-facing message describing the outcome"
    )

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def from_error(cls, error: FinanceTrackerError) -> "OperationResult":
        return cls(
            success=False,
            error_kind=error.kind,
            message=error.user_message,
        )


async def run_operation(
    operation: Awaitable[Any],
    success_message: Optional[str] = None,
) -> OperationResult:
    """
    Await an operation and fold known failures into an OperationResult.

    Only FinanceTrackerError is converted; anything else is a bug and
    propagates.
    """
    try:
        data = await operation
    except FinanceTrackerError as e:
        logger.warning(
            "operation_failed",
            error_kind=e.kind.value,
            error=str(e),
        )
        return OperationResult.from_error(e)
    return OperationResult.ok(data=data, message=success_message)
