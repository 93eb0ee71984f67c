"""Form input validation."""

from finance_tracker.validation.validator import (
    FormValidator,
    InputValidationError,
    NotificationRequest,
    ValidationIssue,
)

__all__ = [
    "FormValidator",
    "InputValidationError",
    "NotificationRequest",
    "ValidationIssue",
]
