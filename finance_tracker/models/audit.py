"""
Audit Models for Finance Tracker

Every significant action in the system is logged for audit purposes:
records created or deleted, entitlement resolutions, AI analyses,
notifications and exports.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    GOAL_FUNDS_ADDED = "goal_funds_added"
    VALIDATION_FAILED = "validation_failed"

    # Entitlement
    ENTITLEMENT_RESOLVED = "entitlement_resolved"
    ENTITLEMENT_RESOLUTION_FAILED = "entitlement_resolution_failed"
    CHECKOUT_STARTED = "checkout_started"

    # AI analysis
    ANALYSIS_REQUESTED = "analysis_requested"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"

    # Notifications
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"

    # Exports
    EXPORT_GENERATED = "export_generated"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    user_id: Optional[str] = Field(
        default=None,
        description="User the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expenses', 'entitlement')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("expenses", record_id, user_id)
        event = AuditEventBuilder.entitlement_resolved(user_id, state_dict)
    """

    @staticmethod
    def record_created(
        collection: str,
        record_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            user_id=user_id,
            entity_type=collection,
            entity_id=str(record_id),
            correlation_id=correlation_id,
            description=f"Record added to {collection}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        collection: str,
        record_id: UUID,
        user_id: str,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            user_id=user_id,
            entity_type=collection,
            entity_id=str(record_id),
            correlation_id=correlation_id,
            description=f"Record in {collection} updated",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        collection: str,
        record_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            user_id=user_id,
            entity_type=collection,
            entity_id=str(record_id),
            correlation_id=correlation_id,
            description=f"Record deleted from {collection}",
            is_user_action=True,
        )

    @staticmethod
    def goal_funds_added(
        goal_id: UUID,
        user_id: str,
        amount: str,
        new_total: str,
        completed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_FUNDS_ADDED,
            user_id=user_id,
            entity_type="savings_goals",
            entity_id=str(goal_id),
            correlation_id=correlation_id,
            description=f"Added {amount} to savings goal",
            details={
                "amount": amount,
                "current_amount": new_total,
                "is_completed": completed,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=form,
            correlation_id=correlation_id,
            description=f"Validation failed for {form}",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def entitlement_resolved(
        user_id: str,
        state: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITLEMENT_RESOLVED,
            user_id=user_id,
            entity_type="entitlement",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Entitlement resolved from source: {state.get('source')}",
            details=state,
        )

    @staticmethod
    def entitlement_resolution_failed(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITLEMENT_RESOLUTION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="entitlement",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Entitlement could not be resolved",
            error_message=error_message,
        )

    @staticmethod
    def checkout_started(
        user_id: str,
        session_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHECKOUT_STARTED,
            user_id=user_id,
            entity_type="checkout_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description="Premium checkout session created",
            is_user_action=True,
        )

    @staticmethod
    def analysis_requested(
        user_id: str,
        advanced: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_REQUESTED,
            user_id=user_id,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"{'Advanced' if advanced else 'Basic'} analysis requested",
            details={"advanced": advanced},
            is_user_action=True,
        )

    @staticmethod
    def analysis_completed(
        user_id: str,
        advanced: bool,
        response_chars: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            user_id=user_id,
            entity_type="analysis",
            correlation_id=correlation_id,
            description="Analysis completed",
            details={"advanced": advanced, "response_chars": response_chars},
        )

    @staticmethod
    def analysis_failed(
        user_id: str,
        error_kind: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"Analysis failed: {error_kind}",
            details={"error_kind": error_kind},
            error_message=error_message,
        )

    @staticmethod
    def notification_sent(
        user_id: str,
        notification_type: str,
        message_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_SENT,
            user_id=user_id,
            entity_type="notification",
            entity_id=message_id,
            correlation_id=correlation_id,
            description=f"SMS notification sent ({notification_type})",
            details={"notification_type": notification_type},
            is_user_action=True,
        )

    @staticmethod
    def notification_failed(
        user_id: str,
        notification_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="notification",
            correlation_id=correlation_id,
            description=f"SMS notification failed ({notification_type})",
            details={"notification_type": notification_type},
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def export_generated(
        user_id: str,
        export_format: str,
        record_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            user_id=user_id,
            entity_type="export",
            correlation_id=correlation_id,
            description=f"{export_format.upper()} export generated",
            details={"format": export_format, "record_count": record_count},
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            details={"service": service},
            error_message=error_message,
        )
