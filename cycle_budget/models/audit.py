"""
Audit Models for Cycle Budget

Every user action that changes stored data is logged for audit purposes.
This provides:
1. Traceability of who changed what and when
2. Debugging information when numbers look wrong
3. Ability to reconstruct the history of a budget period

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"

    # Budget periods
    PERIOD_SAVED = "period_saved"
    PERIOD_ACTIVATED = "period_activated"
    PERIOD_DELETED = "period_deleted"

    # Settings
    PREFERENCES_UPDATED = "preferences_updated"
    DEMO_DATA_SEEDED = "demo_data_seeded"

    # Validation
    VALIDATION_WARNING = "validation_warning"

    # Advisor
    ADVICE_REQUESTED = "advice_requested"

    # System events
    SYSTEM_ERROR = "system_error"
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

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who and what
    user_id: Optional[str] = Field(
        default=None,
        description="User the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'period', 'settings')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
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
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx, correlation_id)
        event = AuditEventBuilder.period_activated(user_id, period_id, name, correlation_id)
    """

    @staticmethod
    def transaction_added(
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        category: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} added: {category} {amount}",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        user_id: str,
        transaction_id: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def period_saved(
        user_id: str,
        period_id: UUID,
        name: str,
        is_new: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        verb = "created" if is_new else "updated"
        return AuditEvent(
            event_type=AuditEventType.PERIOD_SAVED,
            user_id=user_id,
            entity_type="period",
            entity_id=period_id,
            correlation_id=correlation_id,
            description=f"Budget period {verb}: {name}",
            details={
                "name": name,
                "is_new": is_new,
            },
            is_user_action=True,
        )

    @staticmethod
    def period_activated(
        user_id: str,
        period_id: UUID,
        name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_ACTIVATED,
            user_id=user_id,
            entity_type="period",
            entity_id=period_id,
            correlation_id=correlation_id,
            description=f"Budget period activated: {name}",
            is_user_action=True,
        )

    @staticmethod
    def period_deleted(
        user_id: str,
        period_id: UUID,
        was_active: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_DELETED,
            user_id=user_id,
            entity_type="period",
            entity_id=period_id,
            correlation_id=correlation_id,
            description="Budget period deleted",
            details={
                "was_active": was_active,
            },
            is_user_action=True,
        )

    @staticmethod
    def preferences_updated(
        user_id: str,
        preferences: dict[str, str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_UPDATED,
            user_id=user_id,
            entity_type="settings",
            correlation_id=correlation_id,
            description="Advisor preferences updated",
            details=preferences,
            is_user_action=True,
        )

    @staticmethod
    def demo_data_seeded(
        user_id: str,
        period_id: UUID,
        transaction_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEMO_DATA_SEEDED,
            user_id=user_id,
            entity_type="period",
            entity_id=period_id,
            correlation_id=correlation_id,
            description=f"Demo data seeded with {transaction_count} transactions",
            details={
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def validation_warning(
        user_id: str,
        entity_type: str,
        entity_id: UUID,
        warnings: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNING,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} saved with {len(warnings)} warnings",
            details={
                "warnings": warnings,
            },
        )

    @staticmethod
    def advice_requested(
        user_id: str,
        kind: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_REQUESTED,
            user_id=user_id,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"Advisor {kind} requested",
            details={
                "kind": kind,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
