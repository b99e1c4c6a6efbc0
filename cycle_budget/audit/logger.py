"""
Audit Logger

DESIGN DECISION: Every change to a user's budget data is logged.
This provides:
1. Complete traceability
2. Debugging capability when a number looks wrong
3. User can see history of their changes

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from cycle_budget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from cycle_budget.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        category: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            user_id=user_id,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        user_id: str,
        transaction_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            user_id=user_id,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_period_saved(
        self,
        user_id: str,
        period_id: UUID,
        name: str,
        is_new: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.period_saved(
            user_id=user_id,
            period_id=period_id,
            name=name,
            is_new=is_new,
            correlation_id=correlation_id,
        ))

    async def log_period_activated(
        self,
        user_id: str,
        period_id: UUID,
        name: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.period_activated(
            user_id=user_id,
            period_id=period_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_period_deleted(
        self,
        user_id: str,
        period_id: UUID,
        was_active: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.period_deleted(
            user_id=user_id,
            period_id=period_id,
            was_active=was_active,
            correlation_id=correlation_id,
        ))

    async def log_preferences_updated(
        self,
        user_id: str,
        preferences: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.preferences_updated(
            user_id=user_id,
            preferences=preferences,
            correlation_id=correlation_id,
        ))

    async def log_demo_data_seeded(
        self,
        user_id: str,
        period_id: UUID,
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.demo_data_seeded(
            user_id=user_id,
            period_id=period_id,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_validation_warning(
        self,
        user_id: str,
        entity_type: str,
        entity_id: UUID,
        warnings: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log a save that went through with warnings."""
        await self.log(AuditEventBuilder.validation_warning(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            warnings=warnings,
            correlation_id=correlation_id,
        ))

    async def log_advice_requested(
        self,
        user_id: str,
        kind: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.advice_requested(
            user_id=user_id,
            kind=kind,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a period).
    Pass it through all subsequent operations.
    """
    return uuid4()
