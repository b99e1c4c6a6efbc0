"""
In-Memory Storage Implementation

Used for guest users (nothing survives a restart, like a browser's
local storage being cleared) and as the storage backend in tests.

Records are kept in dicts keyed by ID. Pydantic models are copied on
the way in and out so callers can't change stored state by accident.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from cycle_budget.models.audit import AuditEvent
from cycle_budget.models.finance import (
    BudgetPeriod,
    Transaction,
    UserSettings,
)
from cycle_budget.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    PeriodStorageInterface,
    SettingsStorageInterface,
    StorageBundle,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions kept in a dict."""

    def __init__(self):
        self._transactions: dict[UUID, Transaction] = {}

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        # Transaction is frozen, no copy needed
        self._transactions[transaction.id] = transaction
        return transaction

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    async def delete_transaction(self, user_id: str, transaction_id: UUID) -> bool:
        tx = self._transactions.get(transaction_id)
        if tx is None or tx.user_id != user_id:
            return False
        del self._transactions[transaction_id]
        return True

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        results = [
            tx for tx in self._transactions.values()
            if tx.user_id == user_id
            and (date_from is None or tx.date >= date_from)
            and (date_to is None or tx.date <= date_to)
        ]
        results.sort(key=lambda t: (t.date, t.created_at), reverse=True)
        return results


class InMemoryPeriodStorage(PeriodStorageInterface):
    """Budget periods kept in a dict."""

    def __init__(self):
        self._periods: dict[UUID, BudgetPeriod] = {}

    async def save_period(self, period: BudgetPeriod) -> BudgetPeriod:
        self._periods[period.id] = period.model_copy()
        return period

    async def get_period(self, period_id: UUID) -> Optional[BudgetPeriod]:
        period = self._periods.get(period_id)
        return period.model_copy() if period else None

    async def list_periods(self, user_id: str) -> list[BudgetPeriod]:
        periods = [p.model_copy() for p in self._periods.values() if p.user_id == user_id]
        periods.sort(key=lambda p: p.start_date, reverse=True)
        return periods

    async def delete_period(self, user_id: str, period_id: UUID) -> bool:
        period = self._periods.get(period_id)
        if period is None or period.user_id != user_id:
            return False
        del self._periods[period_id]
        return True


class InMemorySettingsStorage(SettingsStorageInterface):
    """User settings kept in a dict keyed by user ID."""

    def __init__(self):
        self._settings: dict[str, UserSettings] = {}

    async def get_settings(self, user_id: str) -> Optional[UserSettings]:
        settings = self._settings.get(user_id)
        return settings.model_copy() if settings else None

    async def save_settings(self, settings: UserSettings) -> UserSettings:
        self._settings[settings.user_id] = settings.model_copy()
        return settings


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def create_memory_bundle() -> StorageBundle:
    """Fresh, empty in-memory stores."""
    return StorageBundle(
        transactions=InMemoryTransactionStorage(),
        periods=InMemoryPeriodStorage(),
        settings=InMemorySettingsStorage(),
    )
