"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep guest users in memory and registered users in Google Sheets
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Stores make no promise about ordering unless a method says so; the
calculator sorts and filters on its own.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from cycle_budget.models.audit import AuditEvent
from cycle_budget.models.finance import (
    BudgetPeriod,
    Transaction,
    UserSettings,
)


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage.

    Transactions are only ever added or deleted, never updated.
    """

    @abstractmethod
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        """
        Store a new transaction.

        Returns:
            The stored transaction

        Raises:
            DuplicateError: If a transaction with the same ID exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """Retrieve a transaction by ID, or None if it doesn't exist."""
        pass

    @abstractmethod
    async def delete_transaction(self, user_id: str, transaction_id: UUID) -> bool:
        """
        Delete a transaction owned by user_id.

        Returns:
            True if a transaction was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions, optionally limited to a date range.

        Args:
            user_id: Owner of the transactions
            date_from: Only transactions on or after this day
            date_to: Only transactions on or before this day

        Returns:
            Matching transactions, newest first
        """
        pass


class PeriodStorageInterface(ABC):
    """Abstract interface for budget period storage."""

    @abstractmethod
    async def save_period(self, period: BudgetPeriod) -> BudgetPeriod:
        """
        Insert a period, or replace the stored one with the same ID.

        Returns:
            The stored period
        """
        pass

    @abstractmethod
    async def get_period(self, period_id: UUID) -> Optional[BudgetPeriod]:
        """Retrieve a period by ID, or None if it doesn't exist."""
        pass

    @abstractmethod
    async def list_periods(self, user_id: str) -> list[BudgetPeriod]:
        """List a user's periods, latest start date first."""
        pass

    @abstractmethod
    async def delete_period(self, user_id: str, period_id: UUID) -> bool:
        """
        Delete a period owned by user_id.

        Returns:
            True if a period was deleted, False if none matched
        """
        pass


class SettingsStorageInterface(ABC):
    """Abstract interface for per-user settings."""

    @abstractmethod
    async def get_settings(self, user_id: str) -> Optional[UserSettings]:
        """Return the user's settings, or None if never saved."""
        pass

    @abstractmethod
    async def save_settings(self, settings: UserSettings) -> UserSettings:
        """Insert or replace the user's settings."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one user action, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events, newest first."""
        pass


@dataclass
class StorageBundle:
    """The stores one user's data lives in."""

    transactions: TransactionStorageInterface
    periods: PeriodStorageInterface
    settings: SettingsStorageInterface


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
