"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Guest users live in memory; registered users live in Google Sheets or in
memory, depending on configuration.
"""

from cycle_budget.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    PeriodStorageInterface,
    SettingsStorageInterface,
    StorageBundle,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)
from cycle_budget.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryPeriodStorage,
    InMemorySettingsStorage,
    InMemoryTransactionStorage,
    create_memory_bundle,
)
from cycle_budget.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPeriodStorage,
    GoogleSheetsSettingsStorage,
    GoogleSheetsTransactionStorage,
    create_sheets_bundle,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "PeriodStorageInterface",
    "SettingsStorageInterface",
    "TransactionStorageInterface",
    "StorageBundle",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryPeriodStorage",
    "InMemorySettingsStorage",
    "InMemoryTransactionStorage",
    "create_memory_bundle",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPeriodStorage",
    "GoogleSheetsSettingsStorage",
    "GoogleSheetsTransactionStorage",
    "create_sheets_bundle",
]
