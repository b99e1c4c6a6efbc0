"""Services package."""

from cycle_budget.services.demo import build_demo_data, seed_guest_data
from cycle_budget.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    NotFoundError,
    PeriodStorageInterface,
    SettingsStorageInterface,
    StorageBundle,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
    create_memory_bundle,
    create_sheets_bundle,
)

__all__ = [
    # Demo data
    "build_demo_data",
    "seed_guest_data",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "NotFoundError",
    "PeriodStorageInterface",
    "SettingsStorageInterface",
    "StorageBundle",
    "StorageConnectionError",
    "StorageError",
    "TransactionStorageInterface",
    "create_memory_bundle",
    "create_sheets_bundle",
]
