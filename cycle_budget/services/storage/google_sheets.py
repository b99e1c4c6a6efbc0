"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent backend because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

One worksheet per record type; one record per row. Amounts are written
as strings so Decimal values survive the round trip unchanged.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cycle_budget.config import get_settings
from cycle_budget.models.audit import AuditEvent, AuditEventType, AuditSeverity
from cycle_budget.models.finance import (
    BudgetPeriod,
    FinancialGoal,
    RiskTolerance,
    SavingsStyle,
    Transaction,
    TransactionType,
    UserSettings,
)
from cycle_budget.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    PeriodStorageInterface,
    SettingsStorageInterface,
    StorageBundle,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "type",
    "amount",
    "category",
    "date",
    "description",
    "created_at",
]

PERIOD_COLUMNS = [
    "id",
    "user_id",
    "name",
    "start_date",
    "end_date",
    "monthly_income",
    "fixed_expenses",
]

SETTINGS_COLUMNS = [
    "user_id",
    "active_period_id",
    "currency",
    "financial_goal",
    "savings_style",
    "risk_tolerance",
    "updated_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# DuplicateError is raised straight away, never retried
_sheets_retry = retry(
    retry=retry_if_not_exception_type(DuplicateError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows and empty cells."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_sheets_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def get_periods_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.periods_sheet_name, PERIOD_COLUMNS)

    def get_settings_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.settings_sheet_name, SETTINGS_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


def _parse_rows(rows: list[list], parse: Callable[[list], T], sheet: str) -> list[T]:
    """Parse data rows, skipping (and logging) malformed ones."""
    parsed = []
    for row in rows:
        if not row or not row[0]:
            continue
        try:
            parsed.append(parse(row))
        except (ValueError, KeyError, json.JSONDecodeError) as e:
            logger.warning("sheets_row_skipped", sheet=sheet, row_id=row[0], error=str(e))
    return parsed


def _find_row_index(sheet: gspread.Worksheet, key: str) -> Optional[int]:
    """1-based row index of the first data row whose first cell equals key."""
    all_rows = sheet.get_all_values()
    for idx, row in enumerate(all_rows[1:], start=2):  # row 1 is the header
        if row and row[0] == key:
            return idx
    return None


def _replace_row(sheet: gspread.Worksheet, key: str, new_row: list) -> None:
    idx = _find_row_index(sheet, key)
    if idx is None:
        sheet.append_row(new_row, value_input_option="RAW")
    else:
        sheet.update(range_name=f"A{idx}", values=[new_row], value_input_option="RAW")


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """Google Sheets implementation of transaction storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, tx: Transaction) -> list:
        return [
            str(tx.id),
            tx.user_id,
            tx.type.value,
            str(tx.amount),
            tx.category,
            tx.date.isoformat(),
            tx.description,
            tx.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        return Transaction(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            type=TransactionType(_cell(row, 2)),
            amount=Decimal(_cell(row, 3, "0")),
            category=_cell(row, 4),
            date=date.fromisoformat(_cell(row, 5)),
            description=_cell(row, 6),
            created_at=datetime.fromisoformat(_cell(row, 7)),
        )

    @_sheets_retry
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            if _find_row_index(sheet, str(transaction.id)) is not None:
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            sheet.append_row(self._transaction_to_row(transaction), value_input_option="RAW")
            return transaction
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(transaction_id):
                    return self._row_to_transaction(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

    async def delete_transaction(self, user_id: str, transaction_id: UUID) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(transaction_id) and _cell(row, 1) == user_id:
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            rows = [r for r in sheet.get_all_values()[1:] if _cell(r, 1) == user_id]
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        transactions = [
            tx for tx in _parse_rows(rows, self._row_to_transaction, "transactions")
            if (date_from is None or tx.date >= date_from)
            and (date_to is None or tx.date <= date_to)
        ]
        transactions.sort(key=lambda t: (t.date, t.created_at), reverse=True)
        return transactions


class GoogleSheetsPeriodStorage(PeriodStorageInterface):
    """Google Sheets implementation of budget period storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _period_to_row(self, period: BudgetPeriod) -> list:
        return [
            str(period.id),
            period.user_id,
            period.name,
            period.start_date.isoformat(),
            period.end_date.isoformat(),
            str(period.monthly_income),
            str(period.fixed_expenses),
        ]

    def _row_to_period(self, row: list) -> BudgetPeriod:
        return BudgetPeriod(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            name=_cell(row, 2),
            start_date=date.fromisoformat(_cell(row, 3)),
            end_date=date.fromisoformat(_cell(row, 4)),
            monthly_income=Decimal(_cell(row, 5, "0")),
            fixed_expenses=Decimal(_cell(row, 6, "0")),
        )

    @_sheets_retry
    async def save_period(self, period: BudgetPeriod) -> BudgetPeriod:
        try:
            sheet = self._client.get_periods_sheet()
            _replace_row(sheet, str(period.id), self._period_to_row(period))
            return period
        except Exception as e:
            raise StorageError(f"Failed to save period: {e}")

    async def get_period(self, period_id: UUID) -> Optional[BudgetPeriod]:
        try:
            sheet = self._client.get_periods_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(period_id):
                    return self._row_to_period(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get period: {e}")

    async def list_periods(self, user_id: str) -> list[BudgetPeriod]:
        try:
            sheet = self._client.get_periods_sheet()
            rows = [r for r in sheet.get_all_values()[1:] if _cell(r, 1) == user_id]
        except Exception as e:
            raise StorageError(f"Failed to list periods: {e}")

        periods = _parse_rows(rows, self._row_to_period, "periods")
        periods.sort(key=lambda p: p.start_date, reverse=True)
        return periods

    async def delete_period(self, user_id: str, period_id: UUID) -> bool:
        try:
            sheet = self._client.get_periods_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(period_id) and _cell(row, 1) == user_id:
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete period: {e}")


class GoogleSheetsSettingsStorage(SettingsStorageInterface):
    """Google Sheets implementation of user settings storage (one row per user)."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _settings_to_row(self, settings: UserSettings) -> list:
        return [
            settings.user_id,
            str(settings.active_period_id) if settings.active_period_id else "",
            settings.currency,
            settings.financial_goal.value,
            settings.savings_style.value,
            settings.risk_tolerance.value,
            settings.updated_at.isoformat(),
        ]

    def _row_to_settings(self, row: list) -> UserSettings:
        active = _cell(row, 1)
        updated_at = _cell(row, 6)
        return UserSettings(
            user_id=_cell(row, 0),
            active_period_id=UUID(active) if active else None,
            currency=_cell(row, 2, "TRY"),
            financial_goal=FinancialGoal(_cell(row, 3, FinancialGoal.STABILITY.value)),
            savings_style=SavingsStyle(_cell(row, 4, SavingsStyle.BALANCED.value)),
            risk_tolerance=RiskTolerance(_cell(row, 5, RiskTolerance.MEDIUM.value)),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else datetime.utcnow(),
        )

    async def get_settings(self, user_id: str) -> Optional[UserSettings]:
        try:
            sheet = self._client.get_settings_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == user_id:
                    return self._row_to_settings(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get settings: {e}")

    @_sheets_retry
    async def save_settings(self, settings: UserSettings) -> UserSettings:
        try:
            sheet = self._client.get_settings_sheet()
            _replace_row(sheet, settings.user_id, self._settings_to_row(settings))
            return settings
        except Exception as e:
            raise StorageError(f"Failed to save settings: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        entity_id = _cell(row, 6)
        correlation_id = _cell(row, 7)
        details = _cell(row, 9)
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            user_id=_cell(row, 4) or None,
            entity_type=_cell(row, 5) or None,
            entity_id=UUID(entity_id) if entity_id else None,
            correlation_id=UUID(correlation_id) if correlation_id else None,
            description=_cell(row, 8),
            details=json.loads(details) if details else {},
            error_message=_cell(row, 10) or None,
            is_user_action=_cell(row, 11).lower() == "true",
        )

    @_sheets_retry
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            rows = [r for r in sheet.get_all_values()[1:] if _cell(r, 7) == str(correlation_id)]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = _parse_rows(rows, self._row_to_event, "audit")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = _parse_rows(rows, self._row_to_event, "audit")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def create_sheets_bundle(client: Optional[GoogleSheetsClient] = None) -> StorageBundle:
    """Google Sheets stores sharing one client."""
    client = client or GoogleSheetsClient()
    return StorageBundle(
        transactions=GoogleSheetsTransactionStorage(client),
        periods=GoogleSheetsPeriodStorage(client),
        settings=GoogleSheetsSettingsStorage(client),
    )
