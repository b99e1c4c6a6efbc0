"""
Tests for storage backends.

The Google Sheets stores run against an in-process fake worksheet,
so row conversion and lookup logic are exercised without network access.
"""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from cycle_budget.models.audit import AuditEventBuilder
from cycle_budget.models.finance import (
    BudgetPeriod,
    FinancialGoal,
    Transaction,
    TransactionType,
    UserSettings,
)
from cycle_budget.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsPeriodStorage,
    GoogleSheetsSettingsStorage,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryPeriodStorage,
    InMemorySettingsStorage,
    InMemoryTransactionStorage,
    StorageBundle,
    create_memory_bundle,
    create_sheets_bundle,
)
from cycle_budget.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    PERIOD_COLUMNS,
    SETTINGS_COLUMNS,
    TRANSACTION_COLUMNS,
)


def run(coro):
    return asyncio.run(coro)


def make_tx(user_id="user_1", day=date(2025, 1, 10), amount="100", created_at=None):
    return Transaction(
        user_id=user_id,
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        category="groceries",
        date=day,
        description="Weekly shopping",
        created_at=created_at or datetime(2025, 1, 10, 12, 0),
    )


def make_period(user_id="user_1", start=date(2025, 1, 1), end=date(2025, 1, 31), name="January"):
    return BudgetPeriod(
        user_id=user_id,
        name=name,
        start_date=start,
        end_date=end,
        monthly_income=Decimal("45000"),
        fixed_expenses=Decimal("12850.50"),
    )


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the stores."""

    def __init__(self, columns):
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(v) for v in row])

    def update(self, range_name=None, values=None, value_input_option=None):
        idx = int(range_name[1:]) - 1
        self.rows[idx] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient."""

    def __init__(self):
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.periods = FakeWorksheet(PERIOD_COLUMNS)
        self.settings = FakeWorksheet(SETTINGS_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_transactions_sheet(self):
        return self.transactions

    def get_periods_sheet(self):
        return self.periods

    def get_settings_sheet(self):
        return self.settings

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture(params=["memory", "sheets"])
def bundle(request):
    if request.param == "memory":
        return create_memory_bundle()
    return create_sheets_bundle(FakeSheetsClient())


class TestTransactionStorage:
    """Behaviour shared by both transaction stores."""

    def test_add_and_get(self, bundle):
        tx = make_tx()
        run(bundle.transactions.add_transaction(tx))
        assert run(bundle.transactions.get_transaction(tx.id)) == tx

    def test_get_missing_returns_none(self, bundle):
        assert run(bundle.transactions.get_transaction(uuid4())) is None

    def test_duplicate_rejected(self, bundle):
        tx = make_tx()
        run(bundle.transactions.add_transaction(tx))
        with pytest.raises(DuplicateError):
            run(bundle.transactions.add_transaction(tx))

    def test_list_newest_first_and_per_user(self, bundle):
        older = make_tx(day=date(2025, 1, 5))
        newer = make_tx(day=date(2025, 1, 20))
        someone_else = make_tx(user_id="user_2")
        for tx in (older, someone_else, newer):
            run(bundle.transactions.add_transaction(tx))

        listed = run(bundle.transactions.list_transactions("user_1"))
        assert [t.id for t in listed] == [newer.id, older.id]

    def test_list_date_range_inclusive(self, bundle):
        for day in (date(2024, 12, 31), date(2025, 1, 1), date(2025, 1, 31), date(2025, 2, 1)):
            run(bundle.transactions.add_transaction(make_tx(day=day)))

        listed = run(bundle.transactions.list_transactions(
            "user_1",
            date_from=date(2025, 1, 1),
            date_to=date(2025, 1, 31),
        ))
        assert [t.date for t in listed] == [date(2025, 1, 31), date(2025, 1, 1)]

    def test_delete_only_own_transaction(self, bundle):
        tx = make_tx()
        run(bundle.transactions.add_transaction(tx))

        assert run(bundle.transactions.delete_transaction("user_2", tx.id)) is False
        assert run(bundle.transactions.delete_transaction("user_1", tx.id)) is True
        assert run(bundle.transactions.delete_transaction("user_1", tx.id)) is False
        assert run(bundle.transactions.list_transactions("user_1")) == []


class TestPeriodStorage:
    """Behaviour shared by both period stores."""

    def test_save_and_get(self, bundle):
        period = make_period()
        run(bundle.periods.save_period(period))
        assert run(bundle.periods.get_period(period.id)) == period

    def test_save_replaces_same_id(self, bundle):
        period = make_period()
        run(bundle.periods.save_period(period))
        renamed = period.model_copy(update={"name": "January (edited)"})
        run(bundle.periods.save_period(renamed))

        periods = run(bundle.periods.list_periods("user_1"))
        assert len(periods) == 1
        assert periods[0].name == "January (edited)"

    def test_list_latest_start_first(self, bundle):
        december = make_period(start=date(2024, 12, 1), end=date(2024, 12, 31), name="December")
        january = make_period()
        run(bundle.periods.save_period(december))
        run(bundle.periods.save_period(january))
        run(bundle.periods.save_period(make_period(user_id="user_2")))

        names = [p.name for p in run(bundle.periods.list_periods("user_1"))]
        assert names == ["January", "December"]

    def test_delete(self, bundle):
        period = make_period()
        run(bundle.periods.save_period(period))
        assert run(bundle.periods.delete_period("user_2", period.id)) is False
        assert run(bundle.periods.delete_period("user_1", period.id)) is True
        assert run(bundle.periods.get_period(period.id)) is None


class TestSettingsStorage:
    """Behaviour shared by both settings stores."""

    def test_missing_settings(self, bundle):
        assert run(bundle.settings.get_settings("nobody")) is None

    def test_save_and_replace(self, bundle):
        period_id = uuid4()
        run(bundle.settings.save_settings(UserSettings(user_id="user_1")))
        run(bundle.settings.save_settings(UserSettings(
            user_id="user_1",
            active_period_id=period_id,
            financial_goal=FinancialGoal.SAVINGS,
        )))

        settings = run(bundle.settings.get_settings("user_1"))
        assert settings.active_period_id == period_id
        assert settings.financial_goal == FinancialGoal.SAVINGS

    def test_clearing_active_period(self, bundle):
        run(bundle.settings.save_settings(UserSettings(user_id="user_1", active_period_id=uuid4())))
        run(bundle.settings.save_settings(UserSettings(user_id="user_1")))
        assert run(bundle.settings.get_settings("user_1")).active_period_id is None


class TestInMemoryIsolation:
    """Tests that in-memory stores hand out copies."""

    def test_stored_period_not_affected_by_caller(self):
        store = InMemoryPeriodStorage()
        period = make_period()
        run(store.save_period(period))
        period.name = "Changed after saving"
        assert run(store.get_period(period.id)).name == "January"

    def test_bundle_holds_memory_stores(self):
        stores = create_memory_bundle()
        assert isinstance(stores, StorageBundle)
        assert isinstance(stores.transactions, InMemoryTransactionStorage)
        assert isinstance(stores.settings, InMemorySettingsStorage)


class TestGoogleSheetsRows:
    """Tests for Google Sheets row layout."""

    def test_transaction_row_layout(self):
        client = FakeSheetsClient()
        store = GoogleSheetsTransactionStorage(client)
        tx = make_tx(amount="12.50")
        run(store.add_transaction(tx))

        row = client.transactions.rows[1]
        assert row[0] == str(tx.id)
        assert row[2] == "expense"
        assert row[3] == "12.50"
        assert row[5] == "2025-01-10"

    def test_malformed_rows_are_skipped(self):
        client = FakeSheetsClient()
        client.transactions.rows.append(["not-a-uuid", "user_1", "expense", "x"])
        store = GoogleSheetsTransactionStorage(client)
        good = make_tx()
        run(store.add_transaction(good))

        assert [t.id for t in run(store.list_transactions("user_1"))] == [good.id]

    def test_period_amounts_round_trip_exactly(self):
        client = FakeSheetsClient()
        store = GoogleSheetsPeriodStorage(client)
        period = make_period()
        run(store.save_period(period))
        assert run(store.get_period(period.id)).fixed_expenses == Decimal("12850.50")

    def test_settings_row_keyed_by_user(self):
        client = FakeSheetsClient()
        store = GoogleSheetsSettingsStorage(client)
        run(store.save_settings(UserSettings(user_id="user_1")))
        run(store.save_settings(UserSettings(user_id="user_2")))
        run(store.save_settings(UserSettings(user_id="user_1", currency="EUR")))

        assert len(client.settings.rows) == 3
        assert run(store.get_settings("user_1")).currency == "EUR"


class TestAuditStorage:
    """Tests for both audit stores."""

    @pytest.mark.parametrize("store_factory", [
        InMemoryAuditStorage,
        lambda: GoogleSheetsAuditStorage(FakeSheetsClient()),
    ])
    def test_events_by_correlation_id(self, store_factory):
        store = store_factory()
        correlation_id = uuid4()
        first = AuditEventBuilder.period_saved(
            user_id="user_1",
            period_id=uuid4(),
            name="January",
            is_new=True,
            correlation_id=correlation_id,
        )
        second = AuditEventBuilder.period_activated(
            user_id="user_1",
            period_id=first.entity_id,
            name="January",
            correlation_id=correlation_id,
        )
        unrelated = AuditEventBuilder.system_error("X", "boom")

        for event in (first, second, unrelated):
            assert run(store.append_event(event)) is True

        events = run(store.get_events_by_correlation_id(correlation_id))
        assert [e.event_id for e in events] == [first.event_id, second.event_id]
        assert events[0].details == {"name": "January", "is_new": True}
        assert events[0].is_user_action is True

        recent = run(store.get_recent_events(limit=2))
        assert len(recent) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
