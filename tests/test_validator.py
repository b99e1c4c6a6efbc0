"""Tests for semantic validation."""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from cycle_budget.config import AppSettings
from cycle_budget.models.finance import BudgetPeriod, Transaction, TransactionType
from cycle_budget.validation import (
    PeriodValidator,
    TransactionValidator,
    get_user_friendly_summary,
)


TODAY = date(2025, 1, 15)


@pytest.fixture
def validator():
    return TransactionValidator(AppSettings(
        max_transaction_amount=10000.0,
        future_date_tolerance_days=31,
    ))


def make_tx(amount="100", day=TODAY, type=TransactionType.EXPENSE, category="groceries"):
    return Transaction(
        user_id="user_1",
        type=type,
        amount=Decimal(amount),
        category=category,
        date=day,
    )


def make_period(start, end, name="Period", income="45000", fixed="12850", user_id="user_1"):
    return BudgetPeriod(
        user_id=user_id,
        name=name,
        start_date=start,
        end_date=end,
        monthly_income=Decimal(income),
        fixed_expenses=Decimal(fixed),
    )


class TestTransactionValidator:
    """Tests for TransactionValidator."""

    def test_clean_transaction(self, validator):
        result = validator.validate(make_tx(), today=TODAY)
        assert result.is_valid
        assert result.issues == []
        assert result.warnings == []

    def test_zero_amount_is_error(self, validator):
        result = validator.validate(make_tx(amount="0"), today=TODAY)
        assert not result.is_valid
        assert result.has_errors
        assert result.issues[0].field == "amount"

    def test_far_future_date_warns(self, validator):
        result = validator.validate(make_tx(day=TODAY + timedelta(days=32)), today=TODAY)
        assert result.is_valid
        assert result.issues[0].issue_type == "future_date"
        assert len(result.warnings) == 1

    def test_future_date_within_tolerance_ok(self, validator):
        result = validator.validate(make_tx(day=TODAY + timedelta(days=31)), today=TODAY)
        assert result.issues == []

    def test_huge_amount_warns(self, validator):
        result = validator.validate(make_tx(amount="10000.01"), today=TODAY)
        assert result.is_valid
        assert result.issues[0].issue_type == "suspicious_value"

    def test_income_category_on_expense_is_info(self, validator):
        result = validator.validate(make_tx(category="salary"), today=TODAY)
        assert result.is_valid
        assert result.warnings == []
        assert result.issues[0].severity == "info"
        assert result.issues[0].issue_type == "category_mismatch"

    def test_custom_category_not_flagged(self, validator):
        result = validator.validate(make_tx(category="Gifts for mum"), today=TODAY)
        assert result.issues == []

    def test_result_carries_transaction_id(self, validator):
        tx = make_tx()
        assert validator.validate(tx, today=TODAY).entity_id == tx.id


class TestPeriodValidator:
    """Tests for PeriodValidator."""

    def test_no_other_periods(self):
        period = make_period(date(2025, 1, 1), date(2025, 1, 31))
        result = PeriodValidator().validate(period)
        assert result.is_valid
        assert result.issues == []

    def test_overlap_warns(self):
        december = make_period(date(2024, 12, 1), date(2025, 1, 5), name="December")
        january = make_period(date(2025, 1, 1), date(2025, 1, 31), name="January")
        result = PeriodValidator().validate(january, [december])
        assert result.is_valid
        assert result.issues[0].issue_type == "overlap"
        assert "December" in result.warnings[0]

    def test_editing_does_not_overlap_itself(self):
        january = make_period(date(2025, 1, 1), date(2025, 1, 31))
        edited = january.model_copy(update={"name": "Renamed"})
        assert PeriodValidator().validate(edited, [january]).issues == []

    def test_other_users_periods_ignored(self):
        mine = make_period(date(2025, 1, 1), date(2025, 1, 31))
        theirs = make_period(date(2025, 1, 1), date(2025, 1, 31), user_id="user_2")
        assert PeriodValidator().validate(mine, [theirs]).issues == []

    def test_fixed_expenses_above_income_warns(self):
        period = make_period(date(2025, 1, 1), date(2025, 1, 31), income="1000", fixed="2000")
        result = PeriodValidator().validate(period)
        assert [i.field for i in result.issues] == ["fixed_expenses"]
        assert result.is_valid

    def test_zero_income_is_info(self):
        period = make_period(date(2025, 1, 1), date(2025, 1, 31), income="0", fixed="0")
        result = PeriodValidator().validate(period)
        assert [i.severity for i in result.issues] == ["info"]
        assert result.warnings == []


class TestUserFriendlySummary:
    """Tests for the human-readable summary."""

    def test_all_passed(self, validator):
        result = validator.validate(make_tx(), today=TODAY)
        assert get_user_friendly_summary(result) == "✅ All checks passed!"

    def test_errors_and_fixes_listed(self, validator):
        result = validator.validate(make_tx(amount="0"), today=TODAY)
        summary = get_user_friendly_summary(result)
        assert "❌" in summary
        assert "Amount must be greater than zero" in summary
        assert "💡" in summary

    def test_warnings_listed(self, validator):
        result = validator.validate(make_tx(amount="50000"), today=TODAY)
        summary = get_user_friendly_summary(result)
        assert summary.startswith("⚠️ Please verify the following:")
        assert "unusually high" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
