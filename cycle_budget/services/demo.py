"""
Guest Demo Data

A new guest gets a ready-made period that started 15 days ago and runs to
the end of the current month, with a salary and a handful of expenses, so
the dashboard, calendar and advisor have something to show right away.
"""

from calendar import monthrange
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from cycle_budget.models.finance import (
    BudgetPeriod,
    Category,
    FinancialGoal,
    Transaction,
    TransactionType,
    UserSettings,
)
from cycle_budget.services.storage.interface import StorageBundle


DEMO_PERIOD_NAME = "Demo Period"
DEMO_MONTHLY_INCOME = Decimal("45000")
DEMO_FIXED_EXPENSES = Decimal("12850")
DEMO_PERIOD_START_DAYS_AGO = 15

# (amount, category, description, days ago)
DEMO_INCOME = (Decimal("45000"), Category.SALARY, "Monthly salary", 14)
DEMO_EXPENSES = [
    (Decimal("12000"), Category.HOUSING, "Rent", 14),
    (Decimal("850"), Category.BILLS, "Electricity", 12),
    (Decimal("1250"), Category.GROCERIES, "Weekly shopping", 10),
    (Decimal("350"), Category.TRANSPORT, "Fuel", 8),
    (Decimal("1400"), Category.ENTERTAINMENT, "Cinema & dinner", 5),
    (Decimal("450"), Category.CLOTHING, "T-shirt", 2),
    (Decimal("220"), Category.GROCERIES, "Top-up shopping", 1),
]


def _month_end(day: date) -> date:
    return day.replace(day=monthrange(day.year, day.month)[1])


def build_demo_data(
    guest_id: str,
    today: Optional[date] = None,
) -> tuple[BudgetPeriod, list[Transaction], UserSettings]:
    """Build (but don't store) the demo period, transactions and settings."""
    today = today or date.today()

    def days_ago(n: int) -> date:
        return today - timedelta(days=n)

    period = BudgetPeriod(
        user_id=guest_id,
        name=DEMO_PERIOD_NAME,
        start_date=days_ago(DEMO_PERIOD_START_DAYS_AGO),
        end_date=_month_end(today),
        monthly_income=DEMO_MONTHLY_INCOME,
        fixed_expenses=DEMO_FIXED_EXPENSES,
    )

    amount, category, description, ago = DEMO_INCOME
    transactions = [
        Transaction(
            user_id=guest_id,
            type=TransactionType.INCOME,
            amount=amount,
            category=category.value,
            description=description,
            date=days_ago(ago),
        )
    ]
    transactions.extend(
        Transaction(
            user_id=guest_id,
            type=TransactionType.EXPENSE,
            amount=amount,
            category=category.value,
            description=description,
            date=days_ago(ago),
        )
        for amount, category, description, ago in DEMO_EXPENSES
    )

    settings = UserSettings(
        user_id=guest_id,
        active_period_id=period.id,
        financial_goal=FinancialGoal.SAVINGS,
    )

    return period, transactions, settings


async def seed_guest_data(
    guest_id: str,
    stores: StorageBundle,
    today: Optional[date] = None,
) -> BudgetPeriod:
    """
    Store the demo data for a guest and make the demo period active.

    Returns:
        The demo BudgetPeriod
    """
    period, transactions, settings = build_demo_data(guest_id, today)

    await stores.periods.save_period(period)
    for tx in transactions:
        await stores.transactions.add_transaction(tx)
    await stores.settings.save_settings(settings)

    return period
