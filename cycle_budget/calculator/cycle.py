"""
Budget Cycle Calculator

The single place where budget numbers are derived. The dashboard, the
calendar view, the history view and the advisor context all call into
this module, so they can never disagree with each other.

THE MODEL:
- A period has a fixed income and fixed expenses.
- Transactions dated inside the period add to income or expense.
- Fixed expenses are pre-committed; the daily limit is drawn from
  disposable income = total income - fixed expenses.
- The daily limit for a day is what is left at the start of that day,
  spread evenly over the days left in the period (that day included).

RULES:
- All comparisons are by calendar day. Time of day is stripped first.
- Both period ends are inclusive.
- The daily limit denominator is never less than 1.
- A period without income has a savings rate of 0.

Everything here is pure: same inputs, same outputs, no I/O.
"""

from bisect import bisect_left
from calendar import monthrange
from collections import defaultdict
from datetime import MAXYEAR, MINYEAR, date, datetime, timedelta
from decimal import Decimal
from itertools import accumulate
from typing import Iterable, Optional, Union

from cycle_budget.models.finance import (
    BudgetPeriod,
    CategoryTotal,
    CycleStats,
    CycleSummary,
    DailyStatus,
    DayStatus,
    FinancialSnapshot,
    Transaction,
)


DANGER_MULTIPLIER = Decimal("1.2")

ZERO = Decimal("0")

DateLike = Union[date, datetime, str]


class InvalidDateError(ValueError):
    """A date argument could not be interpreted as a calendar day."""
    pass


def to_day(value: DateLike) -> date:
    """
    Normalize a date-like value to a calendar day.

    Accepts date, datetime (time is dropped) and ISO 8601 strings.
    Anything else is a caller error and raises InvalidDateError.
    """
    # datetime is a subclass of date, so it has to be checked first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            raise InvalidDateError(
                f"Invalid date {value!r}: expected ISO format YYYY-MM-DD"
            )
    raise InvalidDateError(
        f"Expected a date, datetime or ISO string, got {type(value).__name__}: {value!r}"
    )


def _today(value: Optional[DateLike]) -> date:
    return date.today() if value is None else to_day(value)


def _multiplier(value) -> Decimal:
    # floats go through str so 1.2 stays 1.2
    return Decimal(str(value))


def _total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def days_remaining(period: BudgetPeriod, as_of: DateLike) -> int:
    """
    Days left in the period, counting as_of itself.

    Before the period starts this is the full period length;
    after it ends it is 0.
    """
    day = to_day(as_of)
    if day < period.start_date:
        return period.length_days
    if day > period.end_date:
        return 0
    return (period.end_date - day).days + 1


class _CycleLedger:
    """
    The in-cycle transactions of one period, aggregated once.

    Lets the calendar evaluate every day of a month without
    re-scanning the transaction list for each day.
    """

    def __init__(self, period: BudgetPeriod, transactions: Iterable[Transaction]):
        self.period = period
        self.income = ZERO
        self.expense = ZERO
        self.expense_by_day: dict[date, Decimal] = defaultdict(Decimal)

        for tx in transactions:
            day = to_day(tx.date)
            if not period.contains(day):
                continue
            if tx.is_income:
                self.income += tx.amount
            elif tx.is_expense:
                self.expense += tx.amount
                self.expense_by_day[day] += tx.amount

        self._days = sorted(self.expense_by_day)
        self._cumulative = list(accumulate(self.expense_by_day[d] for d in self._days))

    @property
    def total_income(self) -> Decimal:
        return self.income + self.period.monthly_income

    @property
    def total_expense(self) -> Decimal:
        return self.expense + self.period.fixed_expenses

    def spent_before(self, day: date) -> Decimal:
        """In-cycle expenses dated strictly before day."""
        idx = bisect_left(self._days, day)
        return self._cumulative[idx - 1] if idx else ZERO

    def spent_on(self, day: date) -> Decimal:
        return self.expense_by_day.get(day, ZERO)

    def stats(self, as_of: date) -> CycleStats:
        total_income = self.total_income
        total_expense = self.total_expense
        remaining = days_remaining(self.period, as_of)

        disposable_income = total_income - self.period.fixed_expenses
        spent_before = self.spent_before(as_of)
        budget_at_start_of_day = disposable_income - spent_before

        return CycleStats(
            total_income=total_income,
            total_expense=total_expense,
            balance=total_income - total_expense,
            daily_limit=budget_at_start_of_day / Decimal(max(remaining, 1)),
            days_remaining=remaining,
            cycle_start_date=self.period.start_date,
            cycle_end_date=self.period.end_date,
            disposable_income=disposable_income,
            spent_before_as_of=spent_before,
            budget_at_start_of_day=budget_at_start_of_day,
        )


def compute_cycle_stats(
    period: BudgetPeriod,
    transactions: Iterable[Transaction],
    as_of: Optional[DateLike] = None,
) -> CycleStats:
    """
    Compute dashboard statistics for a period.

    Args:
        period: The budget period (dates inclusive)
        transactions: All of the user's transactions, in any order
        as_of: The day to compute the daily limit for. Defaults to today.

    Returns:
        CycleStats with totals, balance, days remaining and daily limit
    """
    return _CycleLedger(period, transactions).stats(_today(as_of))


def _classify(
    spent: Decimal,
    limit: Decimal,
    danger_multiplier: Decimal,
) -> DayStatus:
    if spent > limit * danger_multiplier:
        return DayStatus.DANGER
    # Already overspent: any spending deepens the deficit
    if limit < 0:
        return DayStatus.DANGER
    if spent > limit:
        return DayStatus.WARNING
    return DayStatus.SUCCESS


def _day_status(
    ledger: _CycleLedger,
    day: date,
    spent: Decimal,
    today: date,
    danger_multiplier: Decimal,
) -> DailyStatus:
    if not ledger.period.contains(day):
        return DailyStatus(date=day, spent=spent, status=DayStatus.NEUTRAL)

    stats = ledger.stats(day)
    if day > today:
        status = DayStatus.NEUTRAL
    else:
        status = _classify(spent, stats.daily_limit, danger_multiplier)

    return DailyStatus(
        date=day,
        limit=stats.daily_limit,
        spent=spent,
        status=status,
        remaining_in_cycle=stats.budget_at_start_of_day - spent,
    )


def _expenses_by_day(transactions: Iterable[Transaction]) -> dict[date, Decimal]:
    totals: dict[date, Decimal] = defaultdict(Decimal)
    for tx in transactions:
        if tx.is_expense:
            totals[to_day(tx.date)] += tx.amount
    return totals


def compute_daily_status(
    day: DateLike,
    period: BudgetPeriod,
    transactions: Iterable[Transaction],
    today: Optional[DateLike] = None,
    danger_multiplier: Union[Decimal, float] = DANGER_MULTIPLIER,
) -> DailyStatus:
    """
    Judge one calendar day against its daily limit.

    Days outside the period are NEUTRAL and only carry the raw spend.
    Days after `today` are NEUTRAL because nothing has been spent yet.
    """
    day = to_day(day)
    transactions = list(transactions)
    spent = _expenses_by_day(transactions).get(day, ZERO)
    ledger = _CycleLedger(period, transactions)
    return _day_status(ledger, day, spent, _today(today), _multiplier(danger_multiplier))


def compute_calendar_month(
    year: int,
    month: int,
    period: BudgetPeriod,
    transactions: Iterable[Transaction],
    today: Optional[DateLike] = None,
    danger_multiplier: Union[Decimal, float] = DANGER_MULTIPLIER,
) -> list[DailyStatus]:
    """
    DailyStatus for every day of a calendar month, first day first.

    Equivalent to calling compute_daily_status for each day, but the
    transactions are aggregated only once.
    """
    if not 1 <= month <= 12:
        raise InvalidDateError(f"Invalid month {month}: expected 1-12")
    if not MINYEAR <= year <= MAXYEAR:
        raise InvalidDateError(f"Invalid year {year}: expected {MINYEAR}-{MAXYEAR}")

    transactions = list(transactions)
    ledger = _CycleLedger(period, transactions)
    spent_by_day = _expenses_by_day(transactions)
    today_day = _today(today)
    multiplier = _multiplier(danger_multiplier)

    first = date(year, month, 1)
    days_in_month = monthrange(year, month)[1]

    return [
        _day_status(
            ledger,
            day,
            spent_by_day.get(day, ZERO),
            today_day,
            multiplier,
        )
        for day in (first + timedelta(days=offset) for offset in range(days_in_month))
    ]


def compute_history_summaries(
    periods: Iterable[BudgetPeriod],
    transactions: Iterable[Transaction],
) -> list[CycleSummary]:
    """
    Totals and savings rate for each period, newest period first.
    """
    transactions = list(transactions)
    summaries = []

    for period in sorted(periods, key=lambda p: p.start_date, reverse=True):
        ledger = _CycleLedger(period, transactions)
        total_income = ledger.total_income
        total_expense = ledger.total_expense
        balance = total_income - total_expense
        savings_rate = balance / total_income * 100 if total_income > 0 else ZERO

        summaries.append(CycleSummary(
            period_id=period.id,
            name=period.name,
            start_date=period.start_date,
            end_date=period.end_date,
            total_income=total_income,
            total_expense=total_expense,
            balance=balance,
            savings_rate=savings_rate,
        ))

    return summaries


def _newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(
        transactions,
        key=lambda t: (to_day(t.date), t.created_at),
        reverse=True,
    )


def filter_cycle_transactions(
    period: BudgetPeriod,
    transactions: Iterable[Transaction],
) -> list[Transaction]:
    """Transactions dated inside the period, newest first."""
    return _newest_first(t for t in transactions if period.contains(to_day(t.date)))


def summarize_transactions(
    transactions: Iterable[Transaction],
    top_n: int = 5,
    recent_n: int = 5,
) -> FinancialSnapshot:
    """
    Condense a transaction list into a FinancialSnapshot.

    Only the transactions themselves are counted; fixed period income and
    expenses are not part of the snapshot (see compute_cycle_stats for those).
    """
    transactions = list(transactions)
    if not transactions:
        return FinancialSnapshot()

    total_income = _total(t.amount for t in transactions if t.is_income)
    total_expense = _total(t.amount for t in transactions if t.is_expense)

    by_category: dict[str, Decimal] = defaultdict(Decimal)
    for tx in transactions:
        if tx.is_expense:
            by_category[tx.category] += tx.amount

    top = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))[:top_n]

    return FinancialSnapshot(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
        transaction_count=len(transactions),
        top_categories=[CategoryTotal(category=name, amount=amount) for name, amount in top],
        recent_transactions=_newest_first(transactions)[:recent_n],
    )
