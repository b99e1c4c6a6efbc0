"""
Core Data Models for Cycle Budget

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

Stored records: Transaction, BudgetPeriod, UserSettings.
Derived records (never stored, always recomputed): CycleStats, DailyStatus,
CycleSummary, FinancialSnapshot.

NOTE: Several models have a field called ``date``. The datetime module is
imported as ``dt`` so the field name does not shadow the type.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def _strip_time(value):
    """Reduce datetimes to their calendar day; everything else is left to pydantic."""
    if isinstance(value, dt.datetime):
        return value.date()
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    """
    Built-in transaction categories.

    Transactions store the category as a plain label, so users may also
    type their own; these are the ones offered by default.
    """
    # Income
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENT = "investment"
    SIDE_INCOME = "side_income"
    OTHER_INCOME = "other_income"

    # Expense
    GROCERIES = "groceries"
    TRANSPORT = "transport"
    HOUSING = "housing"
    BILLS = "bills"
    ENTERTAINMENT = "entertainment"
    HEALTH = "health"
    EDUCATION = "education"
    CLOTHING = "clothing"
    TECHNOLOGY = "technology"
    CREDIT_CARD = "credit_card"
    OTHER_EXPENSE = "other_expense"


INCOME_CATEGORIES = frozenset({
    Category.SALARY,
    Category.FREELANCE,
    Category.INVESTMENT,
    Category.SIDE_INCOME,
    Category.OTHER_INCOME,
})

EXPENSE_CATEGORIES = frozenset(set(Category) - INCOME_CATEGORIES)


class DayStatus(str, Enum):
    """
    Classification of a single day against its daily limit.

    NEUTRAL is used for days outside the period and for future days;
    only days that can actually be judged get the other three.
    """
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"
    NEUTRAL = "neutral"


class FinancialGoal(str, Enum):
    """What the user wants the advisor to prioritise."""
    DEBT_REDUCTION = "debt_reduction"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    STABILITY = "stability"


class SavingsStyle(str, Enum):
    """How strict the advisor's tone should be."""
    STRICT = "strict"
    BALANCED = "balanced"
    RELAXED = "relaxed"


class RiskTolerance(str, Enum):
    """Risk appetite used when the advisor talks about investing."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# STORED MODELS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry.

    CRITICAL: Transactions are never mutated in place.
    They are created and deleted by user action only, so the model is frozen.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the transaction"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Non-negative amount in the user's currency"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label"
    )
    date: dt.date = Field(
        ...,
        description="Calendar day the transaction belongs to"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Free text description"
    )
    created_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow,
        description="When the transaction was recorded"
    )

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        """Time of day is irrelevant; only the calendar day is kept."""
        return _strip_time(v)

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class BudgetPeriod(BaseModel):
    """
    A budget cycle: a date range with a fixed income and fixed expenses.

    Both dates are INCLUSIVE. Fixed expenses (rent, bills, loan payments)
    are treated as pre-committed and are not part of the daily allowance.

    Periods of the same user are expected not to overlap. This is not
    enforced here; PeriodValidator reports overlaps as warnings.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique period ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the period"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name (e.g. 'November budget')"
    )
    start_date: dt.date = Field(
        ...,
        description="First day of the period (inclusive)"
    )
    end_date: dt.date = Field(
        ...,
        description="Last day of the period (inclusive)"
    )
    monthly_income: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Fixed recurring income for the period"
    )
    fixed_expenses: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Fixed recurring costs for the period"
    )

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def normalize_dates(cls, v):
        return _strip_time(v)

    @model_validator(mode='after')
    def validate_dates(self) -> 'BudgetPeriod':
        """Validate date relationships."""
        if self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self

    @property
    def length_days(self) -> int:
        """Number of days in the period, both ends included."""
        return (self.end_date - self.start_date).days + 1

    def contains(self, day: dt.date) -> bool:
        """Check whether a calendar day falls inside the period."""
        return self.start_date <= day <= self.end_date

    def overlaps(self, other: 'BudgetPeriod') -> bool:
        """Check whether two periods share at least one day."""
        return self.start_date <= other.end_date and other.start_date <= self.end_date


class UserSettings(BaseModel):
    """
    Per-user settings.

    DESIGN DECISION: The active period is an explicit foreign key
    (active_period_id) instead of a copy of the period's name and dates.
    Editing a period therefore never "loses" the active selection.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of these settings"
    )
    active_period_id: Optional[UUID] = Field(
        default=None,
        description="ID of the currently active BudgetPeriod"
    )
    currency: str = Field(
        default="TRY",
        min_length=3,
        max_length=3,
        description="ISO currency code"
    )

    # Advisor profile
    financial_goal: FinancialGoal = FinancialGoal.STABILITY
    savings_style: SavingsStyle = SavingsStyle.BALANCED
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM

    updated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )


# =============================================================================
# DERIVED MODELS
# =============================================================================

class CycleStats(BaseModel):
    """
    Dashboard statistics for one period as of one day.

    Invariant: balance == total_income - total_expense, exactly.
    """

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    daily_limit: Decimal = Decimal("0")
    days_remaining: int = Field(default=0, ge=0)
    cycle_start_date: Optional[dt.date] = None
    cycle_end_date: Optional[dt.date] = None

    # Intermediate values, kept for display and debugging
    disposable_income: Decimal = Decimal("0")
    spent_before_as_of: Decimal = Decimal("0")
    budget_at_start_of_day: Decimal = Decimal("0")

    @classmethod
    def empty(cls) -> 'CycleStats':
        """Stats shown when the user has no active period yet."""
        return cls()


class DailyStatus(BaseModel):
    """The allowance for one calendar day and how the user did against it."""

    date: dt.date
    limit: Decimal = Field(
        default=Decimal("0"),
        description="Maximum that should be spent on this day"
    )
    spent: Decimal = Field(
        default=Decimal("0"),
        description="Expenses actually recorded on this day"
    )
    status: DayStatus = DayStatus.NEUTRAL
    remaining_in_cycle: Decimal = Field(
        default=Decimal("0"),
        description="Budget left in the period after this day's spending"
    )

    @property
    def variance(self) -> Decimal:
        """Positive when the user stayed under the limit, negative on overspend."""
        return self.limit - self.spent


class CycleSummary(BaseModel):
    """Totals for one period, used by the history view."""

    period_id: UUID
    name: str
    start_date: dt.date
    end_date: dt.date
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal
    savings_rate: Decimal = Field(
        ...,
        description="Balance as a percentage of total income (0 when there is no income)"
    )


class CategoryTotal(BaseModel):
    """Amount spent in one category."""

    category: str
    amount: Decimal


class FinancialSnapshot(BaseModel):
    """
    A compact summary of a set of transactions.

    This is what the advisor sees instead of the raw transaction list.
    """

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    transaction_count: int = 0
    top_categories: list[CategoryTotal] = Field(default_factory=list)
    recent_transactions: list[Transaction] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.transaction_count == 0


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'overlap', 'future_date', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of semantic validation of a transaction or period.

    Schema problems are rejected by the models themselves; this only
    carries the business-level findings, most of which are warnings.
    """

    entity_id: UUID = Field(
        ...,
        description="ID of the transaction or period being validated"
    )
    validated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )
    is_valid: bool = Field(
        ...,
        description="False if any error-level issue was found"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
