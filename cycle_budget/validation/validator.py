"""
Semantic Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Types, required fields, non-negative amounts, end >= start
- Done by the pydantic models themselves; a record that fails never exists

STAGE 2 - SEMANTIC VALIDATION (this module):
- Business logic checks
- Future date detection
- Absurd amount detection
- Category / type mismatches
- Overlapping budget periods

IMPORTANT: Validation NEVER silently fixes issues and almost never blocks.
It reports them so the user can double check what they typed.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from cycle_budget.config import AppSettings, get_settings
from cycle_budget.models.finance import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    BudgetPeriod,
    Transaction,
    ValidationIssue,
    ValidationResult,
)


_INCOME_LABELS = frozenset(c.value for c in INCOME_CATEGORIES)
_EXPENSE_LABELS = frozenset(c.value for c in EXPENSE_CATEGORIES)


def _build_result(entity_id, issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        entity_id=entity_id,
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
        warnings=[issue.message for issue in issues if issue.severity == "warning"],
    )


class TransactionValidator:
    """Semantic checks for a single transaction."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate(
        self,
        transaction: Transaction,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Check a transaction for suspicious values.

        Checks:
        - Zero amount (error)
        - Date too far in the future (warning)
        - Amount above the sanity maximum (warning)
        - Built-in category of the other type (info)
        """
        issues = []
        today = today or date.today()

        if transaction.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount that was actually paid or received",
            ))

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({transaction.date}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if transaction.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        wrong_side = _EXPENSE_LABELS if transaction.is_income else _INCOME_LABELS
        if transaction.category in wrong_side:
            issues.append(ValidationIssue(
                field="category",
                issue_type="category_mismatch",
                message=(
                    f"Category '{transaction.category}' is usually used for "
                    f"{'expenses' if transaction.is_income else 'income'}"
                ),
                severity="info",
            ))

        return _build_result(transaction.id, issues)


class PeriodValidator:
    """Semantic checks for a budget period against the user's other periods."""

    def validate(
        self,
        period: BudgetPeriod,
        existing_periods: Iterable[BudgetPeriod] = (),
    ) -> ValidationResult:
        """
        Check a period for overlaps and implausible figures.

        Args:
            period: The period being saved
            existing_periods: The user's stored periods. The period itself
                (same id) is ignored, so edits don't overlap with themselves.
        """
        issues = []

        for other in existing_periods:
            if other.id == period.id or other.user_id != period.user_id:
                continue
            if period.overlaps(other):
                issues.append(ValidationIssue(
                    field="dates",
                    issue_type="overlap",
                    message=(
                        f"Overlaps with '{other.name}' "
                        f"({other.start_date} to {other.end_date})"
                    ),
                    severity="warning",
                    suggested_fix="Adjust the dates so each day belongs to one period",
                ))

        if period.fixed_expenses > period.monthly_income:
            issues.append(ValidationIssue(
                field="fixed_expenses",
                issue_type="suspicious_value",
                message=(
                    f"Fixed expenses ({period.fixed_expenses:,.2f}) exceed "
                    f"income ({period.monthly_income:,.2f})"
                ),
                severity="warning",
                suggested_fix="The daily limit will start out negative",
            ))

        if period.monthly_income == 0:
            issues.append(ValidationIssue(
                field="monthly_income",
                issue_type="missing",
                message="No fixed income set for this period",
                severity="info",
                suggested_fix="Income transactions will still count towards the budget",
            ))

        return _build_result(period.id, issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Generate a user-friendly summary of validation results.

    This is what we show to non-technical users.
    """
    if result.is_valid and not result.warnings:
        return "✅ All checks passed!"

    lines = []

    if not result.is_valid:
        lines.append("❌ This can't be saved yet:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("⚠️ Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    return "\n".join(lines)
