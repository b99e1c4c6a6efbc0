"""Semantic validation package."""

from cycle_budget.validation.validator import (
    PeriodValidator,
    TransactionValidator,
    get_user_friendly_summary,
)

__all__ = [
    "PeriodValidator",
    "TransactionValidator",
    "get_user_friendly_summary",
]
