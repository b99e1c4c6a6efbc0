"""Budget cycle calculator package."""

from cycle_budget.calculator.cycle import (
    DANGER_MULTIPLIER,
    InvalidDateError,
    compute_calendar_month,
    compute_cycle_stats,
    compute_daily_status,
    compute_history_summaries,
    days_remaining,
    filter_cycle_transactions,
    summarize_transactions,
    to_day,
)

__all__ = [
    "DANGER_MULTIPLIER",
    "InvalidDateError",
    "compute_calendar_month",
    "compute_cycle_stats",
    "compute_daily_status",
    "compute_history_summaries",
    "days_remaining",
    "filter_cycle_transactions",
    "summarize_transactions",
    "to_day",
]
