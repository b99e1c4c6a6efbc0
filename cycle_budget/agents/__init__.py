"""AI Agents package."""

from cycle_budget.agents.advisor import (
    AdvisorResponse,
    FinancialAdvisorAgent,
    build_context,
    build_profile,
)

__all__ = [
    "AdvisorResponse",
    "FinancialAdvisorAgent",
    "build_context",
    "build_profile",
]
