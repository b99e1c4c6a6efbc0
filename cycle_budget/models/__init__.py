"""
Data Models Package

This package contains all Pydantic models used in the Cycle Budget system.
All data flowing through the system must conform to these schemas.
"""

from cycle_budget.models.finance import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    BudgetPeriod,
    Category,
    CategoryTotal,
    CycleStats,
    CycleSummary,
    DailyStatus,
    DayStatus,
    FinancialGoal,
    FinancialSnapshot,
    RiskTolerance,
    SavingsStyle,
    Transaction,
    TransactionType,
    UserSettings,
    ValidationIssue,
    ValidationResult,
)
from cycle_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "BudgetPeriod",
    "Category",
    "CategoryTotal",
    "CycleStats",
    "CycleSummary",
    "DailyStatus",
    "DayStatus",
    "FinancialGoal",
    "FinancialSnapshot",
    "RiskTolerance",
    "SavingsStyle",
    "Transaction",
    "TransactionType",
    "UserSettings",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
