"""
Cycle Budget - Source Package

A personal finance tracker built around budget periods ("cycles"):
the user logs income and expenses, defines periods with a fixed income
and fixed expenses, and gets a daily spending limit that is recomputed
every day from what has already been spent.

DESIGN PRINCIPLES:
1. One calculator, many call sites (dashboard, calendar, history, advisor)
2. Derived numbers are never stored, always recomputed
3. Fail fast on malformed input, degrade gracefully on numeric edge cases
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Cycle Budget Team"
