"""
Tests for the financial advisor agent.

Gemini is replaced by a stub model object; no network calls are made.
"""

import asyncio
import pytest
from datetime import date
from decimal import Decimal

from cycle_budget.agents import FinancialAdvisorAgent, build_context, build_profile
from cycle_budget.calculator import compute_cycle_stats, summarize_transactions
from cycle_budget.models.finance import (
    BudgetPeriod,
    FinancialGoal,
    FinancialSnapshot,
    SavingsStyle,
    Transaction,
    TransactionType,
    UserSettings,
)


class StubResponse:
    def __init__(self, text):
        self.text = text


class StubModel:
    """Records prompts and answers with a fixed text."""

    def __init__(self, text="### 📊 General Status\nLooking good."):
        self.text = text
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        return StubResponse(self.text)


class BrokenModel:
    async def generate_content_async(self, prompt):
        raise ConnectionError("network down")


def sample_transactions():
    return [
        Transaction(
            user_id="user_1",
            type=TransactionType.INCOME,
            amount=Decimal("45000"),
            category="salary",
            date=date(2025, 1, 2),
        ),
        Transaction(
            user_id="user_1",
            type=TransactionType.EXPENSE,
            amount=Decimal("1250"),
            category="groceries",
            date=date(2025, 1, 10),
            description="Weekly shopping",
        ),
    ]


def sample_period():
    return BudgetPeriod(
        user_id="user_1",
        name="January",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 31),
        monthly_income=Decimal("45000"),
        fixed_expenses=Decimal("12850"),
    )


class TestContext:
    """Tests for the prompt context."""

    def test_context_lists_calculator_figures(self):
        txs = sample_transactions()
        snapshot = summarize_transactions(txs)
        stats = compute_cycle_stats(sample_period(), txs, as_of=date(2025, 1, 15))

        context = build_context(snapshot, stats, currency="TRY")

        assert "Total income: 45,000.00 TRY" in context
        assert "groceries: 1,250.00 TRY" in context
        assert "2025-01-10: groceries (1,250.00 TRY) - Weekly shopping" in context
        assert "Days remaining: 17" in context
        # the in-cycle salary adds to the period income: (90000 - 12850 - 1250) / 17
        assert "Daily spending limit today: 4,464.71 TRY" in context

    def test_context_without_data(self):
        assert build_context(FinancialSnapshot()) == "No transaction data yet."

    def test_profile_follows_preferences(self):
        profile = build_profile(UserSettings(
            user_id="user_1",
            financial_goal=FinancialGoal.DEBT_REDUCTION,
            savings_style=SavingsStyle.STRICT,
        ))
        assert "paying off debt" in profile
        assert "zero tolerance" in profile


class TestFinancialAdvisorAgent:
    """Tests for FinancialAdvisorAgent."""

    def test_analyze_without_data_skips_model(self):
        model = StubModel()
        agent = FinancialAdvisorAgent(model=model)

        response = asyncio.run(agent.analyze(FinancialSnapshot()))

        assert model.prompts == []
        assert response.data_used is False
        assert "Add a few transactions" in response.response

    def test_analyze_uses_model_output(self):
        model = StubModel()
        agent = FinancialAdvisorAgent(model=model)
        snapshot = summarize_transactions(sample_transactions())

        response = asyncio.run(agent.analyze(snapshot, settings=UserSettings(user_id="user_1")))

        assert response.response == "### 📊 General Status\nLooking good."
        assert response.data_used is True
        assert response.is_fallback is False
        assert "Total expense: 1,250.00 TRY" in model.prompts[0]
        assert "### 💡 Savings Tips" in model.prompts[0]

    def test_analyze_falls_back_on_error(self):
        agent = FinancialAdvisorAgent(model=BrokenModel())
        snapshot = summarize_transactions(sample_transactions())

        response = asyncio.run(agent.analyze(snapshot))

        assert response.is_fallback is True
        assert "can't analyze" in response.response

    def test_empty_model_text_falls_back(self):
        agent = FinancialAdvisorAgent(model=StubModel(text="   "))
        snapshot = summarize_transactions(sample_transactions())
        assert asyncio.run(agent.analyze(snapshot)).is_fallback is True

    def test_ask_includes_question(self):
        model = StubModel(text="You spent 1,250 on groceries.")
        agent = FinancialAdvisorAgent(model=model)
        snapshot = summarize_transactions(sample_transactions())

        response = asyncio.run(agent.ask("  How much on groceries?  ", snapshot))

        assert response.response == "You spent 1,250 on groceries."
        assert '"How much on groceries?"' in model.prompts[0]

    def test_ask_falls_back_on_error(self):
        agent = FinancialAdvisorAgent(model=BrokenModel())
        response = asyncio.run(agent.ask("Hello?", FinancialSnapshot()))
        assert response.is_fallback is True
        assert response.data_used is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
