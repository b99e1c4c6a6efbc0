"""
Financial Advisor Agent

DESIGN DECISION: The advisor never sees raw storage. It is handed a
compact context built from calculator output:
1. A FinancialSnapshot (totals, top categories, recent transactions)
2. The active period's CycleStats, when there is one
3. The user's advisor preferences (goal, savings style, risk tolerance)

BOUNDARIES:
- CAN: Comment on the numbers it is given and suggest savings ideas
- CAN: Chat about anything when asked a non-financial question
- CANNOT: Invent figures that are not in the context
- NEVER raises to the caller: Gemini failures become a friendly fallback
"""

from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from cycle_budget.config import get_settings
from cycle_budget.models.finance import (
    CycleStats,
    FinancialGoal,
    FinancialSnapshot,
    RiskTolerance,
    SavingsStyle,
    UserSettings,
)


logger = structlog.get_logger(__name__)


ADVISOR_NAME = "Nova"

GOAL_PROMPTS = {
    FinancialGoal.DEBT_REDUCTION: (
        "Their priority is paying off debt. Focus on aggressive saving and debt payoff strategies."
    ),
    FinancialGoal.SAVINGS: (
        "Their priority is building cash savings. Focus on cutting unnecessary spending "
        "and putting money aside."
    ),
    FinancialGoal.INVESTMENT: (
        "Their priority is growing their assets. Focus on investment opportunities "
        "and making their money work."
    ),
    FinancialGoal.STABILITY: (
        "Their priority is getting through the month comfortably. Focus on a "
        "sustainable, stress-free budget."
    ),
}

STYLE_PROMPTS = {
    SavingsStyle.STRICT: (
        "Be very clear and strict. Show zero tolerance for luxury spending."
    ),
    SavingsStyle.BALANCED: (
        "Give realistic advice. Suggest savings without hurting quality of life too much."
    ),
    SavingsStyle.RELAXED: (
        "Don't pressure the user. Use gentle nudges and small, easy changes."
    ),
}

RISK_PROMPTS = {
    RiskTolerance.LOW: "Avoid risk. Talk in terms of safe havens like deposits and gold.",
    RiskTolerance.MEDIUM: "Take a balanced portfolio approach.",
    RiskTolerance.HIGH: "Use growth-oriented language that embraces opportunities.",
}

NO_DATA_MESSAGE = (
    "I couldn't find any data to analyze yet. Add a few transactions and come back!"
)
ANALYSIS_FALLBACK_MESSAGE = (
    "I can't analyze your finances right now. Please check your internet connection."
)
ANSWER_FALLBACK_MESSAGE = "There was a small connection problem, could you try again?"


class AdvisorResponse(BaseModel):
    """Advice text plus how it was produced."""

    response: str = Field(
        description="Markdown text shown to the user"
    )
    data_used: bool = Field(
        description="Whether the user's financial data was part of the prompt"
    )
    is_fallback: bool = Field(
        default=False,
        description="True when the model could not be reached and a canned message was used"
    )


def _money(amount, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def build_context(
    snapshot: FinancialSnapshot,
    stats: Optional[CycleStats] = None,
    currency: str = "TRY",
) -> str:
    """
    Render calculator output as the plain-text context given to the model.

    Only figures that appear here may be quoted back to the user.
    """
    if snapshot.is_empty and (stats is None or stats.cycle_start_date is None):
        return "No transaction data yet."

    lines = [
        "FINANCIAL SUMMARY:",
        f"- Total income: {_money(snapshot.total_income, currency)}",
        f"- Total expense: {_money(snapshot.total_expense, currency)}",
        f"- Net balance: {_money(snapshot.balance, currency)}",
    ]

    if snapshot.top_categories:
        lines.append("- Top spending categories:")
        lines.extend(
            f"  - {item.category}: {_money(item.amount, currency)}"
            for item in snapshot.top_categories
        )

    if snapshot.recent_transactions:
        lines.append("- Recent transactions:")
        lines.extend(
            f"  - {tx.date.isoformat()}: {tx.category} ({_money(tx.amount, currency)})"
            + (f" - {tx.description}" if tx.description else "")
            for tx in snapshot.recent_transactions
        )

    if stats is not None and stats.cycle_start_date is not None:
        lines.extend([
            "",
            "CURRENT BUDGET PERIOD:",
            f"- Dates: {stats.cycle_start_date.isoformat()} to {stats.cycle_end_date.isoformat()}",
            f"- Period income (incl. fixed income): {_money(stats.total_income, currency)}",
            f"- Period expense (incl. fixed expenses): {_money(stats.total_expense, currency)}",
            f"- Remaining balance: {_money(stats.balance, currency)}",
            f"- Days remaining: {stats.days_remaining}",
            f"- Daily spending limit today: {_money(stats.daily_limit, currency)}",
        ])

    return "\n".join(lines)


def build_profile(settings: Optional[UserSettings]) -> str:
    """The user's advisor preferences as prompt instructions."""
    settings = settings or UserSettings(user_id="anonymous")
    return "\n".join([
        f"- Goal: {GOAL_PROMPTS[settings.financial_goal]}",
        f"- Tone: {STYLE_PROMPTS[settings.savings_style]}",
        f"- Risk: {RISK_PROMPTS[settings.risk_tolerance]}",
    ])


class FinancialAdvisorAgent:
    """
    Gemini-backed financial advisor.

    RESPONSIBILITIES:
    - Write a short report on the user's current situation
    - Answer free-form questions using the same context

    A model object can be injected (anything with an async
    ``generate_content_async(prompt)`` returning an object with ``.text``);
    otherwise one is configured from GeminiSettings.
    """

    def __init__(self, model=None):
        if model is None:
            self._configure_genai()
        else:
            self._model = model

    def _configure_genai(self):
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
            }
        )

    async def _generate(self, prompt: str, kind: str) -> Optional[str]:
        """Call the model; None on any failure or an empty answer."""
        try:
            response = await self._model.generate_content_async(prompt)
            text = (response.text or "").strip()
            return text or None
        except Exception as e:
            logger.error("advisor_generation_failed", kind=kind, error=str(e))
            return None

    async def analyze(
        self,
        snapshot: FinancialSnapshot,
        stats: Optional[CycleStats] = None,
        settings: Optional[UserSettings] = None,
    ) -> AdvisorResponse:
        """
        Produce a short markdown report on the user's finances.

        With no transactions at all, a friendly "no data" message is
        returned without calling the model.
        """
        if snapshot.is_empty:
            return AdvisorResponse(response=NO_DATA_MESSAGE, data_used=False)

        currency = settings.currency if settings else "TRY"
        prompt = f"""You are "{ADVISOR_NAME}", a friendly, warm and expert personal finance assistant.
Analyze the financial summary below and report back, addressing the user directly.

USER PROFILE:
{build_profile(settings)}

USER DATA:
{build_context(snapshot, stats, currency)}

Answer in Markdown using exactly these headings:

### 📊 General Status
(Summarize the user's situation in 1-2 sentences. Congratulate if it is good, encourage if not.)

### 💸 Spending Habits
(Comment on where the most money goes. Gently point out anything that looks excessive.)

### 💡 Savings Tips
(Give 2-3 concrete, actionable tips specific to this spending profile.)

### 🎯 {ADVISOR_NAME}'s Note
(A short, motivating closing sentence.)

IMPORTANT: Use ONLY the figures above. Do NOT invent amounts."""

        text = await self._generate(prompt, kind="analysis")
        if text is None:
            return AdvisorResponse(
                response=ANALYSIS_FALLBACK_MESSAGE,
                data_used=False,
                is_fallback=True,
            )
        return AdvisorResponse(response=text, data_used=True)

    async def ask(
        self,
        question: str,
        snapshot: FinancialSnapshot,
        stats: Optional[CycleStats] = None,
        settings: Optional[UserSettings] = None,
    ) -> AdvisorResponse:
        """Answer a free-form question with the user's data as context."""
        currency = settings.currency if settings else "TRY"
        prompt = f"""You are {ADVISOR_NAME}, the user's friendly personal finance assistant.

USER PROFILE:
{build_profile(settings)}

CONTEXT (the user's current situation):
{build_context(snapshot, stats, currency)}

USER'S QUESTION:
"{question.strip()}"

TASK:
1. If the question is about their finances, answer clearly using the context above.
2. If it is small talk or off topic, chat like a helpful friend. Never refuse.

Use ONLY the figures in the context. Answer in Markdown."""

        text = await self._generate(prompt, kind="question")
        if text is None:
            return AdvisorResponse(
                response=ANSWER_FALLBACK_MESSAGE,
                data_used=False,
                is_fallback=True,
            )
        return AdvisorResponse(response=text, data_used=not snapshot.is_empty)
