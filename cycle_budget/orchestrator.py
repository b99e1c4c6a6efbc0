"""
Main Orchestrator for Cycle Budget

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger (add / delete / list transactions)
2. Budget periods (save, activate, delete, advisor preferences, guest demo)
3. Dashboard (stats, calendar, history)
4. Advisor (analysis and free-form questions)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every number shown comes from the calculator, never from a flow
- Guest users never touch persistent storage
- Every change is audited

This is the "glue" between storage, calculator, validation and advisor.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import NamedTuple, Optional
from uuid import UUID, uuid4

import structlog

from cycle_budget.agents import AdvisorResponse, FinancialAdvisorAgent
from cycle_budget.audit import AuditLogger, create_correlation_id
from cycle_budget.calculator import (
    compute_calendar_month,
    compute_cycle_stats,
    compute_history_summaries,
    filter_cycle_transactions,
    summarize_transactions,
)
from cycle_budget.calculator.cycle import DateLike, to_day
from cycle_budget.config import AppSettings, get_settings
from cycle_budget.models.finance import (
    BudgetPeriod,
    CycleStats,
    CycleSummary,
    DailyStatus,
    FinancialGoal,
    RiskTolerance,
    SavingsStyle,
    Transaction,
    TransactionType,
    UserSettings,
    ValidationResult,
)
from cycle_budget.services.demo import seed_guest_data
from cycle_budget.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    StorageBundle,
    create_memory_bundle,
    create_sheets_bundle,
)
from cycle_budget.validation import (
    PeriodValidator,
    TransactionValidator,
    get_user_friendly_summary,
)


logger = structlog.get_logger(__name__)


class PeriodNotFoundError(LookupError):
    """The period doesn't exist or belongs to another user."""
    pass


class NoActivePeriodError(LookupError):
    """The user has not activated a budget period yet."""
    pass


class TransactionRejectedError(ValueError):
    """Semantic validation found an error-level issue; nothing was stored."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(get_user_friendly_summary(result))


class StorageRouter:
    """
    Picks the stores a user's data lives in.

    Guest users (id starting with the guest prefix) always get the
    in-memory stores; everyone else gets the configured backend.
    """

    def __init__(
        self,
        registered: StorageBundle,
        guest: Optional[StorageBundle] = None,
        guest_prefix: str = "guest_",
    ):
        self._registered = registered
        self._guest = guest or create_memory_bundle()
        self._guest_prefix = guest_prefix

    def is_guest(self, user_id: str) -> bool:
        return user_id.startswith(self._guest_prefix)

    def for_user(self, user_id: str) -> StorageBundle:
        return self._guest if self.is_guest(user_id) else self._registered

    def new_guest_id(self) -> str:
        return f"{self._guest_prefix}{uuid4().hex}"


async def _load_settings(
    stores: StorageBundle,
    user_id: str,
    app_settings: AppSettings,
) -> UserSettings:
    """Stored settings, or defaults for a user who never saved any."""
    settings = await stores.settings.get_settings(user_id)
    if settings is None:
        settings = UserSettings(user_id=user_id, currency=app_settings.currency)
    return settings


async def _load_active_period(
    stores: StorageBundle,
    settings: UserSettings,
) -> Optional[BudgetPeriod]:
    """The active period; None if unset or pointing at a deleted period."""
    if settings.active_period_id is None:
        return None
    period = await stores.periods.get_period(settings.active_period_id)
    if period is None or period.user_id != settings.user_id:
        return None
    return period


class LedgerFlow:
    """
    Orchestrates transaction entry.

    Flow:
    1. Build → Transaction model (schema errors raise pydantic ValidationError)
    2. Validate → semantic checks; error-level issues reject the transaction
    3. Save → store
    4. Audit → transaction added (plus warnings, if any)
    """

    def __init__(
        self,
        router: StorageRouter,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._router = router
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def add_transaction(
        self,
        user_id: str,
        type: TransactionType,
        amount: Decimal,
        category: str,
        date: DateLike,
        description: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Record a new income or expense.

        Returns:
            (transaction, validation_result)

        Raises:
            TransactionRejectedError: If validation found an error
        """
        correlation_id = correlation_id or create_correlation_id()

        transaction = Transaction(
            user_id=user_id,
            type=type,
            amount=amount,
            category=category,
            date=to_day(date),
            description=description,
        )

        result = self._validator.validate(transaction)
        if result.has_errors:
            raise TransactionRejectedError(result)

        await self._router.for_user(user_id).transactions.add_transaction(transaction)

        if self._audit_logger:
            await self._audit_logger.log_transaction_added(
                user_id=user_id,
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=transaction.amount,
                category=transaction.category,
                correlation_id=correlation_id,
            )
            if result.warnings:
                await self._audit_logger.log_validation_warning(
                    user_id=user_id,
                    entity_type="transaction",
                    entity_id=transaction.id,
                    warnings=result.warnings,
                    correlation_id=correlation_id,
                )

        return transaction, result

    async def delete_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete one of the user's transactions. False if there was none."""
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._router.for_user(user_id).transactions.delete_transaction(
            user_id, transaction_id
        )

        if deleted and self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                user_id=user_id,
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )

        return deleted

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[DateLike] = None,
        date_to: Optional[DateLike] = None,
    ) -> list[Transaction]:
        """The user's transactions, newest first."""
        return await self._router.for_user(user_id).transactions.list_transactions(
            user_id,
            date_from=to_day(date_from) if date_from is not None else None,
            date_to=to_day(date_to) if date_to is not None else None,
        )


class PeriodFlow:
    """
    Orchestrates budget periods and per-user settings.

    The active period is referenced by id (UserSettings.active_period_id),
    so renaming or re-dating the active period keeps it active.
    """

    def __init__(
        self,
        router: StorageRouter,
        validator: Optional[PeriodValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._router = router
        self._validator = validator or PeriodValidator()
        self._audit_logger = audit_logger
        self._app_settings = app_settings or get_settings().app

    async def get_settings(self, user_id: str) -> UserSettings:
        return await _load_settings(self._router.for_user(user_id), user_id, self._app_settings)

    async def save_period(
        self,
        user_id: str,
        name: str,
        start_date: DateLike,
        end_date: DateLike,
        monthly_income: Decimal = Decimal("0"),
        fixed_expenses: Decimal = Decimal("0"),
        period_id: Optional[UUID] = None,
        activate: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[BudgetPeriod, ValidationResult]:
        """
        Create a period, or edit an existing one when period_id is given.

        Overlaps and implausible figures are reported, not rejected.

        Returns:
            (period, validation_result)

        Raises:
            PeriodNotFoundError: If period_id doesn't name one of the user's periods
        """
        correlation_id = correlation_id or create_correlation_id()
        stores = self._router.for_user(user_id)

        is_new = period_id is None
        if not is_new:
            existing = await stores.periods.get_period(period_id)
            if existing is None or existing.user_id != user_id:
                raise PeriodNotFoundError(f"Budget period not found: {period_id}")

        period = BudgetPeriod(
            id=period_id or uuid4(),
            user_id=user_id,
            name=name,
            start_date=to_day(start_date),
            end_date=to_day(end_date),
            monthly_income=monthly_income,
            fixed_expenses=fixed_expenses,
        )

        others = await stores.periods.list_periods(user_id)
        result = self._validator.validate(period, others)

        await stores.periods.save_period(period)

        if self._audit_logger:
            await self._audit_logger.log_period_saved(
                user_id=user_id,
                period_id=period.id,
                name=period.name,
                is_new=is_new,
                correlation_id=correlation_id,
            )
            if result.warnings:
                await self._audit_logger.log_validation_warning(
                    user_id=user_id,
                    entity_type="period",
                    entity_id=period.id,
                    warnings=result.warnings,
                    correlation_id=correlation_id,
                )

        if activate:
            await self.activate_period(user_id, period.id, correlation_id=correlation_id)

        return period, result

    async def activate_period(
        self,
        user_id: str,
        period_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetPeriod:
        """
        Make a period the one the dashboard and calendar work on.

        Raises:
            PeriodNotFoundError: If it isn't one of the user's periods
        """
        correlation_id = correlation_id or create_correlation_id()
        stores = self._router.for_user(user_id)

        period = await stores.periods.get_period(period_id)
        if period is None or period.user_id != user_id:
            raise PeriodNotFoundError(f"Budget period not found: {period_id}")

        settings = await _load_settings(stores, user_id, self._app_settings)
        await stores.settings.save_settings(settings.model_copy(update={
            "active_period_id": period.id,
            "updated_at": datetime.utcnow(),
        }))

        if self._audit_logger:
            await self._audit_logger.log_period_activated(
                user_id=user_id,
                period_id=period.id,
                name=period.name,
                correlation_id=correlation_id,
            )

        return period

    async def delete_period(
        self,
        user_id: str,
        period_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a period. Deleting the active period leaves no period active.

        Transactions are not touched; they simply stop belonging to a cycle.
        """
        correlation_id = correlation_id or create_correlation_id()
        stores = self._router.for_user(user_id)

        deleted = await stores.periods.delete_period(user_id, period_id)
        if not deleted:
            return False

        settings = await _load_settings(stores, user_id, self._app_settings)
        was_active = settings.active_period_id == period_id
        if was_active:
            await stores.settings.save_settings(settings.model_copy(update={
                "active_period_id": None,
                "updated_at": datetime.utcnow(),
            }))

        if self._audit_logger:
            await self._audit_logger.log_period_deleted(
                user_id=user_id,
                period_id=period_id,
                was_active=was_active,
                correlation_id=correlation_id,
            )

        return True

    async def get_active_period(self, user_id: str) -> Optional[BudgetPeriod]:
        stores = self._router.for_user(user_id)
        settings = await _load_settings(stores, user_id, self._app_settings)
        return await _load_active_period(stores, settings)

    async def list_periods(self, user_id: str) -> list[BudgetPeriod]:
        """The user's periods, latest start date first."""
        return await self._router.for_user(user_id).periods.list_periods(user_id)

    async def update_preferences(
        self,
        user_id: str,
        financial_goal: Optional[FinancialGoal] = None,
        savings_style: Optional[SavingsStyle] = None,
        risk_tolerance: Optional[RiskTolerance] = None,
        correlation_id: Optional[UUID] = None,
    ) -> UserSettings:
        """Change the advisor profile. Arguments left as None keep their value."""
        correlation_id = correlation_id or create_correlation_id()
        stores = self._router.for_user(user_id)

        changes = {
            key: value
            for key, value in (
                ("financial_goal", financial_goal),
                ("savings_style", savings_style),
                ("risk_tolerance", risk_tolerance),
            )
            if value is not None
        }

        settings = await _load_settings(stores, user_id, self._app_settings)
        # model_copy skips validation, so plain strings are coerced here
        updated = UserSettings.model_validate({
            **settings.model_dump(),
            **changes,
            "updated_at": datetime.utcnow(),
        })
        await stores.settings.save_settings(updated)

        if self._audit_logger:
            await self._audit_logger.log_preferences_updated(
                user_id=user_id,
                preferences={
                    "financial_goal": updated.financial_goal.value,
                    "savings_style": updated.savings_style.value,
                    "risk_tolerance": updated.risk_tolerance.value,
                },
                correlation_id=correlation_id,
            )

        return updated

    async def start_guest_session(
        self,
        guest_id: Optional[str] = None,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Create a guest user with demo data and return its id.

        Raises:
            ValueError: If guest_id doesn't carry the guest prefix
        """
        correlation_id = correlation_id or create_correlation_id()
        guest_id = guest_id or self._router.new_guest_id()
        if not self._router.is_guest(guest_id):
            raise ValueError(f"Not a guest user id: {guest_id}")

        stores = self._router.for_user(guest_id)
        period = await seed_guest_data(guest_id, stores, today=today)

        if self._audit_logger:
            transactions = await stores.transactions.list_transactions(guest_id)
            await self._audit_logger.log_demo_data_seeded(
                user_id=guest_id,
                period_id=period.id,
                transaction_count=len(transactions),
                correlation_id=correlation_id,
            )

        return guest_id


class DashboardFlow:
    """
    Read-only views: dashboard stats, calendar month and cycle history.

    All numbers come straight from the calculator.
    """

    def __init__(
        self,
        router: StorageRouter,
        app_settings: Optional[AppSettings] = None,
    ):
        self._router = router
        self._app_settings = app_settings or get_settings().app

    async def _active(self, user_id: str) -> tuple[Optional[BudgetPeriod], list[Transaction]]:
        stores = self._router.for_user(user_id)
        settings = await _load_settings(stores, user_id, self._app_settings)
        period = await _load_active_period(stores, settings)
        if period is None:
            return None, []
        transactions = await stores.transactions.list_transactions(
            user_id,
            date_from=period.start_date,
            date_to=period.end_date,
        )
        return period, transactions

    async def get_stats(
        self,
        user_id: str,
        as_of: Optional[DateLike] = None,
    ) -> CycleStats:
        """Stats of the active period; all zeros when no period is active."""
        period, transactions = await self._active(user_id)
        if period is None:
            return CycleStats.empty()
        return compute_cycle_stats(period, transactions, as_of=as_of)

    async def get_calendar(
        self,
        user_id: str,
        year: int,
        month: int,
        today: Optional[DateLike] = None,
    ) -> list[DailyStatus]:
        """
        Every day of a calendar month judged against the active period.

        Raises:
            NoActivePeriodError: If the user has no active period
        """
        stores = self._router.for_user(user_id)
        settings = await _load_settings(stores, user_id, self._app_settings)
        period = await _load_active_period(stores, settings)
        if period is None:
            raise NoActivePeriodError(f"No active budget period for user {user_id}")

        # Days outside the period still show their raw spend
        transactions = await stores.transactions.list_transactions(user_id)
        return compute_calendar_month(
            year,
            month,
            period,
            transactions,
            today=today,
            danger_multiplier=Decimal(str(self._app_settings.danger_multiplier)),
        )

    async def get_history(self, user_id: str) -> list[CycleSummary]:
        """Summaries of all the user's periods, newest first."""
        stores = self._router.for_user(user_id)
        periods = await stores.periods.list_periods(user_id)
        if not periods:
            return []
        transactions = await stores.transactions.list_transactions(user_id)
        return compute_history_summaries(periods, transactions)


class AdvisorFlow:
    """
    Orchestrates the advisor.

    The agent only ever sees calculator output: a FinancialSnapshot of the
    active cycle's transactions (all transactions when no period is active)
    and the active period's CycleStats.
    """

    def __init__(
        self,
        router: StorageRouter,
        agent: Optional[FinancialAdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._router = router
        self._agent = agent
        self._audit_logger = audit_logger
        self._app_settings = app_settings or get_settings().app

    @property
    def agent(self) -> FinancialAdvisorAgent:
        # Created on first use so the app starts without a Gemini key
        if self._agent is None:
            self._agent = FinancialAdvisorAgent()
        return self._agent

    async def _context(self, user_id: str, as_of: Optional[DateLike]):
        stores = self._router.for_user(user_id)
        settings = await _load_settings(stores, user_id, self._app_settings)
        period = await _load_active_period(stores, settings)
        transactions = await stores.transactions.list_transactions(user_id)

        stats = None
        if period is not None:
            stats = compute_cycle_stats(period, transactions, as_of=as_of)
            transactions = filter_cycle_transactions(period, transactions)

        snapshot = summarize_transactions(
            transactions,
            top_n=self._app_settings.advisor_top_categories,
            recent_n=self._app_settings.advisor_recent_transactions,
        )
        return snapshot, stats, settings

    async def _audit_request(self, user_id: str, kind: str, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_advice_requested(
                user_id=user_id,
                kind=kind,
                correlation_id=correlation_id,
            )

    async def _audit_fallback(self, response: AdvisorResponse, correlation_id: UUID) -> None:
        if response.is_fallback and self._audit_logger:
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message="Advisor fell back to a canned response",
                correlation_id=correlation_id,
            )

    async def analyze(
        self,
        user_id: str,
        as_of: Optional[DateLike] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AdvisorResponse:
        """Short report on the user's current cycle."""
        correlation_id = correlation_id or create_correlation_id()
        await self._audit_request(user_id, "analysis", correlation_id)

        snapshot, stats, settings = await self._context(user_id, as_of)
        response = await self.agent.analyze(snapshot, stats, settings)

        await self._audit_fallback(response, correlation_id)
        return response

    async def ask(
        self,
        user_id: str,
        question: str,
        as_of: Optional[DateLike] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AdvisorResponse:
        """Answer a free-form question with the user's data as context."""
        if not question or not question.strip():
            raise ValueError("Question cannot be empty")

        correlation_id = correlation_id or create_correlation_id()
        await self._audit_request(user_id, "question", correlation_id)

        snapshot, stats, settings = await self._context(user_id, as_of)
        response = await self.agent.ask(question, snapshot, stats, settings)

        await self._audit_fallback(response, correlation_id)
        return response


class AppComponents(NamedTuple):
    """Everything create_app_components wires together."""

    ledger: LedgerFlow
    periods: PeriodFlow
    dashboard: DashboardFlow
    advisor: AdvisorFlow
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    use_storage: bool = True,
    advisor_agent: Optional[FinancialAdvisorAgent] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False to keep everything in memory (tests, demos).
        advisor_agent: Advisor to use instead of a Gemini-configured one.

    Returns:
        AppComponents(ledger, periods, dashboard, advisor, sheets_client)
    """
    app_settings = get_settings().app

    sheets_client = None
    registered = None
    audit_storage = None

    if use_storage and app_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            registered = create_sheets_bundle(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            registered = None
            audit_storage = None

    router = StorageRouter(
        registered=registered or create_memory_bundle(),
        guest_prefix=app_settings.guest_prefix,
    )
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())

    return AppComponents(
        ledger=LedgerFlow(
            router,
            validator=TransactionValidator(app_settings),
            audit_logger=audit_logger,
        ),
        periods=PeriodFlow(
            router,
            audit_logger=audit_logger,
            app_settings=app_settings,
        ),
        dashboard=DashboardFlow(router, app_settings=app_settings),
        advisor=AdvisorFlow(
            router,
            agent=advisor_agent,
            audit_logger=audit_logger,
            app_settings=app_settings,
        ),
        sheets_client=sheets_client,
    )
