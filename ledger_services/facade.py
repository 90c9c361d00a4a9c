"""
ledger_services.facade -- The ledger's request-handler contract.

Responsibility:
    One method per external operation (chart administration, journal
    entry lifecycle, statements, currency administration).  Each call runs
    in its own unit of work on the injected LedgerStore and returns plain
    frozen DTOs, never ORM rows.

Architecture position:
    Services -- top of the stack.  Thin request handlers (HTTP, CLI, other
    modules that synthesize entries) call this class; nothing below it
    knows about requests.

Retry policy:
    Only ``post_entry`` and ``reverse_entry`` retry, and only on transient
    storage conflicts.  A business failure such as posting an already
    posted entry is raised on the first attempt.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.config import LedgerConfig
from ledger_kernel.db.engine import LedgerStore
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountNode,
    AccountPatch,
    AccountSpec,
    AccountView,
    DraftEntry,
    EntryFilter,
    EntryPage,
    JournalEntryView,
)
from ledger_kernel.domain.rate_providers import RateProvider
from ledger_kernel.domain.values import AccountType, RateSource
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.rate_selector import RateView
from ledger_kernel.services.balance_service import ReconciliationReport
from ledger_kernel.services.currency_service import RatesSnapshot, SyncResult
from ledger_kernel.services.journal_service import PostResult, ReversalResult
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowMethod,
    CashFlowReport,
    ProfitAndLossReport,
    TrialBalanceReport,
)
from ledger_services.orchestrator import LedgerOrchestrator

logger = get_logger("services.facade")

T = TypeVar("T")


class LedgerFacade:
    """
    Entry point for every ledger operation.

    Contract:
        Constructed once per process with the storage handle; safe to share
        across threads because it holds no per-request state.  Every method
        opens, commits (or rolls back) and closes its own unit of work.

    Non-goals:
        - Does NOT format statements for download.
        - Does NOT authenticate; ``actor_id`` is trusted.
    """

    def __init__(
        self,
        store: LedgerStore,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        reporting_config: ReportingConfig | None = None,
        rate_providers: list[RateProvider] | None = None,
    ):
        self._store = store
        self._config = config or LedgerConfig()
        self._clock = clock or SystemClock()
        self._reporting_config = reporting_config
        self._rate_providers = list(rate_providers or ())

    def register_rate_provider(self, provider: RateProvider) -> None:
        self._rate_providers.append(provider)

    def _execute(
        self,
        operation: str,
        fn: Callable[[LedgerOrchestrator], T],
        *,
        actor_id: UUID | None = None,
        retry: bool = False,
        **context: object,
    ) -> T:
        def work(session: Session) -> T:
            return fn(
                LedgerOrchestrator(
                    session,
                    self._config,
                    self._clock,
                    rate_providers=self._rate_providers,
                    reporting_config=self._reporting_config,
                )
            )

        bound = {k: str(v) for k, v in context.items() if v is not None}
        with LogContext.bind(
            operation=operation,
            actor_id=str(actor_id) if actor_id is not None else None,
            **bound,
        ):
            return self._store.run(operation, work, retry=retry)

    # =========================================================================
    # Chart of accounts
    # =========================================================================

    def create_account(self, spec: AccountSpec, actor_id: UUID) -> AccountView:
        return self._execute(
            "create_account",
            lambda o: o.accounts.create_account(spec, actor_id),
            actor_id=actor_id,
        )

    def update_account(
        self, account_id: UUID, patch: AccountPatch, actor_id: UUID
    ) -> AccountView:
        return self._execute(
            "update_account",
            lambda o: o.accounts.update_account(account_id, patch, actor_id),
            actor_id=actor_id,
            account_id=account_id,
        )

    def seed_standard_chart(self, actor_id: UUID) -> list[AccountView]:
        return self._execute(
            "seed_standard_chart",
            lambda o: o.accounts.seed_standard_chart(actor_id),
            actor_id=actor_id,
        )

    def get_account(self, account_id: UUID) -> AccountView:
        return self._execute("get_account", lambda o: o.accounts.get_account(account_id))

    def get_account_by_code(self, code: str) -> AccountView:
        return self._execute(
            "get_account_by_code", lambda o: o.accounts.get_account_by_code(code)
        )

    def get_hierarchy(
        self,
        account_type: AccountType | None = None,
        parent_id: UUID | None = None,
        include_inactive: bool = False,
    ) -> tuple[AccountNode, ...]:
        return self._execute(
            "get_hierarchy",
            lambda o: o.accounts.get_hierarchy(
                account_type=account_type,
                parent_id=parent_id,
                include_inactive=include_inactive,
            ),
        )

    def get_level(self, account_id: UUID) -> int:
        return self._execute("get_level", lambda o: o.accounts.get_level(account_id))

    # =========================================================================
    # Journal entries
    # =========================================================================

    def create_draft_entry(self, draft: DraftEntry, actor_id: UUID) -> JournalEntryView:
        return self._execute(
            "create_draft_entry",
            lambda o: o.journal.create_draft(draft, actor_id),
            actor_id=actor_id,
        )

    def update_draft_entry(
        self, entry_id: UUID, draft: DraftEntry, actor_id: UUID
    ) -> JournalEntryView:
        return self._execute(
            "update_draft_entry",
            lambda o: o.journal.update_draft(entry_id, draft, actor_id),
            actor_id=actor_id,
            entry_id=entry_id,
        )

    def submit_entry(self, entry_id: UUID, actor_id: UUID) -> JournalEntryView:
        return self._execute(
            "submit_entry",
            lambda o: o.journal.submit_for_approval(entry_id, actor_id),
            actor_id=actor_id,
            entry_id=entry_id,
        )

    def post_entry(self, entry_id: UUID, actor_id: UUID) -> PostResult:
        return self._execute(
            "post_entry",
            lambda o: o.journal.post(entry_id, actor_id),
            actor_id=actor_id,
            retry=True,
            entry_id=entry_id,
        )

    def reverse_entry(
        self,
        entry_id: UUID,
        reason: str,
        actor_id: UUID,
        reversal_date: date | None = None,
    ) -> ReversalResult:
        return self._execute(
            "reverse_entry",
            lambda o: o.journal.reverse(entry_id, actor_id, reason, reversal_date),
            actor_id=actor_id,
            retry=True,
            entry_id=entry_id,
        )

    def get_entry(self, entry_id: UUID) -> JournalEntryView:
        return self._execute("get_entry", lambda o: o.journal.get_entry(entry_id))

    def list_entries(self, criteria: EntryFilter | None = None) -> EntryPage:
        return self._execute("list_entries", lambda o: o.journal.list_entries(criteria))

    # =========================================================================
    # Balances and statements
    # =========================================================================

    def balance_as_of(
        self,
        account_id: UUID,
        as_of: date | None = None,
        currency: str | None = None,
    ) -> Decimal:
        return self._execute(
            "balance_as_of",
            lambda o: o.ledger.balance_as_of(account_id, as_of or self._clock.today(), currency),
        )

    def reconcile_balances(
        self, account_ids: list[UUID] | None = None
    ) -> ReconciliationReport:
        return self._execute(
            "reconcile_balances", lambda o: o.balances.reconcile(account_ids)
        )

    def get_trial_balance(
        self, as_of: date | None = None, currency: str | None = None
    ) -> TrialBalanceReport:
        return self._execute(
            "get_trial_balance", lambda o: o.reporting.trial_balance(as_of, currency)
        )

    def get_balance_sheet(
        self,
        as_of: date | None = None,
        currency: str | None = None,
        comparison_date: date | None = None,
        include_zero_balances: bool | None = None,
    ) -> BalanceSheetReport:
        return self._execute(
            "get_balance_sheet",
            lambda o: o.reporting.balance_sheet(
                as_of, currency, comparison_date, include_zero_balances
            ),
        )

    def get_profit_and_loss(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
        comparison_range: tuple[date, date] | None = None,
    ) -> ProfitAndLossReport:
        comparison_start, comparison_end = comparison_range or (None, None)
        return self._execute(
            "get_profit_and_loss",
            lambda o: o.reporting.profit_and_loss(
                start_date, end_date, currency, comparison_start, comparison_end
            ),
        )

    def get_cash_flow(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
        method: CashFlowMethod | str = CashFlowMethod.INDIRECT,
    ) -> CashFlowReport:
        return self._execute(
            "get_cash_flow",
            lambda o: o.reporting.cash_flow(start_date, end_date, currency, method),
        )

    # =========================================================================
    # Currency administration
    # =========================================================================

    def get_rates(
        self,
        base_currency: str | None = None,
        target_currency: str | None = None,
        as_of: date | None = None,
    ) -> RatesSnapshot:
        return self._execute(
            "get_rates",
            lambda o: o.currencies.get_rates(base_currency, target_currency, as_of),
        )

    def upsert_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        actor_id: UUID,
        rate_date: date | None = None,
        source: RateSource = RateSource.MANUAL,
    ) -> RateView:
        return self._execute(
            "upsert_rate",
            lambda o: o.currencies.upsert_rate(
                from_currency, to_currency, rate, actor_id, rate_date, source
            ),
            actor_id=actor_id,
        )

    def sync_external_rates(
        self, source: str, actor_id: UUID, as_of: date | None = None
    ) -> SyncResult:
        return self._execute(
            "sync_external_rates",
            lambda o: o.currencies.sync_external_rates(source, actor_id, as_of),
            actor_id=actor_id,
        )

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        as_of: date | None = None,
    ) -> Decimal:
        return self._execute(
            "convert",
            lambda o: o.converter.convert(
                amount, from_currency, to_currency, as_of or self._clock.today()
            ),
        )

    def rate_with_margin(
        self,
        from_currency: str,
        to_currency: str,
        margin: Decimal | None = None,
        as_of: date | None = None,
    ) -> Decimal:
        def quote(o: LedgerOrchestrator) -> Decimal:
            if margin is None:
                return o.converter.rate_with_margin(
                    from_currency, to_currency, as_of=as_of or self._clock.today()
                )
            return o.converter.rate_with_margin(
                from_currency, to_currency, margin, as_of or self._clock.today()
            )

        return self._execute("rate_with_margin", quote)
