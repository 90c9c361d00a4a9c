"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Orchestrates statement generation -- trial balance, balance sheet,
profit & loss and cash flow -- by bridging ``LedgerSelector`` (balances
folded from posted history) to the pure transformation functions in
``statements.py``.  This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``session`` + ``clock`` +
``config`` + the ledger's ``LedgerConfig`` (base currency, currencies).

Invariants enforced
-------------------
* Read-only -- no mutations to the journal or to cached balances.
* Amounts come from recomputation over posted lines, never from the
  cached ``Account.balance``.

Failure modes
-------------
* Invalid report parameters (e.g. end_date < start_date) -> ValidationError
  raised before query execution.
* InvalidCurrencyError for an unsupported report currency.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.values import AccountType
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.ledger_selector import LedgerSelector

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowMethod,
    CashFlowReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_modules.reporting.statements import (
    AccountInfo,
    build_balance_sheet,
    build_cash_flow,
    build_profit_and_loss,
    build_trial_balance,
    render_to_dict,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Financial statement generation service.

    Contract
    --------
    * Every public method returns a typed report DTO.
    * All methods are **read-only**.

    Guarantees
    ----------
    * Report generation delegates to pure functions in ``statements.py``;
      no financial logic lives in this class.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT render CSV/PDF (``render_to_dict`` gives JSON-ready data).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        ledger_config: LedgerConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig()
        self._ledger_config = ledger_config or LedgerConfig()
        self._currencies = CurrencyRegistry.from_config(self._ledger_config)
        self._ledger = LedgerSelector(session, self._ledger_config.base_currency)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load_accounts(self) -> dict[UUID, AccountInfo]:
        """
        Load every account as AccountInfo.

        Inactive accounts are included: they may still carry history that
        the statements have to show to balance.
        """
        accounts: dict[UUID, AccountInfo] = {}
        for acct in self._session.scalars(select(Account)):
            accounts[acct.id] = AccountInfo(
                account_id=acct.id,
                code=acct.code,
                name=acct.name,
                account_type=AccountType(acct.account_type),
                name_ar=acct.name_ar,
                parent_id=acct.parent_id,
            )
        logger.debug(
            "accounts_loaded_for_reporting",
            extra={"account_count": len(accounts)},
        )
        return accounts

    def _currency(self, currency: str | None) -> str:
        return self._currencies.validate(
            currency or self._config.default_currency or self._ledger_config.base_currency
        )

    def _tolerance(self, currency: str) -> Decimal:
        return self._currencies.get_rounding_tolerance(currency)

    def _build_metadata(
        self,
        report_type: ReportType,
        as_of_date: date,
        currency: str,
        period_start: date | None = None,
        period_end: date | None = None,
        comparison_date: date | None = None,
        comparison_start: date | None = None,
        comparison_end: date | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=currency,
            as_of_date=as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
            comparison_date=comparison_date,
            comparison_start=comparison_start,
            comparison_end=comparison_end,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def trial_balance(
        self,
        as_of_date: date | None = None,
        currency: str | None = None,
    ) -> TrialBalanceReport:
        """Net debit/credit per account from all posted lines up to ``as_of_date``."""
        as_of_date = as_of_date or self._clock.today()
        curr = self._currency(currency)
        accounts = self._load_accounts()
        activity = self._ledger.activity_between(None, as_of_date, curr)

        report = build_trial_balance(
            activity,
            accounts,
            self._config,
            self._build_metadata(ReportType.TRIAL_BALANCE, as_of_date, curr),
            self._tolerance(curr),
        )
        logger.info(
            "trial_balance_generated",
            extra={
                "as_of_date": as_of_date,
                "currency": curr,
                "line_count": len(report.lines),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def balance_sheet(
        self,
        as_of_date: date | None = None,
        currency: str | None = None,
        comparison_date: date | None = None,
        include_zero_balances: bool | None = None,
    ) -> BalanceSheetReport:
        """
        Generate a classified balance sheet.

        Args:
            as_of_date: Report date (today by default).
            currency: Report currency (configured default, else base).
            comparison_date: Optional second as-of date; adds comparison
                figures and variance to every line and total.
            include_zero_balances: Overrides the configured zero filter.

        Returns:
            BalanceSheetReport with A = L + E verification.
        """
        as_of_date = as_of_date or self._clock.today()
        curr = self._currency(currency)
        config = self._config_with(include_zero_balances)
        accounts = self._load_accounts()
        balances = self._ledger.balances_as_of(as_of_date, curr)

        comparison = None
        if comparison_date is not None:
            comparison = self._ledger.balances_as_of(comparison_date, curr)

        metadata = self._build_metadata(
            ReportType.BALANCE_SHEET,
            as_of_date,
            curr,
            comparison_date=comparison_date,
        )
        report = build_balance_sheet(
            balances, accounts, config, metadata, self._tolerance(curr), comparison,
        )

        log = logger.info if report.is_balanced else logger.warning
        log(
            "balance_sheet_generated",
            extra={
                "as_of_date": as_of_date,
                "currency": curr,
                "total_assets": report.total_assets.amount,
                "total_l_and_e": report.total_liabilities_and_equity.amount,
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def profit_and_loss(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
        comparison_start: date | None = None,
        comparison_end: date | None = None,
    ) -> ProfitAndLossReport:
        """
        Generate a multi-step P&L over [start_date, end_date].

        Both comparison bounds must be given together.
        """
        if end_date < start_date:
            raise ValidationError(
                f"end_date {end_date} precedes start_date {start_date}",
                field="end_date",
            )
        if (comparison_start is None) != (comparison_end is None):
            raise ValidationError(
                "comparison_start and comparison_end must be given together",
                field="comparison_start",
            )
        if comparison_start is not None and comparison_end < comparison_start:
            raise ValidationError(
                f"comparison_end {comparison_end} precedes comparison_start {comparison_start}",
                field="comparison_end",
            )

        curr = self._currency(currency)
        accounts = self._load_accounts()
        amounts = self._period_amounts(start_date, end_date, curr)

        comparison = None
        if comparison_start is not None:
            comparison = self._period_amounts(comparison_start, comparison_end, curr)

        metadata = self._build_metadata(
            ReportType.PROFIT_AND_LOSS,
            end_date,
            curr,
            period_start=start_date,
            period_end=end_date,
            comparison_start=comparison_start,
            comparison_end=comparison_end,
        )
        report = build_profit_and_loss(
            amounts, accounts, self._config, metadata, self._tolerance(curr), comparison,
        )
        logger.info(
            "profit_and_loss_generated",
            extra={
                "period_start": start_date,
                "period_end": end_date,
                "currency": curr,
                "net_profit_after_tax": report.net_profit_after_tax.amount,
            },
        )
        return report

    def cash_flow(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
        method: CashFlowMethod | str = CashFlowMethod.INDIRECT,
    ) -> CashFlowReport:
        """
        Generate a cash flow statement over [start_date, end_date].

        Opening cash is the cash accounts' balance at the end of the day
        before ``start_date``.
        """
        if end_date < start_date:
            raise ValidationError(
                f"end_date {end_date} precedes start_date {start_date}",
                field="end_date",
            )
        try:
            method = CashFlowMethod(method)
        except ValueError:
            raise ValidationError(
                f"Unknown cash flow method: {method}", field="method"
            ) from None

        curr = self._currency(currency)
        accounts = self._load_accounts()
        activity = self._ledger.activity_between(start_date, end_date, curr)
        opening = self._ledger.balances_as_of(start_date - timedelta(days=1), curr)

        metadata = self._build_metadata(
            ReportType.CASH_FLOW,
            end_date,
            curr,
            period_start=start_date,
            period_end=end_date,
        )
        report = build_cash_flow(
            activity, opening, accounts, self._config, metadata,
            self._tolerance(curr), method,
        )

        log = logger.info if report.is_reconciled else logger.warning
        log(
            "cash_flow_generated",
            extra={
                "period_start": start_date,
                "period_end": end_date,
                "currency": curr,
                "method": method.value,
                "net_cash_flow": report.net_cash_flow.amount,
                "is_reconciled": report.is_reconciled,
            },
        )
        return report

    def to_dict(self, report) -> dict:
        """Convert any report to a JSON-serializable dict."""
        return render_to_dict(report)

    def _period_amounts(self, start: date, end: date, currency: str) -> dict[UUID, Decimal]:
        activity = self._ledger.activity_between(start, end, currency)
        return {account_id: act.net for account_id, act in activity.items()}

    def _config_with(self, include_zero_balances: bool | None) -> ReportingConfig:
        if include_zero_balances is None:
            return self._config
        return replace(self._config, include_zero_balances=include_zero_balances)
