"""
ledger_services.orchestrator -- Per-session wiring of kernel services.

Responsibility:
    Creates every kernel service exactly once for one Session and wires
    them together, so the journal engine, balance engine and currency
    administration share the same converter, clock and configuration.

Architecture position:
    Services -- the only place where kernel services are constructed and
    composed.  LedgerFacade builds one orchestrator per unit of work.

Non-goals:
    - Does NOT manage transaction boundaries (LedgerStore does).
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.rate_providers import RateProvider
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.balance_service import BalanceService
from ledger_kernel.services.currency_service import CurrencyService
from ledger_kernel.services.journal_service import JournalService
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.service import ReportingService


class LedgerOrchestrator:
    """Central factory for the services of one unit of work.

    Contract:
        Receives an open Session plus process-wide configuration and
        exposes each service as a public attribute.

    Guarantees:
        - All services share the same Session, Clock and LedgerConfig.
        - JournalService converts through CurrencyService's converter, so
          missing entry rates come from the stored rate history.
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
        rate_providers: list[RateProvider] | None = None,
        reporting_config: ReportingConfig | None = None,
    ) -> None:
        self.session = session
        self.config = config
        self.clock = clock or SystemClock()

        self.accounts = AccountService(session, config, self.clock)
        self.currencies = CurrencyService(
            session, config, self.clock, providers=rate_providers,
        )
        self.converter = self.currencies.converter()
        self.journal = JournalService(session, config, self.clock, self.converter)
        self.balances = BalanceService(
            session, config.base_currency, CurrencyRegistry.from_config(config),
        )
        self.ledger = LedgerSelector(session, config.base_currency)
        self.reporting = ReportingService(
            session, self.clock, reporting_config, ledger_config=config,
        )
