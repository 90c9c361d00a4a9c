"""
CurrencyService -- exchange-rate storage, snapshots and external sync.

Responsibility:
    Records rates (each with its reciprocal), answers "which rates were in
    force on date D" snapshots including cross rates, pulls quotes from
    registered RateProviders, and builds CurrencyConverters backed by the
    stored history.

Architecture position:
    Kernel > Services.  Writes ``currency_rates``; reads through
    RateSelector.  Providers are injected (see domain/rate_providers.py).

Invariants enforced:
    - Every stored rate is > 0 and between two different supported
      currencies.
    - A rate and its reciprocal are stored together for the same date.
    - Rate history is append-only: recording an identical rate for an
      existing (pair, date) is a no-op, a different one is a conflict.

Failure modes:
    - InvalidCurrencyError, InvalidRateError, RateConflictError.
    - RateProviderNotFoundError for an unregistered source name.
    - RateProviderError from a provider; nothing from that sync is stored.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.config import LedgerConfig
from ledger_kernel.db.types import RATE_DECIMAL_PLACES, round_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.converter import CurrencyConverter, cross_rate, reciprocal
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.rate_providers import RateProvider
from ledger_kernel.domain.values import RateSource
from ledger_kernel.exceptions import (
    InvalidRateError,
    RateConflictError,
    RateProviderNotFoundError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.currency_rate import CurrencyRate
from ledger_kernel.selectors.rate_selector import RateSelector, RateView
from ledger_kernel.services.base import BaseService

logger = get_logger("services.currency")

# Stored values differ from recomputed reciprocals only past this digit
_RATE_MATCH = Decimal("1e-12")


@dataclass(frozen=True)
class RatesSnapshot:
    """Rates in force on ``as_of`` quoted from ``base_currency``."""

    base_currency: str
    as_of: date
    rates: dict[str, RateView]
    cross_rates: dict[tuple[str, str], Decimal] = field(default_factory=dict)

    def rate(self, to_currency: str) -> Decimal | None:
        view = self.rates.get(to_currency.upper())
        return view.rate if view is not None else None


@dataclass(frozen=True)
class SyncResult:
    source: str
    base_currency: str
    as_of: date
    stored: tuple[str, ...]
    unchanged: tuple[str, ...]
    skipped: tuple[str, ...]


class CurrencyService(BaseService):
    """
    Contract:
        ``upsert_rate`` and ``sync_external_rates`` flush; the caller's unit
        of work commits.  ``get_rates`` and ``converter`` are read-only.
    """

    def __init__(
        self,
        session,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        providers: list[RateProvider] | None = None,
    ):
        super().__init__(session)
        self._config = config or LedgerConfig()
        self._clock = clock or SystemClock()
        self._currencies = CurrencyRegistry.from_config(self._config)
        self._base_currency = self._config.base_currency
        self._rates = RateSelector(session)
        self._providers: dict[str, RateProvider] = {}
        for provider in providers or ():
            self.register_provider(provider)

    def register_provider(self, provider: RateProvider) -> None:
        self._providers[provider.name] = provider

    def converter(self) -> CurrencyConverter:
        return CurrencyConverter(self._base_currency, self._rates.lookup, self._currencies)

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        actor_id: UUID,
        rate_date: date | None = None,
        source: RateSource = RateSource.MANUAL,
    ) -> RateView:
        """
        Record 1 ``from_currency`` = ``rate`` ``to_currency`` for ``rate_date``.

        The reciprocal is stored for the reverse pair on the same date.

        Raises:
            RateConflictError: a different rate already exists for the pair
                and date.
        """
        from_currency = self._currencies.validate(from_currency)
        to_currency = self._currencies.validate(to_currency)
        if from_currency == to_currency:
            raise ValidationError(
                f"Cannot quote {from_currency} against itself", field="to_currency"
            )
        rate = Decimal(str(rate)) if not isinstance(rate, Decimal) else rate
        if rate <= 0:
            raise InvalidRateError(rate)
        rate = round_money(rate, RATE_DECIMAL_PLACES)
        rate_date = rate_date or self._clock.today()

        created = self._store(from_currency, to_currency, rate, rate_date, source, actor_id)
        self._store(
            to_currency, from_currency, reciprocal(rate), rate_date, source, actor_id
        )
        self.session.flush()

        if created:
            logger.info(
                "rate_upserted",
                extra={
                    "from_currency": from_currency,
                    "to_currency": to_currency,
                    "rate": rate,
                    "rate_date": rate_date,
                    "source": RateSource(source).value,
                },
            )
        return RateView(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            rate_date=rate_date,
            source=RateSource(source),
        )

    def _store(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        rate_date: date,
        source: RateSource,
        actor_id: UUID,
    ) -> bool:
        existing = self._rates.exact(from_currency, to_currency, rate_date)
        if existing is not None:
            if abs(existing.rate - rate) <= _RATE_MATCH:
                return False
            raise RateConflictError(
                from_currency, to_currency, rate_date, existing.rate, rate
            )
        self.session.add(
            CurrencyRate(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=rate,
                rate_date=rate_date,
                source=RateSource(source).value,
                created_by_id=actor_id,
            )
        )
        return True

    def sync_external_rates(
        self,
        source: str,
        actor_id: UUID,
        as_of: date | None = None,
    ) -> SyncResult:
        """
        Fetch base-currency quotes from ``source`` and store them for ``as_of``.

        Quotes for unsupported currencies (or the base itself) are skipped;
        quotes identical to what is already stored are reported unchanged.
        """
        provider = self._providers.get(source)
        if provider is None:
            raise RateProviderNotFoundError(source)
        as_of = as_of or self._clock.today()

        quotes = provider.fetch_rates(self._base_currency, as_of)

        stored: list[str] = []
        unchanged: list[str] = []
        skipped: list[str] = []
        for quote in quotes:
            code = quote.to_currency
            if code == self._base_currency or not self._currencies.is_valid(code):
                skipped.append(code)
                continue
            existing = self._rates.exact(self._base_currency, code, as_of)
            self.upsert_rate(
                self._base_currency,
                code,
                quote.rate,
                actor_id,
                rate_date=as_of,
                source=RateSource.API,
            )
            (unchanged if existing is not None else stored).append(code)

        logger.info(
            "external_rates_synced",
            extra={
                "source": source,
                "base_currency": self._base_currency,
                "as_of": as_of,
                "stored": len(stored),
                "unchanged": len(unchanged),
                "skipped": len(skipped),
            },
        )
        return SyncResult(
            source=source,
            base_currency=self._base_currency,
            as_of=as_of,
            stored=tuple(stored),
            unchanged=tuple(unchanged),
            skipped=tuple(skipped),
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_rates(
        self,
        base_currency: str | None = None,
        target_currency: str | None = None,
        as_of: date | None = None,
    ) -> RatesSnapshot:
        """
        Latest rate per target quoted from ``base_currency`` on ``as_of``.

        Cross rates are included for every ordered pair of targets, derived
        through the base: cross(X, Y) = rate(base->Y) / rate(base->X).
        """
        base = self._currencies.validate(base_currency or self._base_currency)
        if target_currency is not None:
            target_currency = self._currencies.validate(target_currency)
        as_of = as_of or self._clock.today()

        views = self._rates.latest_from(base, as_of, target_currency)
        rates = {view.to_currency: view for view in views}

        crosses: dict[tuple[str, str], Decimal] = {}
        for x, x_view in rates.items():
            for y, y_view in rates.items():
                if x != y:
                    crosses[(x, y)] = cross_rate(x_view.rate, y_view.rate)

        return RatesSnapshot(
            base_currency=base, as_of=as_of, rates=rates, cross_rates=crosses
        )
