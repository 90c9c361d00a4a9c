"""
Module: ledger_kernel.selectors.rate_selector
Responsibility: "As of" exchange-rate lookups over the append-only rate
    history.  ``lookup`` matches the CurrencyConverter's RateLookup signature.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from ledger_kernel.domain.values import RateSource
from ledger_kernel.models.currency_rate import CurrencyRate
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class RateView:
    from_currency: str
    to_currency: str
    rate: Decimal
    rate_date: date
    source: RateSource


class RateSelector(BaseSelector):

    def latest(
        self,
        from_currency: str,
        to_currency: str,
        as_of: date | None = None,
    ) -> RateView | None:
        """The rate with the greatest rate_date on or before ``as_of``."""
        query = (
            select(CurrencyRate)
            .where(CurrencyRate.from_currency == from_currency.upper())
            .where(CurrencyRate.to_currency == to_currency.upper())
        )
        if as_of is not None:
            query = query.where(CurrencyRate.rate_date <= as_of)
        row = self.session.execute(
            query.order_by(CurrencyRate.rate_date.desc()).limit(1)
        ).scalar_one_or_none()
        return _to_view(row) if row is not None else None

    def lookup(self, from_currency: str, to_currency: str, as_of: date | None) -> Decimal | None:
        view = self.latest(from_currency, to_currency, as_of)
        return view.rate if view is not None else None

    def exact(self, from_currency: str, to_currency: str, rate_date: date) -> CurrencyRate | None:
        return self.session.execute(
            select(CurrencyRate)
            .where(CurrencyRate.from_currency == from_currency)
            .where(CurrencyRate.to_currency == to_currency)
            .where(CurrencyRate.rate_date == rate_date)
        ).scalar_one_or_none()

    def latest_from(
        self,
        base_currency: str,
        as_of: date | None = None,
        target_currency: str | None = None,
    ) -> list[RateView]:
        """Latest rate per target for every pair quoted from ``base_currency``."""
        query = select(CurrencyRate).where(
            CurrencyRate.from_currency == base_currency.upper()
        )
        if target_currency is not None:
            query = query.where(CurrencyRate.to_currency == target_currency.upper())
        if as_of is not None:
            query = query.where(CurrencyRate.rate_date <= as_of)
        query = query.order_by(CurrencyRate.to_currency, CurrencyRate.rate_date.desc())

        latest: dict[str, RateView] = {}
        for row in self.session.scalars(query):
            if row.to_currency not in latest:
                latest[row.to_currency] = _to_view(row)
        return list(latest.values())


def _to_view(row: CurrencyRate) -> RateView:
    return RateView(
        from_currency=row.from_currency,
        to_currency=row.to_currency,
        rate=row.rate,
        rate_date=row.rate_date,
        source=RateSource(row.source),
    )
