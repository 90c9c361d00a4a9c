"""
Module: ledger_kernel.models.currency_rate
Responsibility: Append-only exchange-rate history.
Architecture position: Kernel > Models.

Invariants enforced:
    - (from_currency, to_currency, rate_date) is unique (uq_currency_rate).
    - rate > 0 (checked by CurrencyService).
    - A rate is stored together with its reciprocal.
    - Rows are never updated; a new date means a new row.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import RateNumeric, TrackedBase
from ledger_kernel.domain.values import RateSource


class CurrencyRate(TrackedBase):
    """
    One quoted rate: 1 ``from_currency`` = ``rate`` ``to_currency``.

    Lookups use the latest rate_date on or before the requested date.
    """

    __tablename__ = "currency_rates"

    __table_args__ = (
        UniqueConstraint(
            "from_currency", "to_currency", "rate_date", name="uq_currency_rate"
        ),
        Index("idx_currency_rate_lookup", "from_currency", "to_currency", "rate_date"),
    )

    from_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    to_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    rate: Mapped[Decimal] = mapped_column(RateNumeric(), nullable=False)

    rate_date: Mapped[date] = mapped_column(Date, nullable=False)

    source: Mapped[RateSource] = mapped_column(
        String(20), nullable=False, default=RateSource.MANUAL.value
    )

    def __repr__(self) -> str:
        return f"<CurrencyRate {self.from_currency}->{self.to_currency} {self.rate} @ {self.rate_date}>"
