"""
Currency Converter -- pure rate math over an injected rate lookup.

Responsibility:
    Resolve the rate between two currencies as of a date (direct quote,
    stored reciprocal, or a cross through the base currency), convert
    amounts, and price customer-facing quotes with a margin.

Architecture position:
    Kernel > Domain.  Holds no rates itself; ``rate_lookup`` is supplied by
    the caller (RateSelector over the database, or a dict in tests).

Conversion path:
    to_base = amount * rate(from -> base)      (= amount / rate[base -> from])
    result  = to_base * rate(base -> to)
    rounded to the target currency's minor units, ROUND_HALF_UP.

Failure modes:
    - UnsupportedCurrencyError when no rate chain exists as of the date.
    - ValidationError for a margin outside [0, 1).
"""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

from ledger_kernel.db.types import RATE_DECIMAL_PLACES, round_money
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.exceptions import UnsupportedCurrencyError, ValidationError

# (from_currency, to_currency, as_of) -> latest stored rate on or before as_of
RateLookup = Callable[[str, str, date | None], Decimal | None]

DEFAULT_MARGIN = Decimal("0.02")

_ONE = Decimal("1")


def reciprocal(rate: Decimal) -> Decimal:
    """1 / rate at rate precision."""
    if rate <= 0:
        raise ValidationError(f"Cannot invert non-positive rate {rate}", field="rate")
    return round_money(_ONE / rate, RATE_DECIMAL_PLACES)


def cross_rate(base_to_from: Decimal, base_to_to: Decimal) -> Decimal:
    """
    Rate from -> to given two quotes against a common base.

    With base AED, AED->USD 0.272 and AED->EUR 0.245, USD->EUR is
    0.245 / 0.272.
    """
    if base_to_from <= 0:
        raise ValidationError(f"Cannot cross through non-positive rate {base_to_from}", field="rate")
    return round_money(base_to_to / base_to_from, RATE_DECIMAL_PLACES)


class CurrencyConverter:
    """
    Converts amounts through the ledger's base currency.

    Contract:
        Stateless apart from the injected lookup; calling ``convert`` twice
        with the same inputs gives the same answer.
    """

    def __init__(
        self,
        base_currency: str,
        rate_lookup: RateLookup,
        registry: CurrencyRegistry | None = None,
    ):
        self._registry = registry or CurrencyRegistry()
        self._base = self._registry.validate(base_currency)
        self._lookup = rate_lookup

    @property
    def base_currency(self) -> str:
        return self._base

    def rate(self, from_currency: str, to_currency: str, as_of: date | None = None) -> Decimal:
        """Units of ``to_currency`` per unit of ``from_currency``."""
        from_currency = self._registry.validate(from_currency)
        to_currency = self._registry.validate(to_currency)
        if from_currency == to_currency:
            return _ONE

        direct = self._pair_rate(from_currency, to_currency, as_of)
        if direct is not None:
            return direct

        if self._base not in (from_currency, to_currency):
            to_base = self._pair_rate(from_currency, self._base, as_of)
            from_base = self._pair_rate(self._base, to_currency, as_of)
            if to_base is not None and from_base is not None:
                return round_money(to_base * from_base, RATE_DECIMAL_PLACES)

        raise UnsupportedCurrencyError(from_currency, to_currency, as_of)

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        as_of: date | None = None,
    ) -> Decimal:
        """
        Convert ``amount`` and round to the target currency's minor units.

        Identity (unrounded) when both currencies are the same.
        """
        if from_currency.upper() == to_currency.upper():
            self._registry.validate(from_currency)
            return amount
        to_base = amount * self.rate(from_currency, self._base, as_of)
        result = to_base * self.rate(self._base, to_currency, as_of)
        return round_money(result, self._registry.get_decimal_places(to_currency))

    def to_base(self, amount: Decimal, currency: str, as_of: date | None = None) -> Decimal:
        return self.convert(amount, currency, self._base, as_of)

    def rate_with_margin(
        self,
        from_currency: str,
        to_currency: str,
        margin: Decimal = DEFAULT_MARGIN,
        as_of: date | None = None,
    ) -> Decimal:
        """
        Customer-facing quote: the conversion rate discounted by ``margin``.

        Never used for ledger postings.
        """
        margin = Decimal(margin)
        if margin < 0 or margin >= _ONE:
            raise ValidationError(f"Margin must be in [0, 1), got {margin}", field="margin")
        base_rate = self.rate(from_currency, to_currency, as_of)
        return round_money(base_rate * (_ONE - margin), RATE_DECIMAL_PLACES)

    def _pair_rate(self, from_currency: str, to_currency: str, as_of: date | None) -> Decimal | None:
        if from_currency == to_currency:
            return _ONE
        direct = self._lookup(from_currency, to_currency, as_of)
        if direct is not None:
            return direct
        inverse = self._lookup(to_currency, from_currency, as_of)
        if inverse is not None and inverse > 0:
            return reciprocal(inverse)
        return None
