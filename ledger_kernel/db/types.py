"""
Module: ledger_kernel.db.types
Responsibility: Precision constants and the single sanctioned rounding
    helper for money.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money is Numeric(38, 9); exchange rates carry 18 decimal places.
    - round_money() is the only rounding function applied to ledger amounts.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 9
RATE_DECIMAL_PLACES = 18
DEFAULT_ROUNDING = ROUND_HALF_UP

_ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to ``decimal_places``.

    Args:
        value: Amount to round.
        decimal_places: Minor-unit digits of the target currency.
        rounding: Decimal rounding mode, ROUND_HALF_UP by default.

    Returns:
        The quantized Decimal.
    """
    if decimal_places < 0:
        raise ValueError(f"decimal_places must be >= 0, got {decimal_places}")
    quantum = Decimal(1).scaleb(-decimal_places)
    return Decimal(value).quantize(quantum, rounding=rounding)


def to_decimal(value: object) -> Decimal:
    """
    Normalize a value read back from the database to Decimal.

    Aggregates over Numeric columns come back as Decimal on PostgreSQL and as
    float or int on SQLite.  None (empty aggregate) becomes zero.
    """
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return value
    return round_money(Decimal(str(value)), MONEY_DECIMAL_PLACES)
