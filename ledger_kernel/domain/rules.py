"""
Rules -- pure double-entry checks and balance-delta math.

Responsibility:
    The invariants every journal entry must satisfy, expressed without a
    database: one positive side per line, debits equal credits within the
    currency's tolerance, and the per-account balance movement a set of
    lines produces.

Architecture position:
    Kernel > Domain -- pure functional core.  Called by JournalService before
    any write and by BalanceService when applying a posted entry.

Failure modes:
    - InsufficientLinesError when fewer than two lines are supplied.
    - InvalidLineError for negative amounts or lines with zero/two sides.
    - UnbalancedEntryError when |debits - credits| reaches the tolerance.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.values import AccountType, balance_delta
from ledger_kernel.exceptions import (
    InsufficientLinesError,
    InvalidLineError,
    UnbalancedEntryError,
)

MIN_LINES = 2

_ZERO = Decimal("0")


def validate_line_sides(amounts: Sequence[tuple[Decimal, Decimal]]) -> None:
    """
    Check each (debit, credit) pair.

    Raises:
        InsufficientLinesError: fewer than MIN_LINES pairs.
        InvalidLineError: negative amount, or not exactly one positive side.
    """
    if len(amounts) < MIN_LINES:
        raise InsufficientLinesError(len(amounts), MIN_LINES)
    for number, (debit, credit) in enumerate(amounts, start=1):
        if debit < _ZERO or credit < _ZERO:
            raise InvalidLineError(number, "amounts cannot be negative")
        if (debit > _ZERO) == (credit > _ZERO):
            raise InvalidLineError(
                number, "exactly one of debit or credit must be positive"
            )


def check_balanced(
    debits: Decimal,
    credits: Decimal,
    currency: str,
    tolerance: Decimal,
) -> None:
    """Raise UnbalancedEntryError unless |debits - credits| < tolerance."""
    if abs(debits - credits) >= tolerance:
        raise UnbalancedEntryError(debits, credits, currency)


def is_balanced(debits: Decimal, credits: Decimal, tolerance: Decimal) -> bool:
    return abs(debits - credits) < tolerance


@dataclass(frozen=True)
class LineEffect:
    """What BalanceService needs from one posted line."""

    account_id: UUID
    account_type: AccountType
    debit_base: Decimal
    credit_base: Decimal


def aggregate_deltas(effects: Iterable[LineEffect]) -> dict[UUID, Decimal]:
    """
    Sum balance movements per account.

    Returns:
        account_id -> delta, with accounts whose lines cancel out omitted.
    """
    totals: dict[UUID, Decimal] = {}
    for effect in effects:
        delta = balance_delta(effect.account_type, effect.debit_base, effect.credit_base)
        totals[effect.account_id] = totals.get(effect.account_id, _ZERO) + delta
    return {account_id: delta for account_id, delta in totals.items() if delta != _ZERO}


def swap_sides(debit: Decimal, credit: Decimal) -> tuple[Decimal, Decimal]:
    """A reversal line debits what the original credited and vice versa."""
    return credit, debit
