"""Database layer - storage handle, base classes, types."""

from ledger_kernel.db.base import UUID, Base, RateNumeric, TrackedBase, UUIDString
from ledger_kernel.db.engine import LedgerStore
from ledger_kernel.db.types import round_money, to_decimal

__all__ = [
    "LedgerStore",
    "Base",
    "TrackedBase",
    "UUID",
    "UUIDString",
    "RateNumeric",
    "round_money",
    "to_decimal",
]
