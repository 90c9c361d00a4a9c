"""
Module: ledger_kernel.domain.values
Responsibility: Enumerations shared by models, services and reports, and the
    one sign rule that turns a debit/credit pair into a balance movement.
Architecture position: Kernel > Domain.  Pure; imports nothing from the kernel.
"""

from decimal import Decimal
from enum import Enum


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def normal_balance(self) -> "NormalBalance":
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT

    @property
    def is_balance_sheet(self) -> bool:
        return self in (AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY)


class NormalBalance(str, Enum):
    """Side on which an account's balance grows."""

    DEBIT = "debit"
    CREDIT = "credit"


class EntryStatus(str, Enum):
    """Journal entry lifecycle.

    DRAFT -> PENDING_APPROVAL -> POSTED -> REVERSED.  DRAFT may post directly.
    POSTED and REVERSED are immutable.
    """

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    POSTED = "posted"
    REVERSED = "reversed"

    @property
    def is_editable(self) -> bool:
        return self in EDITABLE_STATUSES

    @property
    def has_ledger_effect(self) -> bool:
        """True once the entry has moved balances (posted, possibly later reversed)."""
        return self in EFFECTIVE_STATUSES


EDITABLE_STATUSES = frozenset({EntryStatus.DRAFT, EntryStatus.PENDING_APPROVAL})
EFFECTIVE_STATUSES = frozenset({EntryStatus.POSTED, EntryStatus.REVERSED})


class EntrySource(str, Enum):
    """Where a journal entry came from."""

    MANUAL = "manual"
    SALES = "sales"
    PURCHASE = "purchase"
    PAYROLL = "payroll"
    INVENTORY = "inventory"
    REVERSAL = "reversal"
    SYSTEM = "system"


class LineSide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class TransactionStatus(str, Enum):
    """Status of an external transaction tied to a journal entry line."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RateSource(str, Enum):
    CENTRAL_BANK = "central_bank"
    MANUAL = "manual"
    API = "api"


def balance_delta(account_type: AccountType, debit: Decimal, credit: Decimal) -> Decimal:
    """
    Movement of an account's natural balance for one debit/credit pair.

    ASSET and EXPENSE grow with debits; LIABILITY, EQUITY and REVENUE grow
    with credits.
    """
    if account_type.normal_balance is NormalBalance.DEBIT:
        return debit - credit
    return credit - debit
