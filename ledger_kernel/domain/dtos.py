"""
DTOs -- immutable inputs and read views crossing the service boundary.

Responsibility:
    Inputs (AccountSpec, AccountPatch, JournalLineInput, DraftEntry,
    EntryFilter) and views (AccountView, AccountNode, JournalLineView,
    JournalEntryView, EntryPage).  Callers never receive ORM objects, so a
    view stays valid after its unit of work closes.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` converters exist only
    for the service layer to call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from ledger_kernel.domain.values import AccountType, EntrySource, EntryStatus

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account as AccountModel
    from ledger_kernel.models.journal import JournalEntry as JournalEntryModel
    from ledger_kernel.models.journal import JournalEntryLine as JournalEntryLineModel

_ZERO = Decimal("0")

# Sentinel for "leave unchanged" in patches where None is a real value
UNSET: object = object()


# =============================================================================
# Accounts
# =============================================================================


@dataclass(frozen=True)
class AccountSpec:
    """Input for AccountService.create_account."""

    code: str
    name: str
    account_type: AccountType
    currency: str | None = None
    name_ar: str | None = None
    description: str | None = None
    parent_id: UUID | None = None
    is_control_account: bool = False
    # None derives the flag from is_control_account
    allow_posting: bool | None = None


@dataclass(frozen=True)
class AccountPatch:
    """
    Input for AccountService.update_account.

    Fields left as None are untouched.  ``parent_id`` uses UNSET because
    None there means "make this a root account".
    """

    code: str | None = None
    name: str | None = None
    name_ar: str | None = None
    description: str | None = None
    account_type: AccountType | None = None
    parent_id: UUID | None | object = UNSET
    is_control_account: bool | None = None
    allow_posting: bool | None = None
    is_active: bool | None = None
    currency: str | None = None


@dataclass(frozen=True)
class AccountView:
    id: UUID
    code: str
    name: str
    name_ar: str | None
    account_type: AccountType
    parent_id: UUID | None
    is_control_account: bool
    allow_posting: bool
    is_active: bool
    currency: str
    balance: Decimal
    description: str | None = None

    @classmethod
    def from_model(cls, account: AccountModel) -> AccountView:
        return cls(
            id=account.id,
            code=account.code,
            name=account.name,
            name_ar=account.name_ar,
            account_type=AccountType(account.account_type),
            parent_id=account.parent_id,
            is_control_account=account.is_control_account,
            allow_posting=account.allow_posting,
            is_active=account.is_active,
            currency=account.currency,
            balance=account.balance,
            description=account.description,
        )


@dataclass(frozen=True)
class AccountNode:
    """An account with its depth and children, for tree rendering."""

    account: AccountView
    level: int
    children: tuple[AccountNode, ...] = ()

    def walk(self):
        """Depth-first, parent before children."""
        yield self
        for child in self.children:
            yield from child.walk()


# =============================================================================
# Journal entries
# =============================================================================


@dataclass(frozen=True)
class JournalLineInput:
    """
    One line of a draft.  Exactly one of debit/credit must be positive.

    currency and exchange_rate default to the entry's.
    """

    account_id: UUID
    debit: Decimal = _ZERO
    credit: Decimal = _ZERO
    description: str | None = None
    cost_center: str | None = None
    project: str | None = None
    currency: str | None = None
    exchange_rate: Decimal | None = None


@dataclass(frozen=True)
class DraftEntry:
    """Input for JournalService.create_draft / update_draft."""

    description: str
    transaction_date: date
    lines: tuple[JournalLineInput, ...]
    currency: str | None = None
    exchange_rate: Decimal | None = None
    reference: str | None = None
    source: EntrySource = EntrySource.MANUAL
    source_id: str | None = None

    def __post_init__(self) -> None:
        # Accept lists from callers, store a tuple
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class JournalLineView:
    id: UUID
    line_number: int
    account_id: UUID
    account_code: str
    account_name: str
    account_name_ar: str | None
    account_type: AccountType
    description: str | None
    debit_amount: Decimal
    credit_amount: Decimal
    currency: str
    exchange_rate: Decimal
    debit_amount_base: Decimal
    credit_amount_base: Decimal
    cost_center: str | None
    project: str | None

    @classmethod
    def from_model(cls, line: JournalEntryLineModel) -> JournalLineView:
        account = line.account
        return cls(
            id=line.id,
            line_number=line.line_number,
            account_id=line.account_id,
            account_code=account.code,
            account_name=account.name,
            account_name_ar=account.name_ar,
            account_type=AccountType(account.account_type),
            description=line.description,
            debit_amount=line.debit_amount,
            credit_amount=line.credit_amount,
            currency=line.currency,
            exchange_rate=line.exchange_rate,
            debit_amount_base=line.debit_amount_base,
            credit_amount_base=line.credit_amount_base,
            cost_center=line.cost_center,
            project=line.project,
        )


@dataclass(frozen=True)
class JournalEntryView:
    id: UUID
    journal_no: str
    reference: str | None
    description: str
    transaction_date: date
    posting_date: date | None
    currency: str
    exchange_rate: Decimal
    total_debit: Decimal
    total_credit: Decimal
    total_debit_base: Decimal
    total_credit_base: Decimal
    status: EntryStatus
    source: EntrySource
    source_id: str | None
    created_by_id: UUID
    approved_by_id: UUID | None
    approved_at: datetime | None
    reversed_by_id: UUID | None
    reversed_at: datetime | None
    reversal_reason: str | None
    reversal_of_id: UUID | None
    lines: tuple[JournalLineView, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, entry: JournalEntryModel, with_lines: bool = True) -> JournalEntryView:
        return cls(
            id=entry.id,
            journal_no=entry.journal_no,
            reference=entry.reference,
            description=entry.description,
            transaction_date=entry.transaction_date,
            posting_date=entry.posting_date,
            currency=entry.currency,
            exchange_rate=entry.exchange_rate,
            total_debit=entry.total_debit,
            total_credit=entry.total_credit,
            total_debit_base=entry.total_debit_base,
            total_credit_base=entry.total_credit_base,
            status=EntryStatus(entry.status),
            source=EntrySource(entry.source),
            source_id=entry.source_id,
            created_by_id=entry.created_by_id,
            approved_by_id=entry.approved_by_id,
            approved_at=entry.approved_at,
            reversed_by_id=entry.reversed_by_id,
            reversed_at=entry.reversed_at,
            reversal_reason=entry.reversal_reason,
            reversal_of_id=entry.reversal_of_id,
            lines=tuple(JournalLineView.from_model(l) for l in entry.lines)
            if with_lines
            else (),
        )


@dataclass(frozen=True)
class EntryFilter:
    """Criteria for JournalService.list_entries."""

    status: EntryStatus | None = None
    source: EntrySource | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None
    page: int = 1
    page_size: int = 50

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.page_size <= 500:
            raise ValueError("page_size must be between 1 and 500")


@dataclass(frozen=True)
class EntryPage:
    entries: tuple[JournalEntryView, ...]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size
