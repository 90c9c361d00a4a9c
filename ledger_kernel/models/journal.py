"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    single source of financial truth.  Balances and statements are folds of
    these rows.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - journal_no is unique (uq_journal_no).
    - (journal_entry_id, line_number) is unique (uq_journal_line_number).
    - Every line has exactly one positive side (checked by JournalService
      before insert; ``is_balanced`` available for read-side assertions).
    - POSTED and REVERSED entries are never edited; a reversal is a new row
      pointing back through reversal_of_id.

Audit relevance:
    created_by_id / approved_by_id / reversed_by_id record who moved the
    entry through each state; base-currency amounts are frozen per line so a
    later reversal never needs historical rates.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import RateNumeric, TrackedBase, UUIDString
from ledger_kernel.domain.values import EntrySource, EntryStatus

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """
    A balanced set of debit/credit lines recording one business event.

    Contract:
        Created in DRAFT.  Status moves forward only; POSTED -> REVERSED
        additionally creates a separate reversal entry.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("journal_no", name="uq_journal_no"),
        Index("idx_journal_status", "status"),
        Index("idx_journal_transaction_date", "transaction_date"),
        Index("idx_journal_source", "source", "source_id"),
    )

    journal_no: Mapped[str] = mapped_column(String(50), nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    description: Mapped[str] = mapped_column(String(1000), nullable=False)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Set only when the entry is posted
    posting_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Units of base currency per unit of ``currency``
    exchange_rate: Mapped[Decimal] = mapped_column(
        RateNumeric(), nullable=False, default=Decimal("1")
    )

    total_debit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_credit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_debit_base: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_credit_base: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    status: Mapped[EntryStatus] = mapped_column(
        String(20), nullable=False, default=EntryStatus.DRAFT.value
    )

    source: Mapped[EntrySource] = mapped_column(
        String(30), nullable=False, default=EntrySource.MANUAL.value
    )
    source_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    reversed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reversed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reversal_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Set on a reversal entry: the entry it undoes
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.journal_no} [{self.status}]>"

    @property
    def entry_status(self) -> EntryStatus:
        return EntryStatus(self.status)

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    @property
    def is_balanced(self) -> bool:
        return sum((l.debit_amount for l in self.lines), Decimal("0")) == sum(
            (l.credit_amount for l in self.lines), Decimal("0")
        )


class JournalEntryLine(TrackedBase):
    """
    One debit or credit against one account.

    Contract:
        Exactly one of debit_amount / credit_amount is non-zero.  Base
        amounts are amount * exchange_rate, persisted at creation.
    """

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        UniqueConstraint(
            "journal_entry_id", "line_number", name="uq_journal_line_number"
        ),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    debit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    credit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        RateNumeric(), nullable=False, default=Decimal("1")
    )

    debit_amount_base: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    credit_amount_base: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )

    # Dimensions
    cost_center: Mapped[str | None] = mapped_column(String(50), nullable=True)
    project: Mapped[str | None] = mapped_column(String(50), nullable=True)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<JournalEntryLine #{self.line_number} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )
