"""
Module: ledger_kernel.models.ledger_transaction
Responsibility: External transaction records tied to journal entry lines.
    Other modules (payments, bank, sales) follow these rows; the journal
    engine moves their status alongside the entry that owns them.
Architecture position: Kernel > Models.

Lifecycle:
    PENDING on draft creation, COMPLETED when the entry posts (or for a
    reversal entry, immediately), CANCELLED when the owning entry is reversed.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import LineSide, TransactionStatus

REFERENCE_JOURNAL_ENTRY = "journal_entry"


class LedgerTransaction(TrackedBase):
    """One money movement against one account, traced back to its entry."""

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        UniqueConstraint("transaction_no", name="uq_transaction_no"),
        Index("idx_transaction_reference", "reference_type", "reference_id"),
        Index("idx_transaction_account", "account_id"),
    )

    transaction_no: Mapped[str] = mapped_column(String(50), nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=False
    )

    side: Mapped[LineSide] = mapped_column(String(10), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    reference_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=REFERENCE_JOURNAL_ENTRY
    )
    reference_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.PENDING.value
    )

    def __repr__(self) -> str:
        return f"<LedgerTransaction {self.transaction_no} {self.side} {self.amount} [{self.status}]>"
