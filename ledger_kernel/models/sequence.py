"""
Module: ledger_kernel.models.sequence
Responsibility: Named counter rows backing journal and transaction numbers.
Architecture position: Kernel > Models.  Used only by SequenceService.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence ("journal:2024", "transaction:2024") with
    its last issued value.  Allocation increments the row in place, so
    concurrent callers serialize on it.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
