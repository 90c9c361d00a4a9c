"""
SequenceService -- document numbers from locked counter rows.

Responsibility:
    Allocates strictly increasing values per named sequence and formats
    journal numbers (``JE-2024-000001``) and transaction numbers
    (``TXN-2024-000001``).  Counters are scoped per year so each year's
    numbering restarts at 1.

Architecture position:
    Kernel > Services.  Called by JournalService.

Invariants enforced:
    - The counter row is incremented in place with a single
      ``UPDATE ... SET current_value = current_value + 1``; the next number
      is never derived from ``max()+1`` over the documents.
    - The increment is part of the caller's transaction: a rollback
      returns the number.

Failure modes:
    - IntegrityError when two transactions create the same counter row at
      once; handled with a savepoint and a second increment.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceService(BaseService):
    """
    Contract:
        ``next_value(name)`` returns an integer > 0, greater than any value
        previously returned for ``name`` in a committed transaction.

    Non-goals:
        - Does NOT commit.
    """

    JOURNAL = "journal"
    TRANSACTION = "transaction"

    def next_value(self, sequence_name: str) -> int:
        if self._increment(sequence_name):
            return self._read(sequence_name)

        # First use of this sequence.  Another transaction may be creating
        # it too; the savepoint keeps the caller's work intact if we lose.
        savepoint = self.session.begin_nested()
        try:
            self.session.add(SequenceCounter(name=sequence_name, current_value=1))
            self.session.flush()
            savepoint.commit()
            logger.debug(
                "sequence_allocated",
                extra={"sequence_name": sequence_name, "value": 1},
            )
            return 1
        except IntegrityError:
            savepoint.rollback()
            logger.debug(
                "sequence_counter_race_retry",
                extra={"sequence_name": sequence_name},
            )
            if not self._increment(sequence_name):
                raise
            return self._read(sequence_name)

    def current_value(self, sequence_name: str) -> int | None:
        return self.session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()

    def next_document_number(self, kind: str, prefix: str, year: int) -> str:
        """``<prefix>-<year>-<6 digit sequence>``, numbered per kind and year."""
        value = self.next_value(f"{kind}:{year}")
        return f"{prefix}-{year}-{value:06d}"

    def _increment(self, sequence_name: str) -> bool:
        result = self.session.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=SequenceCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def _read(self, sequence_name: str) -> int:
        value = self.session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": value},
        )
        return value
