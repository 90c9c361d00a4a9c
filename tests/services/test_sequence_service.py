"""
SequenceService tests: gapless document numbering.
"""

from ledger_kernel.services.sequence_service import SequenceService


class TestSequenceService:

    def test_first_value_is_one(self, session):
        sequences = SequenceService(session)
        assert sequences.current_value("orders") is None
        assert sequences.next_value("orders") == 1
        assert sequences.current_value("orders") == 1

    def test_monotonic(self, session):
        sequences = SequenceService(session)
        values = [sequences.next_value("orders") for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    def test_sequences_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value("a")
        sequences.next_value("a")
        assert sequences.next_value("b") == 1

    def test_document_number_format(self, session):
        sequences = SequenceService(session)
        assert sequences.next_document_number(SequenceService.JOURNAL, "JE", 2024) == "JE-2024-000001"
        assert sequences.next_document_number(SequenceService.JOURNAL, "JE", 2024) == "JE-2024-000002"

    def test_numbering_restarts_per_year_and_kind(self, session):
        sequences = SequenceService(session)
        sequences.next_document_number(SequenceService.JOURNAL, "JE", 2024)
        assert sequences.next_document_number(SequenceService.JOURNAL, "JE", 2025) == "JE-2025-000001"
        assert (
            sequences.next_document_number(SequenceService.TRANSACTION, "TXN", 2024)
            == "TXN-2024-000001"
        )

    def test_survives_commit(self, store):
        with store.unit_of_work() as session:
            SequenceService(session).next_value("orders")
        with store.unit_of_work() as session:
            assert SequenceService(session).next_value("orders") == 2

    def test_rolled_back_value_is_reissued(self, store):
        with store.unit_of_work() as session:
            SequenceService(session).next_value("orders")
        session = store.session()
        try:
            SequenceService(session).next_value("orders")
        finally:
            session.rollback()
            session.close()
        with store.unit_of_work() as session:
            assert SequenceService(session).next_value("orders") == 2
