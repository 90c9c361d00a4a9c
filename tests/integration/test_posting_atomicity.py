"""
Posting and reversal are all-or-nothing through LedgerFacade.

A crash after the entry status and cached balances have been written
but before the ledger transactions are settled must roll every effect
back: entry status, account balances and transaction statuses.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from ledger_kernel.domain.values import EntryStatus
from ledger_kernel.models.ledger_transaction import LedgerTransaction
from ledger_kernel.services.journal_service import JournalService


class SimulatedCrash(Exception):
    """Raised from inside a service step to simulate a crash mid-operation."""


@pytest.fixture
def chart(facade, test_actor_id):
    return {view.code: view for view in facade.seed_standard_chart(test_actor_id)}


@pytest.fixture
def read_transactions(store):
    """Transaction statuses for an entry, and the total row count, read in a fresh session."""

    def _read(entry_id) -> tuple[list[str], int]:
        session = store.session()
        try:
            statuses = [
                str(status)
                for status in session.scalars(
                    select(LedgerTransaction.status)
                    .where(LedgerTransaction.reference_id == entry_id)
                    .order_by(LedgerTransaction.transaction_no)
                )
            ]
            count = session.scalar(select(func.count()).select_from(LedgerTransaction))
            return statuses, count
        finally:
            session.close()

    return _read


@pytest.fixture
def draft(facade, chart, make_draft, test_actor_id):
    return facade.create_draft_entry(
        make_draft(chart["1110"].id, chart["4110"].id, Decimal("1000.00")), test_actor_id
    )


class TestAtomicPost:

    def test_crash_while_settling_transactions_rolls_back(
        self, facade, chart, draft, test_actor_id, read_transactions, captured_logs
    ):
        with patch.object(
            JournalService, "_set_transaction_status",
            side_effect=SimulatedCrash("crash while settling transactions"),
        ):
            with pytest.raises(SimulatedCrash):
                facade.post_entry(draft.id, test_actor_id)

        assert facade.get_entry(draft.id).status == EntryStatus.DRAFT
        assert facade.get_account(chart["1110"].id).balance == Decimal("0")
        assert facade.get_account(chart["4110"].id).balance == Decimal("0")
        assert read_transactions(draft.id) == (["pending", "pending"], 2)
        assert facade.reconcile_balances().is_consistent
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_entry_posts_after_a_crashed_attempt(
        self, facade, chart, draft, test_actor_id, read_transactions
    ):
        with patch.object(
            JournalService, "_set_transaction_status",
            side_effect=SimulatedCrash("crash while settling transactions"),
        ):
            with pytest.raises(SimulatedCrash):
                facade.post_entry(draft.id, test_actor_id)

        posted = facade.post_entry(draft.id, test_actor_id)

        assert posted.entry.status == EntryStatus.POSTED
        assert facade.get_account(chart["1110"].id).balance == Decimal("1000.00")
        assert read_transactions(draft.id) == (["completed", "completed"], 2)


class TestAtomicReverse:

    def test_crash_while_recording_reversal_rolls_back(
        self, facade, chart, draft, test_actor_id, read_transactions
    ):
        facade.post_entry(draft.id, test_actor_id)

        with patch.object(
            JournalService, "_record_transactions",
            side_effect=SimulatedCrash("crash while recording reversal transactions"),
        ):
            with pytest.raises(SimulatedCrash):
                facade.reverse_entry(draft.id, "Duplicate", test_actor_id, date(2024, 1, 2))

        original = facade.get_entry(draft.id)
        assert original.status == EntryStatus.POSTED
        assert original.reversed_at is None
        assert facade.list_entries().total == 1
        assert facade.get_account(chart["1110"].id).balance == Decimal("1000.00")
        assert facade.get_account(chart["4110"].id).balance == Decimal("1000.00")
        assert read_transactions(draft.id) == (["completed", "completed"], 2)
        assert facade.reconcile_balances().is_consistent
