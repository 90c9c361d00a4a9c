"""
JournalService tests: the journal entry state machine.

Tests cover:
- Draft creation: numbering, validation, pending transactions
- Draft editing and submission
- Posting: status, balances, transactions, double-post rejection
- Reversal: mirrored entry, restored balances, guards
- Foreign-currency entries
- Listing with filters and paging
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from ledger_kernel.domain.dtos import DraftEntry, EntryFilter, JournalLineInput
from ledger_kernel.domain.values import EntrySource, EntryStatus, TransactionStatus
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AccountNotPostableError,
    EntryNotEditableError,
    EntryNotPostableError,
    EntryNotReversibleError,
    InsufficientLinesError,
    InvalidLineError,
    InvalidRateError,
    InvalidReversalDateError,
    JournalEntryNotFoundError,
    MissingReversalReasonError,
    UnbalancedEntryError,
    UnsupportedCurrencyError,
    ValidationError,
)
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.models.ledger_transaction import LedgerTransaction


def _transaction_statuses(session, entry_id) -> list[str]:
    return [
        str(status)
        for status in session.scalars(
            select(LedgerTransaction.status)
            .where(LedgerTransaction.reference_id == entry_id)
            .order_by(LedgerTransaction.transaction_no)
        )
    ]


@pytest.fixture
def cash(standard_chart):
    return standard_chart["1110"]


@pytest.fixture
def sales(standard_chart):
    return standard_chart["4100"]


@pytest.fixture
def posted_sale(journal_service, cash, sales, test_actor_id, make_draft):
    draft = journal_service.create_draft(
        make_draft(cash.id, sales.id, Decimal("1000.00")), test_actor_id
    )
    return journal_service.post(draft.id, test_actor_id).entry


class TestCreateDraft:

    def test_draft_is_numbered_and_totalled(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        view = journal_service.create_draft(
            make_draft(cash.id, sales.id, Decimal("1000.00"), reference="INV-7"),
            test_actor_id,
        )
        assert view.journal_no == "JE-2024-000001"
        assert view.status == EntryStatus.DRAFT
        assert view.source == EntrySource.MANUAL
        assert view.currency == "AED"
        assert view.exchange_rate == Decimal("1")
        assert view.total_debit == view.total_credit == Decimal("1000")
        assert view.total_debit_base == Decimal("1000")
        assert view.posting_date is None
        assert [l.account_code for l in view.lines] == ["1110", "4100"]
        assert [l.line_number for l in view.lines] == [1, 2]

    def test_numbers_increase(self, journal_service, cash, sales, test_actor_id, make_draft):
        first = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("1")), test_actor_id)
        second = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("2")), test_actor_id)
        assert first.journal_no == "JE-2024-000001"
        assert second.journal_no == "JE-2024-000002"

    def test_year_comes_from_transaction_date(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        view = journal_service.create_draft(
            make_draft(cash.id, sales.id, Decimal("1"), transaction_date=date(2025, 3, 1)),
            test_actor_id,
        )
        assert view.journal_no == "JE-2025-000001"

    def test_pending_transactions_recorded(
        self, session, journal_service, cash, sales, test_actor_id, make_draft
    ):
        view = journal_service.create_draft(
            make_draft(cash.id, sales.id, Decimal("10")), test_actor_id
        )
        assert _transaction_statuses(session, view.id) == ["pending", "pending"]
        numbers = session.scalars(
            select(LedgerTransaction.transaction_no).order_by(LedgerTransaction.transaction_no)
        ).all()
        assert numbers == ["TXN-2024-000001", "TXN-2024-000002"]

    def test_unbalanced_rejected(
        self, session, journal_service, cash, sales, test_actor_id, make_draft
    ):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            journal_service.create_draft(
                make_draft(cash.id, sales.id, Decimal("100"), credit_amount=Decimal("90")),
                test_actor_id,
            )
        assert exc_info.value.debits == Decimal("100")
        assert exc_info.value.credits == Decimal("90")
        assert session.scalars(select(JournalEntry)).all() == []

    def test_difference_inside_tolerance_accepted(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        view = journal_service.create_draft(
            make_draft(cash.id, sales.id, Decimal("10.004"), credit_amount=Decimal("10.000")),
            test_actor_id,
        )
        assert view.status == EntryStatus.DRAFT

    def test_single_line_rejected(self, journal_service, cash, test_actor_id):
        draft = DraftEntry(
            description="Lonely",
            transaction_date=date(2024, 1, 1),
            lines=[JournalLineInput(account_id=cash.id, debit=Decimal("5"))],
        )
        with pytest.raises(InsufficientLinesError):
            journal_service.create_draft(draft, test_actor_id)

    def test_line_with_both_sides_rejected(self, journal_service, cash, sales, test_actor_id):
        draft = DraftEntry(
            description="Both sides",
            transaction_date=date(2024, 1, 1),
            lines=[
                JournalLineInput(account_id=cash.id, debit=Decimal("5"), credit=Decimal("5")),
                JournalLineInput(account_id=sales.id, credit=Decimal("5")),
            ],
        )
        with pytest.raises(InvalidLineError) as exc_info:
            journal_service.create_draft(draft, test_actor_id)
        assert exc_info.value.line_number == 1

    def test_control_account_rejected(
        self, journal_service, standard_chart, sales, test_actor_id, make_draft
    ):
        with pytest.raises(AccountNotPostableError) as exc_info:
            journal_service.create_draft(
                make_draft(standard_chart["1000"].id, sales.id, Decimal("10")), test_actor_id
            )
        assert exc_info.value.account_code == "1000"

    def test_unknown_account_rejected(self, journal_service, sales, test_actor_id, make_draft):
        with pytest.raises(AccountNotFoundError):
            journal_service.create_draft(make_draft(uuid4(), sales.id, Decimal("10")), test_actor_id)

    def test_blank_description_rejected(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        with pytest.raises(ValidationError, match="Description"):
            journal_service.create_draft(
                make_draft(cash.id, sales.id, Decimal("10"), description="  "), test_actor_id
            )

    def test_base_entry_with_rate_rejected(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        with pytest.raises(InvalidRateError):
            journal_service.create_draft(
                make_draft(cash.id, sales.id, Decimal("10"), exchange_rate=Decimal("2")),
                test_actor_id,
            )

    def test_line_currency_must_match_entry(self, journal_service, cash, sales, test_actor_id):
        draft = DraftEntry(
            description="Mixed",
            transaction_date=date(2024, 1, 1),
            lines=[
                JournalLineInput(account_id=cash.id, debit=Decimal("5"), currency="USD"),
                JournalLineInput(account_id=sales.id, credit=Decimal("5")),
            ],
        )
        with pytest.raises(ValidationError, match="currency"):
            journal_service.create_draft(draft, test_actor_id)


class TestForeignCurrency:

    def test_rate_looked_up_for_transaction_date(
        self, journal_service, currency_service, balance_service,
        cash, sales, test_actor_id, make_draft,
    ):
        currency_service.upsert_rate(
            "USD", "AED", Decimal("3.6725"), test_actor_id, rate_date=date(2024, 1, 1)
        )
        view = journal_service.create_draft(
            make_draft(cash.id, sales.id, Decimal("100"), currency="USD"), test_actor_id
        )
        assert view.currency == "USD"
        assert view.exchange_rate == Decimal("3.6725")
        assert view.total_debit == Decimal("100")
        assert view.total_debit_base == Decimal("367.25")

        journal_service.post(view.id, test_actor_id)
        assert balance_service.cached_balance(cash.id) == Decimal("367.25")

    def test_explicit_rate(self, journal_service, cash, sales, test_actor_id, make_draft):
        view = journal_service.create_draft(
            make_draft(
                cash.id, sales.id, Decimal("10"),
                currency="KWD", exchange_rate=Decimal("12"),
            ),
            test_actor_id,
        )
        assert view.total_credit_base == Decimal("120")

    def test_currency_tolerance_follows_minor_units(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        # KWD has three decimals, so 0.002 is outside its tolerance
        with pytest.raises(UnbalancedEntryError):
            journal_service.create_draft(
                make_draft(
                    cash.id, sales.id, Decimal("10.002"), credit_amount=Decimal("10.000"),
                    currency="KWD", exchange_rate=Decimal("12"),
                ),
                test_actor_id,
            )

    def test_missing_rate(self, journal_service, cash, sales, test_actor_id, make_draft):
        with pytest.raises(UnsupportedCurrencyError):
            journal_service.create_draft(
                make_draft(cash.id, sales.id, Decimal("10"), currency="EUR"), test_actor_id
            )

    def test_non_positive_rate(self, journal_service, cash, sales, test_actor_id, make_draft):
        with pytest.raises(InvalidRateError):
            journal_service.create_draft(
                make_draft(
                    cash.id, sales.id, Decimal("10"), currency="USD", exchange_rate=Decimal("0")
                ),
                test_actor_id,
            )


class TestEditAndSubmit:

    def test_update_draft_replaces_lines(
        self, session, journal_service, cash, sales, standard_chart, test_actor_id, make_draft
    ):
        original = journal_service.create_draft(
            make_draft(cash.id, sales.id, Decimal("100")), test_actor_id
        )
        updated = journal_service.update_draft(
            original.id,
            make_draft(standard_chart["1120"].id, sales.id, Decimal("500"), description="Bank sale"),
            test_actor_id,
        )
        assert updated.journal_no == original.journal_no
        assert updated.description == "Bank sale"
        assert updated.total_debit == Decimal("500")
        assert [l.account_code for l in updated.lines] == ["1120", "4100"]
        assert sorted(_transaction_statuses(session, original.id)) == [
            "cancelled", "cancelled", "pending", "pending",
        ]

    def test_submit_then_edit_still_allowed(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        view = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("1")), test_actor_id)
        submitted = journal_service.submit_for_approval(view.id, test_actor_id)
        assert submitted.status == EntryStatus.PENDING_APPROVAL

        updated = journal_service.update_draft(
            view.id, make_draft(cash.id, sales.id, Decimal("2")), test_actor_id
        )
        assert updated.status == EntryStatus.PENDING_APPROVAL

    def test_submit_twice_rejected(self, journal_service, cash, sales, test_actor_id, make_draft):
        view = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("1")), test_actor_id)
        journal_service.submit_for_approval(view.id, test_actor_id)
        with pytest.raises(EntryNotEditableError) as exc_info:
            journal_service.submit_for_approval(view.id, test_actor_id)
        assert exc_info.value.current_state == "pending_approval"

    def test_posted_entry_not_editable(
        self, journal_service, posted_sale, cash, sales, test_actor_id, make_draft
    ):
        with pytest.raises(EntryNotEditableError):
            journal_service.update_draft(
                posted_sale.id, make_draft(cash.id, sales.id, Decimal("5")), test_actor_id
            )


class TestPost:

    def test_post_updates_status_and_balances(
        self, session, journal_service, balance_service, cash, sales,
        test_actor_id, make_draft, deterministic_clock,
    ):
        draft = journal_service.create_draft(
            make_draft(cash.id, sales.id, Decimal("1000.00")), test_actor_id
        )
        result = journal_service.post(draft.id, test_actor_id)

        assert result.entry.status == EntryStatus.POSTED
        assert result.entry.approved_by_id == test_actor_id
        assert result.entry.posting_date == deterministic_clock.today()
        assert result.balance_deltas == {cash.id: Decimal("1000"), sales.id: Decimal("1000")}
        assert balance_service.cached_balance(cash.id) == Decimal("1000")
        assert balance_service.cached_balance(sales.id) == Decimal("1000")
        assert _transaction_statuses(session, draft.id) == ["completed", "completed"]

    def test_post_from_pending_approval(
        self, journal_service, cash, sales, test_actor_id, make_draft
    ):
        view = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("1")), test_actor_id)
        journal_service.submit_for_approval(view.id, test_actor_id)
        assert journal_service.post(view.id, test_actor_id).entry.status == EntryStatus.POSTED

    def test_double_post_rejected(
        self, journal_service, balance_service, posted_sale, cash, test_actor_id
    ):
        with pytest.raises(EntryNotPostableError) as exc_info:
            journal_service.post(posted_sale.id, test_actor_id)
        assert exc_info.value.current_state == "posted"
        assert balance_service.cached_balance(cash.id) == Decimal("1000")

    def test_post_rechecks_accounts(
        self, journal_service, account_service, cash, sales, test_actor_id, make_draft
    ):
        from ledger_kernel.domain.dtos import AccountPatch

        view = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("1")), test_actor_id)
        account_service.update_account(cash.id, AccountPatch(is_active=False), test_actor_id)
        with pytest.raises(AccountNotPostableError, match="inactive"):
            journal_service.post(view.id, test_actor_id)
        assert journal_service.get_entry(view.id).status == EntryStatus.DRAFT

    def test_post_unknown_entry(self, journal_service, test_actor_id):
        with pytest.raises(JournalEntryNotFoundError):
            journal_service.post(uuid4(), test_actor_id)

    def test_post_logged(
        self, journal_service, cash, sales, test_actor_id, make_draft, captured_logs
    ):
        view = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("1")), test_actor_id)
        journal_service.post(view.id, test_actor_id)
        posted = [r for r in captured_logs() if r["message"] == "journal_entry_posted"]
        assert len(posted) == 1
        assert posted[0]["journal_no"] == "JE-2024-000001"
        assert posted[0]["transactions_completed"] == 2


class TestReverse:

    def test_reversal_mirrors_original(
        self, session, journal_service, balance_service, posted_sale, cash, sales, test_actor_id
    ):
        result = journal_service.reverse(posted_sale.id, test_actor_id, "correction")

        original, reversal = result.original, result.reversal
        assert original.status == EntryStatus.REVERSED
        assert original.reversal_reason == "correction"
        assert original.reversed_by_id == test_actor_id

        assert reversal.journal_no == "REV-JE-2024-000001"
        assert reversal.status == EntryStatus.POSTED
        assert reversal.source == EntrySource.REVERSAL
        assert reversal.reversal_of_id == original.id
        assert reversal.reference == "Reversal of JE-2024-000001"
        assert reversal.description == "REVERSAL: Cash sale - correction"
        assert reversal.total_debit == original.total_credit
        for before, after in zip(original.lines, reversal.lines):
            assert after.account_id == before.account_id
            assert after.debit_amount == before.credit_amount
            assert after.credit_amount == before.debit_amount

        assert balance_service.cached_balance(cash.id) == Decimal("0")
        assert balance_service.cached_balance(sales.id) == Decimal("0")
        assert result.balance_deltas == {cash.id: Decimal("-1000"), sales.id: Decimal("-1000")}

        assert _transaction_statuses(session, original.id) == ["cancelled", "cancelled"]
        assert _transaction_statuses(session, reversal.id) == ["completed", "completed"]

    def test_blank_reason(self, journal_service, posted_sale, test_actor_id):
        with pytest.raises(MissingReversalReasonError):
            journal_service.reverse(posted_sale.id, test_actor_id, "   ")

    def test_draft_not_reversible(self, journal_service, cash, sales, test_actor_id, make_draft):
        view = journal_service.create_draft(make_draft(cash.id, sales.id, Decimal("1")), test_actor_id)
        with pytest.raises(EntryNotReversibleError) as exc_info:
            journal_service.reverse(view.id, test_actor_id, "oops")
        assert exc_info.value.current_state == "draft"

    def test_reverse_twice_rejected(self, journal_service, posted_sale, test_actor_id):
        journal_service.reverse(posted_sale.id, test_actor_id, "correction")
        with pytest.raises(EntryNotReversibleError) as exc_info:
            journal_service.reverse(posted_sale.id, test_actor_id, "again")
        assert exc_info.value.current_state == "reversed"

    def test_reversal_entry_not_reversible(self, journal_service, posted_sale, test_actor_id):
        reversal = journal_service.reverse(posted_sale.id, test_actor_id, "correction").reversal
        with pytest.raises(EntryNotReversibleError, match="itself a reversal"):
            journal_service.reverse(reversal.id, test_actor_id, "undo the undo")

    def test_reversal_before_original_date(self, journal_service, posted_sale, test_actor_id):
        with pytest.raises(InvalidReversalDateError):
            journal_service.reverse(
                posted_sale.id, test_actor_id, "correction", reversal_date=date(2023, 12, 31)
            )

    def test_explicit_reversal_date(self, journal_service, posted_sale, test_actor_id):
        result = journal_service.reverse(
            posted_sale.id, test_actor_id, "correction", reversal_date=date(2024, 2, 1)
        )
        assert result.reversal.transaction_date == date(2024, 2, 1)


class TestListEntries:

    @pytest.fixture
    def entries(self, journal_service, cash, sales, test_actor_id, make_draft):
        views = []
        for day, description in [(1, "Cash sale"), (5, "Oud order"), (9, "Perfume order")]:
            views.append(
                journal_service.create_draft(
                    make_draft(
                        cash.id, sales.id, Decimal(day),
                        transaction_date=date(2024, 1, day), description=description,
                    ),
                    test_actor_id,
                )
            )
        journal_service.post(views[0].id, test_actor_id)
        return views

    def test_newest_first(self, journal_service, entries):
        page = journal_service.list_entries()
        assert page.total == 3
        assert [e.transaction_date.day for e in page.entries] == [9, 5, 1]

    def test_status_filter(self, journal_service, entries):
        page = journal_service.list_entries(EntryFilter(status=EntryStatus.POSTED))
        assert [e.id for e in page.entries] == [entries[0].id]

    def test_date_range(self, journal_service, entries):
        page = journal_service.list_entries(
            EntryFilter(date_from=date(2024, 1, 2), date_to=date(2024, 1, 8))
        )
        assert [e.description for e in page.entries] == ["Oud order"]

    def test_search_is_case_insensitive(self, journal_service, entries):
        page = journal_service.list_entries(EntryFilter(search="ORDER"))
        assert page.total == 2

    def test_paging(self, journal_service, entries):
        page = journal_service.list_entries(EntryFilter(page=2, page_size=2))
        assert page.total == 3
        assert page.pages == 2
        assert len(page.entries) == 1

    def test_get_unknown_entry(self, journal_service):
        with pytest.raises(JournalEntryNotFoundError):
            journal_service.get_entry(uuid4())
