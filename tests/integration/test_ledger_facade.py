"""
End-to-end scenario through LedgerFacade: every call runs in its own
committed unit of work on the in-memory store.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import AccountPatch, EntryFilter
from ledger_kernel.domain.values import AccountType, EntryStatus
from ledger_kernel.exceptions import (
    EntryNotPostableError,
    UnbalancedEntryError,
    UnsupportedCurrencyError,
)


@pytest.fixture
def chart(store, facade, test_actor_id):
    return {view.code: view for view in facade.seed_standard_chart(test_actor_id)}


class TestChartThroughFacade:

    def test_seed_and_lookup(self, facade, chart):
        assert len(chart) == 39
        cash = facade.get_account_by_code("1110")
        assert cash.name == "Cash in Hand"
        assert facade.get_account(cash.id) == cash
        assert facade.get_level(cash.id) == 3

    def test_revenue_hierarchy(self, facade, chart):
        roots = facade.get_hierarchy(AccountType.REVENUE)
        assert [node.account.code for node in roots] == ["4000"]
        assert [child.account.code for child in roots[0].children] == ["4100", "4200"]

    def test_update_is_committed(self, facade, chart, test_actor_id):
        facade.update_account(chart["1120"].id, AccountPatch(name="Main Bank"), test_actor_id)
        assert facade.get_account_by_code("1120").name == "Main Bank"


class TestEntryLifecycle:

    def test_draft_post_reverse(self, facade, chart, make_draft, test_actor_id):
        cash, sales = chart["1110"], chart["4110"]
        draft = facade.create_draft_entry(
            make_draft(cash.id, sales.id, Decimal("1000.00")), test_actor_id
        )
        assert draft.status == EntryStatus.DRAFT
        assert draft.journal_no == "JE-2024-000001"

        submitted = facade.submit_entry(draft.id, test_actor_id)
        assert submitted.status == EntryStatus.PENDING_APPROVAL

        posted = facade.post_entry(draft.id, test_actor_id)
        assert posted.entry.status == EntryStatus.POSTED
        assert facade.get_account(cash.id).balance == Decimal("1000.00")
        assert facade.balance_as_of(sales.id) == Decimal("1000.00")

        reversal = facade.reverse_entry(draft.id, "Duplicate", test_actor_id)
        assert reversal.original.status == EntryStatus.REVERSED
        assert reversal.reversal.journal_no == "REV-JE-2024-000001"
        assert reversal.reversal.reversal_of_id == draft.id
        assert facade.get_account(cash.id).balance == Decimal("0")
        assert facade.get_account(sales.id).balance == Decimal("0")
        assert facade.reconcile_balances().is_consistent

    def test_business_failure_is_not_retried(
        self, facade, chart, make_draft, test_actor_id, captured_logs
    ):
        draft = facade.create_draft_entry(
            make_draft(chart["1110"].id, chart["4110"].id, Decimal("50.00")), test_actor_id
        )
        facade.post_entry(draft.id, test_actor_id)

        with pytest.raises(EntryNotPostableError):
            facade.post_entry(draft.id, test_actor_id)

        messages = [r["message"] for r in captured_logs()]
        assert "transient_conflict_retry" not in messages
        assert facade.get_account(chart["1110"].id).balance == Decimal("50.00")

    def test_failed_draft_leaves_nothing_behind(self, facade, chart, make_draft, test_actor_id):
        with pytest.raises(UnbalancedEntryError):
            facade.create_draft_entry(
                make_draft(
                    chart["1110"].id,
                    chart["4110"].id,
                    Decimal("100.00"),
                    credit_amount=Decimal("90.00"),
                ),
                test_actor_id,
            )
        assert facade.list_entries().total == 0

        # The sequence was rolled back with the entry
        entry = facade.create_draft_entry(
            make_draft(chart["1110"].id, chart["4110"].id, Decimal("100.00")), test_actor_id
        )
        assert entry.journal_no == "JE-2024-000001"

    def test_operation_is_bound_to_log_context(
        self, facade, chart, make_draft, test_actor_id, captured_logs
    ):
        draft = facade.create_draft_entry(
            make_draft(chart["1110"].id, chart["4110"].id, Decimal("10.00")), test_actor_id
        )
        facade.post_entry(draft.id, test_actor_id)

        posted = [r for r in captured_logs() if r["message"] == "journal_entry_posted"]
        assert len(posted) == 1
        assert posted[0]["operation"] == "post_entry"
        assert posted[0]["actor_id"] == str(test_actor_id)
        assert posted[0]["entry_id"] == str(draft.id)

    def test_list_entries_filters(self, facade, chart, make_draft, test_actor_id):
        for amount in ("10.00", "20.00"):
            facade.create_draft_entry(
                make_draft(chart["1110"].id, chart["4110"].id, Decimal(amount)), test_actor_id
            )
        page = facade.list_entries(EntryFilter(status=EntryStatus.DRAFT, page_size=1))
        assert page.total == 2
        assert page.pages == 2
        assert len(page.entries) == 1


class TestStatementsThroughFacade:

    @pytest.fixture
    def trading(self, facade, chart, make_draft, test_actor_id):
        def post(debit: str, credit: str, amount: str) -> None:
            entry = facade.create_draft_entry(
                make_draft(
                    chart[debit].id,
                    chart[credit].id,
                    Decimal(amount),
                    transaction_date=date(2024, 1, 15),
                ),
                test_actor_id,
            )
            facade.post_entry(entry.id, test_actor_id)

        post("1110", "4110", "1000.00")
        post("5100", "1110", "400.00")

    def test_trial_balance(self, facade, trading):
        report = facade.get_trial_balance(date(2024, 1, 31))
        assert report.is_balanced
        assert report.total_debits == Decimal("1000.00")
        assert report.metadata.currency == "AED"

    def test_balance_sheet(self, facade, trading):
        report = facade.get_balance_sheet(date(2024, 1, 31))
        assert report.is_balanced
        assert report.total_assets.amount == Decimal("600.00")
        assert report.retained_earnings == Decimal("600.00")

    def test_profit_and_loss(self, facade, trading):
        report = facade.get_profit_and_loss(
            date(2024, 1, 1),
            date(2024, 1, 31),
            comparison_range=(date(2023, 12, 1), date(2023, 12, 31)),
        )
        assert report.gross_profit.amount == Decimal("600.00")
        assert report.gross_margin == Decimal("60.00")
        assert report.gross_profit.comparison_amount == Decimal("0")

    def test_cash_flow(self, facade, trading):
        report = facade.get_cash_flow(date(2024, 1, 1), date(2024, 1, 31), method="direct")
        assert report.net_income == Decimal("600.00")
        assert report.net_cash_flow.amount == Decimal("600.00")
        assert report.closing_cash == Decimal("600.00")
        assert report.is_reconciled


class TestRatesThroughFacade:

    def test_upsert_convert_and_quote(self, facade, test_actor_id):
        stored = facade.upsert_rate("usd", "aed", Decimal("3.6725"), test_actor_id)
        assert stored.rate_date == date(2024, 1, 1)

        assert facade.convert(Decimal("100"), "USD", "AED") == Decimal("367.25")
        assert facade.rate_with_margin("USD", "AED") == Decimal("3.59905")
        assert facade.rate_with_margin("USD", "AED", Decimal("0")) == Decimal("3.6725")

        snapshot = facade.get_rates()
        assert snapshot.base_currency == "AED"
        assert snapshot.rate("USD") is not None

    def test_missing_rate(self, facade):
        with pytest.raises(UnsupportedCurrencyError):
            facade.convert(Decimal("1"), "USD", "AED")
