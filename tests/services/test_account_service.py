"""
AccountService tests: the chart of accounts registry.

Tests cover:
- Creation rules: unique code, parent type equality, depth limit, control
  accounts never accepting postings
- Standard chart seeding
- Hierarchy queries and levels
- Edits: renames, deactivation, cycle and type guards, fields frozen once
  postings exist
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import AccountPatch, AccountSpec
from ledger_kernel.domain.values import AccountType
from ledger_kernel.exceptions import (
    AccountChangeBlockedError,
    AccountHierarchyError,
    AccountNotFoundError,
    ChartAlreadySeededError,
    DuplicateAccountCodeError,
    InvalidCurrencyError,
    ValidationError,
)


def _spec(code: str, account_type=AccountType.ASSET, **kwargs) -> AccountSpec:
    return AccountSpec(code=code, name=f"Account {code}", account_type=account_type, **kwargs)


class TestCreateAccount:

    def test_root_account_defaults(self, account_service, test_actor_id):
        view = account_service.create_account(_spec("1000"), test_actor_id)
        assert view.code == "1000"
        assert view.currency == "AED"
        assert view.allow_posting is True
        assert view.is_control_account is False
        assert view.is_active is True
        assert view.balance == Decimal("0")
        assert account_service.get_level(view.id) == 1

    def test_control_account_never_allows_posting(self, account_service, test_actor_id):
        view = account_service.create_account(
            _spec("1000", is_control_account=True), test_actor_id
        )
        assert view.allow_posting is False

    def test_control_account_with_posting_rejected(self, account_service, test_actor_id):
        with pytest.raises(ValidationError, match="cannot allow posting"):
            account_service.create_account(
                _spec("1000", is_control_account=True, allow_posting=True), test_actor_id
            )

    def test_duplicate_code(self, account_service, test_actor_id):
        account_service.create_account(_spec("1000"), test_actor_id)
        with pytest.raises(DuplicateAccountCodeError) as exc_info:
            account_service.create_account(_spec("1000"), test_actor_id)
        assert exc_info.value.account_code == "1000"

    def test_unknown_parent(self, account_service, test_actor_id):
        with pytest.raises(AccountNotFoundError):
            account_service.create_account(_spec("1100", parent_id=uuid4()), test_actor_id)

    def test_parent_type_must_match(self, account_service, test_actor_id):
        parent = account_service.create_account(_spec("1000"), test_actor_id)
        with pytest.raises(AccountHierarchyError, match="differs from parent"):
            account_service.create_account(
                _spec("2100", AccountType.LIABILITY, parent_id=parent.id), test_actor_id
            )

    def test_depth_limit(self, account_service, test_actor_id, ledger_config):
        parent_id = None
        for depth in range(1, ledger_config.max_account_depth + 1):
            view = account_service.create_account(
                _spec(f"90{depth}", parent_id=parent_id), test_actor_id
            )
            parent_id = view.id
        assert account_service.get_level(parent_id) == ledger_config.max_account_depth

        with pytest.raises(AccountHierarchyError, match="exceeds maximum"):
            account_service.create_account(_spec("999", parent_id=parent_id), test_actor_id)

    def test_unsupported_currency(self, account_service, test_actor_id):
        with pytest.raises(InvalidCurrencyError):
            account_service.create_account(_spec("1000", currency="XYZ"), test_actor_id)

    @pytest.mark.parametrize("code", ["", "   ", "X" * 21])
    def test_bad_code(self, account_service, test_actor_id, code):
        with pytest.raises(ValidationError):
            account_service.create_account(_spec(code), test_actor_id)

    def test_blank_name(self, account_service, test_actor_id):
        with pytest.raises(ValidationError, match="name"):
            account_service.create_account(
                AccountSpec(code="1000", name=" ", account_type=AccountType.ASSET),
                test_actor_id,
            )

    def test_creation_logged(self, account_service, test_actor_id, captured_logs):
        view = account_service.create_account(_spec("1000"), test_actor_id)
        created = [r for r in captured_logs() if r["message"] == "account_created"]
        assert created[0]["account_id"] == str(view.id)
        assert created[0]["level"] == 1


class TestSeedStandardChart:

    def test_seeds_bilingual_chart(self, standard_chart):
        assert len(standard_chart) == 39
        cash = standard_chart["1110"]
        assert cash.name == "Cash in Hand"
        assert cash.name_ar == "النقد في الصندوق"
        assert cash.allow_posting

    def test_group_accounts_are_control_accounts(self, standard_chart):
        for code in ("1000", "1100", "2000", "3000", "4000", "5000", "6000"):
            assert standard_chart[code].is_control_account
            assert not standard_chart[code].allow_posting

    def test_parent_links(self, standard_chart):
        assert standard_chart["1110"].parent_id == standard_chart["1100"].id
        assert standard_chart["6300"].parent_id == standard_chart["6200"].id

    def test_levels(self, account_service, standard_chart):
        assert account_service.get_level(standard_chart["1000"].id) == 1
        assert account_service.get_level(standard_chart["1100"].id) == 2
        assert account_service.get_level(standard_chart["4110"].id) == 3

    def test_second_seed_rejected(self, account_service, standard_chart, test_actor_id):
        with pytest.raises(ChartAlreadySeededError) as exc_info:
            account_service.seed_standard_chart(test_actor_id)
        assert exc_info.value.account_count == 39


class TestHierarchy:

    def test_roots_in_code_order(self, account_service, standard_chart):
        roots = account_service.get_hierarchy()
        assert [n.account.code for n in roots] == [
            "1000", "2000", "3000", "4000", "5000", "6000",
        ]

    def test_filter_by_type(self, account_service, standard_chart):
        roots = account_service.get_hierarchy(account_type=AccountType.REVENUE)
        assert len(roots) == 1
        codes = [node.account.code for node in roots[0].walk()]
        assert codes == ["4000", "4100", "4110", "4120", "4200"]

    def test_subtree_of_parent(self, account_service, standard_chart):
        nodes = account_service.get_hierarchy(parent_id=standard_chart["1200"].id)
        assert [n.account.code for n in nodes] == ["1210", "1220"]
        assert all(n.level == 3 for n in nodes)

    def test_max_depth(self, account_service, standard_chart):
        roots = account_service.get_hierarchy(max_depth=1)
        assert all(node.children == () for node in roots)

    def test_inactive_hidden_by_default(self, account_service, standard_chart, test_actor_id):
        account_service.update_account(
            standard_chart["1170"].id, AccountPatch(is_active=False), test_actor_id
        )
        current = account_service.get_hierarchy(parent_id=standard_chart["1100"].id)
        assert "1170" not in [n.account.code for n in current]
        everything = account_service.get_hierarchy(
            parent_id=standard_chart["1100"].id, include_inactive=True
        )
        assert "1170" in [n.account.code for n in everything]

    def test_unknown_parent(self, account_service, standard_chart):
        with pytest.raises(AccountNotFoundError):
            account_service.get_hierarchy(parent_id=uuid4())


class TestUpdateAccount:

    def test_rename(self, account_service, standard_chart, test_actor_id, captured_logs):
        view = account_service.update_account(
            standard_chart["1110"].id,
            AccountPatch(name="Petty Cash", name_ar="النثرية"),
            test_actor_id,
        )
        assert view.name == "Petty Cash"
        assert view.name_ar == "النثرية"
        updated = [r for r in captured_logs() if r["message"] == "account_updated"]
        assert updated[0]["changed_fields"] == ["name", "name_ar"]

    def test_no_changes_is_noop(self, account_service, standard_chart, test_actor_id):
        view = account_service.update_account(
            standard_chart["1110"].id, AccountPatch(), test_actor_id
        )
        assert view == account_service.get_account(standard_chart["1110"].id)

    def test_code_collision(self, account_service, standard_chart, test_actor_id):
        with pytest.raises(DuplicateAccountCodeError):
            account_service.update_account(
                standard_chart["1110"].id, AccountPatch(code="1120"), test_actor_id
            )

    def test_making_control_disables_posting(
        self, account_service, standard_chart, test_actor_id
    ):
        view = account_service.update_account(
            standard_chart["4100"].id, AccountPatch(is_control_account=True), test_actor_id
        )
        assert view.is_control_account
        assert not view.allow_posting

    def test_cycle_rejected(self, account_service, standard_chart, test_actor_id):
        with pytest.raises(AccountHierarchyError, match="cycle"):
            account_service.update_account(
                standard_chart["1100"].id,
                AccountPatch(parent_id=standard_chart["1110"].id),
                test_actor_id,
            )

    def test_type_change_must_match_parent(
        self, account_service, standard_chart, test_actor_id
    ):
        with pytest.raises(AccountHierarchyError):
            account_service.update_account(
                standard_chart["4200"].id,
                AccountPatch(account_type=AccountType.EXPENSE),
                test_actor_id,
            )

    def test_move_to_root(self, account_service, standard_chart, test_actor_id):
        view = account_service.update_account(
            standard_chart["4200"].id, AccountPatch(parent_id=None), test_actor_id
        )
        assert view.parent_id is None
        assert account_service.get_level(view.id) == 1

    def test_type_frozen_after_posting(
        self, account_service, journal_service, standard_chart, test_actor_id, make_draft
    ):
        draft = journal_service.create_draft(
            make_draft(standard_chart["1110"].id, standard_chart["4200"].id, Decimal("50")),
            test_actor_id,
        )
        journal_service.post(draft.id, test_actor_id)

        with pytest.raises(AccountChangeBlockedError) as exc_info:
            account_service.update_account(
                standard_chart["4200"].id,
                AccountPatch(account_type=AccountType.EXPENSE),
                test_actor_id,
            )
        assert exc_info.value.field == "account_type"

        with pytest.raises(AccountChangeBlockedError):
            account_service.update_account(
                standard_chart["1110"].id, AccountPatch(currency="USD"), test_actor_id
            )

    def test_currency_change_allowed_without_history(
        self, account_service, standard_chart, test_actor_id
    ):
        view = account_service.update_account(
            standard_chart["1120"].id, AccountPatch(currency="usd"), test_actor_id
        )
        assert view.currency == "USD"

    def test_unknown_account(self, account_service, test_actor_id):
        with pytest.raises(AccountNotFoundError):
            account_service.update_account(uuid4(), AccountPatch(name="x"), test_actor_id)
