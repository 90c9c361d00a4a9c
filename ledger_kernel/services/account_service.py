"""
AccountService -- the chart of accounts registry.

Responsibility:
    Creates and edits accounts while keeping the hierarchy well formed:
    unique codes, parent and child of the same type, no cycles, bounded
    depth, and control accounts that never accept postings.  Serves the
    account tree for admin screens and report indentation.

Architecture position:
    Kernel > Services.  Reads posted history through LedgerSelector only to
    decide whether an account's type or currency is frozen.

Invariants enforced:
    - code unique across the chart.
    - child.account_type == parent.account_type.
    - is_control_account implies allow_posting is False.
    - depth <= max_account_depth; parent links never form a cycle.
    - account_type and currency never change once lines have posted.
    - balance is never written here (BalanceService owns it).

Failure modes:
    - DuplicateAccountCodeError, AccountHierarchyError, InvalidCurrencyError,
      ValidationError on bad input.
    - AccountNotFoundError for unknown account or parent.
    - AccountChangeBlockedError for type/currency edits on accounts with
      history.
    - ChartAlreadySeededError when seeding a non-empty chart.
    - HierarchyCycleError if stored parent links are found to loop.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.dtos import UNSET, AccountNode, AccountPatch, AccountSpec, AccountView
from ledger_kernel.domain.standard_chart import STANDARD_CHART
from ledger_kernel.domain.values import AccountType
from ledger_kernel.exceptions import (
    AccountChangeBlockedError,
    AccountHierarchyError,
    AccountNotFoundError,
    ChartAlreadySeededError,
    DuplicateAccountCodeError,
    HierarchyCycleError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account")

MAX_CODE_LENGTH = 20


class AccountService(BaseService):
    """
    Chart of accounts registry.

    Contract:
        Every mutation is validated in full before anything is flushed.
        Returned values are AccountView DTOs.

    Non-goals:
        - Does NOT delete accounts; deactivate with AccountPatch(is_active=False).
        - Does NOT touch balances.
    """

    def __init__(
        self,
        session,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._config = config or LedgerConfig()
        self._clock = clock or SystemClock()
        self._currencies = CurrencyRegistry.from_config(self._config)
        self._accounts = AccountSelector(session)
        self._ledger = LedgerSelector(session, self._config.base_currency)

    # =========================================================================
    # Commands
    # =========================================================================

    def create_account(self, spec: AccountSpec, actor_id: UUID) -> AccountView:
        """
        Add an account to the chart.

        Raises:
            ValidationError: bad code/name, control account allowing posting,
                depth over the limit.
            DuplicateAccountCodeError: code already used.
            AccountNotFoundError: parent does not exist.
            AccountHierarchyError: parent has a different type.
        """
        code = self._validate_code(spec.code)
        name = self._validate_name(spec.name)
        account_type = AccountType(spec.account_type)
        currency = self._currencies.validate(spec.currency or self._config.base_currency)
        allow_posting = self._resolve_allow_posting(
            code, spec.is_control_account, spec.allow_posting
        )

        if self._find_by_code(code) is not None:
            raise DuplicateAccountCodeError(code)

        level = 1
        if spec.parent_id is not None:
            parent = self._load(spec.parent_id)
            self._check_parent_type(code, account_type, parent)
            level = self.get_level(parent.id) + 1
            self._check_depth(code, level)

        account = Account(
            code=code,
            name=name,
            name_ar=spec.name_ar,
            description=spec.description,
            account_type=account_type.value,
            parent_id=spec.parent_id,
            is_control_account=spec.is_control_account,
            allow_posting=allow_posting,
            is_active=True,
            currency=currency,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "account_type": account_type.value,
                "level": level,
            },
        )
        return AccountView.from_model(account)

    def update_account(
        self,
        account_id: UUID,
        patch: AccountPatch,
        actor_id: UUID,
    ) -> AccountView:
        """
        Apply an edit to an existing account.

        Raises:
            AccountChangeBlockedError: type or currency change on an account
                with posted lines.
            AccountHierarchyError: the edit would break type equality with
                the parent or children, or create a cycle.
            DuplicateAccountCodeError / ValidationError: as for create.
        """
        account = self._load(account_id, for_update=True)
        changes: dict[str, object] = {}

        if patch.code is not None and patch.code != account.code:
            code = self._validate_code(patch.code)
            if self._find_by_code(code) is not None:
                raise DuplicateAccountCodeError(code)
            changes["code"] = code

        if patch.name is not None:
            changes["name"] = self._validate_name(patch.name)
        if patch.name_ar is not None:
            changes["name_ar"] = patch.name_ar
        if patch.description is not None:
            changes["description"] = patch.description

        new_type = AccountType(account.account_type)
        if patch.account_type is not None and AccountType(patch.account_type) != new_type:
            new_type = AccountType(patch.account_type)
            if self._ledger.has_posted_lines(account.id):
                raise AccountChangeBlockedError(
                    account.code, "account_type", str(account.account_type)
                )
            changes["account_type"] = new_type.value

        if patch.currency is not None and patch.currency.upper() != account.currency:
            currency = self._currencies.validate(patch.currency)
            if self._ledger.has_posted_lines(account.id):
                raise AccountChangeBlockedError(account.code, "currency", account.currency)
            changes["currency"] = currency

        new_parent_id = account.parent_id
        if patch.parent_id is not UNSET and patch.parent_id != account.parent_id:
            new_parent_id = patch.parent_id
            changes["parent_id"] = new_parent_id

        # Hierarchy checks run against the post-edit type and parent
        if "account_type" in changes or "parent_id" in changes:
            self._check_hierarchy_move(account, new_type, new_parent_id)

        is_control = (
            patch.is_control_account
            if patch.is_control_account is not None
            else account.is_control_account
        )
        if patch.allow_posting is not None:
            allow_posting = patch.allow_posting
        elif patch.is_control_account is not None:
            allow_posting = not is_control
        else:
            allow_posting = account.allow_posting
        allow_posting = self._resolve_allow_posting(account.code, is_control, allow_posting)
        if is_control != account.is_control_account:
            changes["is_control_account"] = is_control
        if allow_posting != account.allow_posting:
            changes["allow_posting"] = allow_posting

        if patch.is_active is not None and patch.is_active != account.is_active:
            changes["is_active"] = patch.is_active

        if not changes:
            return AccountView.from_model(account)

        for field_name, value in changes.items():
            setattr(account, field_name, value)
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_updated",
            extra={
                "account_id": str(account.id),
                "account_code": account.code,
                "changed_fields": sorted(changes),
            },
        )
        return AccountView.from_model(account)

    def seed_standard_chart(self, actor_id: UUID) -> list[AccountView]:
        """
        Install the standard bilingual chart into an empty registry.

        Raises:
            ChartAlreadySeededError: any account already exists.
        """
        existing = self._accounts.count()
        if existing:
            raise ChartAlreadySeededError(existing)

        ids_by_code: dict[str, UUID] = {}
        created: list[AccountView] = []
        for item in STANDARD_CHART:
            view = self.create_account(
                AccountSpec(
                    code=item.code,
                    name=item.name,
                    name_ar=item.name_ar,
                    account_type=item.account_type,
                    parent_id=ids_by_code[item.parent_code] if item.parent_code else None,
                    is_control_account=item.is_control_account,
                ),
                actor_id,
            )
            ids_by_code[item.code] = view.id
            created.append(view)

        logger.info(
            "standard_chart_seeded",
            extra={"account_count": len(created), "currency": self._config.base_currency},
        )
        return created

    # =========================================================================
    # Queries
    # =========================================================================

    def get_account(self, account_id: UUID) -> AccountView:
        return AccountView.from_model(self._load(account_id))

    def get_account_by_code(self, code: str) -> AccountView:
        account = self._find_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return AccountView.from_model(account)

    def get_level(self, account_id: UUID) -> int:
        """
        Depth of an account in the tree; roots are level 1.

        Raises:
            AccountNotFoundError: unknown account.
            HierarchyCycleError: stored parent links loop.
        """
        parents = dict(
            self.session.execute(select(Account.id, Account.parent_id)).all()
        )
        if account_id not in parents:
            raise AccountNotFoundError(str(account_id))
        return _level_in(parents, account_id)

    def get_hierarchy(
        self,
        account_type: AccountType | None = None,
        parent_id: UUID | None = None,
        include_inactive: bool = False,
        max_depth: int | None = None,
    ) -> tuple[AccountNode, ...]:
        """
        The account tree below ``parent_id`` (top level when None).

        Args:
            account_type: Restrict to one type.
            parent_id: Return the children of this account as roots.
            include_inactive: Include deactivated accounts.
            max_depth: Levels to return, counting the roots as one;
                defaults to config.hierarchy_depth.

        Returns:
            Root nodes ordered by code, each with nested children.
        """
        depth = max_depth or self._config.hierarchy_depth
        views = self._accounts.list_accounts(
            include_inactive=include_inactive, account_type=account_type
        )
        parents = dict(self.session.execute(select(Account.id, Account.parent_id)).all())
        children: dict[UUID | None, list[AccountView]] = {}
        for view in views:
            children.setdefault(view.parent_id, []).append(view)

        if parent_id is not None and parent_id not in parents:
            raise AccountNotFoundError(str(parent_id))
        root_level = 1 if parent_id is None else _level_in(parents, parent_id) + 1

        def build(view: AccountView, level: int) -> AccountNode:
            kids: tuple[AccountNode, ...] = ()
            if level - root_level + 1 < depth:
                kids = tuple(
                    build(child, level + 1) for child in children.get(view.id, [])
                )
            return AccountNode(account=view, level=level, children=kids)

        return tuple(build(view, root_level) for view in children.get(parent_id, []))

    # =========================================================================
    # Internal
    # =========================================================================

    def _load(self, account_id: UUID, for_update: bool = False) -> Account:
        query = select(Account).where(Account.id == account_id)
        if for_update:
            query = query.with_for_update()
        account = self.session.execute(query).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def _find_by_code(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()

    @staticmethod
    def _validate_code(code: str) -> str:
        code = (code or "").strip()
        if not code or len(code) > MAX_CODE_LENGTH:
            raise ValidationError(
                f"Account code must be 1-{MAX_CODE_LENGTH} characters, got {code!r}",
                field="code",
            )
        return code

    @staticmethod
    def _validate_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required", field="name")
        return name

    @staticmethod
    def _resolve_allow_posting(
        code: str, is_control_account: bool, allow_posting: bool | None
    ) -> bool:
        if allow_posting is None:
            return not is_control_account
        if is_control_account and allow_posting:
            raise ValidationError(
                f"Control account {code} cannot allow posting", field="allow_posting"
            )
        return allow_posting

    def _check_depth(self, code: str, level: int) -> None:
        if level > self._config.max_account_depth:
            raise AccountHierarchyError(
                code,
                f"depth {level} exceeds maximum of {self._config.max_account_depth}",
            )

    @staticmethod
    def _check_parent_type(code: str, account_type: AccountType, parent: Account) -> None:
        if AccountType(parent.account_type) != account_type:
            raise AccountHierarchyError(
                code,
                f"type {account_type.value} differs from parent "
                f"{parent.code} type {parent.account_type}",
            )

    def _check_hierarchy_move(
        self,
        account: Account,
        new_type: AccountType,
        new_parent_id: UUID | None,
    ) -> None:
        rows = self.session.execute(
            select(Account.id, Account.parent_id, Account.account_type)
        ).all()
        parents = {row[0]: row[1] for row in rows}
        types = {row[0]: AccountType(row[2]) for row in rows}
        child_ids = [aid for aid, pid in parents.items() if pid == account.id]

        for child_id in child_ids:
            if types[child_id] != new_type:
                raise AccountHierarchyError(
                    account.code, f"children have type {types[child_id].value}"
                )

        level = 1
        if new_parent_id is not None:
            if new_parent_id not in parents:
                raise AccountNotFoundError(str(new_parent_id))
            # Walk up from the new parent; meeting ourselves means a cycle
            cursor: UUID | None = new_parent_id
            seen: set[UUID] = set()
            while cursor is not None:
                if cursor == account.id:
                    raise AccountHierarchyError(
                        account.code, "parent assignment would create a cycle"
                    )
                if cursor in seen:
                    raise HierarchyCycleError(str(cursor))
                seen.add(cursor)
                cursor = parents.get(cursor)
            parent = self._load(new_parent_id)
            self._check_parent_type(account.code, new_type, parent)
            level = _level_in(parents, new_parent_id) + 1

        deepest = level + _subtree_height(parents, account.id) - 1
        self._check_depth(account.code, deepest)


def _level_in(parents: dict[UUID, UUID | None], account_id: UUID) -> int:
    level = 1
    seen = {account_id}
    cursor = parents.get(account_id)
    while cursor is not None:
        if cursor in seen:
            raise HierarchyCycleError(str(account_id))
        seen.add(cursor)
        level += 1
        cursor = parents.get(cursor)
    return level


def _subtree_height(parents: dict[UUID, UUID | None], account_id: UUID) -> int:
    """Levels in the subtree rooted at ``account_id``, counting itself."""
    children: dict[UUID, list[UUID]] = {}
    for aid, pid in parents.items():
        if pid is not None:
            children.setdefault(pid, []).append(aid)
    height = 1
    frontier = [account_id]
    while True:
        frontier = [c for node in frontier for c in children.get(node, [])]
        if not frontier:
            return height
        height += 1
        if height > len(parents):
            raise HierarchyCycleError(str(account_id))
