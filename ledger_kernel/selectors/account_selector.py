"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only chart of accounts queries returning AccountView DTOs.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.dtos import AccountView
from ledger_kernel.domain.values import AccountType
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.base import BaseSelector


class AccountSelector(BaseSelector):

    def list_accounts(
        self,
        include_inactive: bool = True,
        account_type: AccountType | None = None,
    ) -> list[AccountView]:
        """All accounts ordered by code."""
        query = select(Account).order_by(Account.code)
        if not include_inactive:
            query = query.where(Account.is_active.is_(True))
        if account_type is not None:
            query = query.where(Account.account_type == AccountType(account_type).value)
        return [AccountView.from_model(a) for a in self.session.scalars(query)]

    def get(self, account_id: UUID) -> AccountView | None:
        account = self.session.get(Account, account_id)
        return AccountView.from_model(account) if account is not None else None

    def get_by_code(self, code: str) -> AccountView | None:
        account = self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        return AccountView.from_model(account) if account is not None else None

    def count(self) -> int:
        return self.session.execute(select(func.count(Account.id))).scalar_one()
