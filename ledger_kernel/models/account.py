"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- one row per
    account node, with hierarchy link, posting eligibility and the cached
    running balance.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced (by AccountService, not the ORM):
    - code is unique (uq_account_code).
    - A child's account_type equals its parent's.
    - is_control_account implies allow_posting is False.
    - account_type and currency are frozen once lines have been posted.
    - balance is written only by BalanceService.apply_entry.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import AccountType, NormalBalance


class Account(TrackedBase):
    """
    Chart of accounts entry.

    Contract:
        ``balance`` is a cache of the account's natural balance in the base
        currency.  It must always equal the fold of posted lines; see
        BalanceService.reconcile.

    Non-goals:
        Accounts are never physically deleted; deactivate instead.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_parent", "parent_id"),
        Index("idx_account_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Arabic label
    name_ar: Mapped[str | None] = mapped_column(String(255), nullable=True)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    is_control_account: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    allow_posting: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def type(self) -> AccountType:
        return AccountType(self.account_type)

    @property
    def normal_balance(self) -> NormalBalance:
        return self.type.normal_balance

    @property
    def accepts_postings(self) -> bool:
        return self.is_active and self.allow_posting and not self.is_control_account
