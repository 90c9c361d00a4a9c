"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: The Balance Engine read path.  Every balance here is a fold
    of posted journal lines computed at query time; the cached
    ``Account.balance`` is never read.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - "Posted" means the entry has moved balances: status POSTED or REVERSED.
      A reversed entry stays in the fold and its reversal entry cancels it.
    - Base-currency view (currency omitted or equal to the base) folds the
      persisted base amounts of every line.  A foreign-currency view folds
      transaction amounts of lines in that currency only.
    - Idempotent and side-effect free.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.db.types import to_decimal
from ledger_kernel.domain.values import EFFECTIVE_STATUSES, AccountType, balance_delta
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.base import BaseSelector

_ZERO = Decimal("0")

_EFFECTIVE = tuple(s.value for s in EFFECTIVE_STATUSES)


@dataclass(frozen=True)
class AccountActivity:
    """Debit and credit totals for one account over a window."""

    account_id: UUID
    account_type: AccountType
    debit_total: Decimal
    credit_total: Decimal

    @property
    def net(self) -> Decimal:
        """Movement of the natural balance (sign rule applied)."""
        return balance_delta(self.account_type, self.debit_total, self.credit_total)


class LedgerSelector(BaseSelector):
    """
    Balances derived from posted history.

    Contract:
        ``balance_as_of`` for any account equals the cached running balance
        whenever the ledger is consistent; BalanceService.reconcile relies
        on that.
    """

    def __init__(self, session, base_currency: str):
        super().__init__(session)
        self._base_currency = base_currency.upper()

    def _amount_columns(self, currency: str | None):
        if currency is None or currency.upper() == self._base_currency:
            return (
                JournalEntryLine.debit_amount_base,
                JournalEntryLine.credit_amount_base,
                None,
            )
        return (
            JournalEntryLine.debit_amount,
            JournalEntryLine.credit_amount,
            currency.upper(),
        )

    def _activity_query(
        self,
        start: date | None,
        end: date | None,
        currency: str | None,
        account_ids: list[UUID] | None,
    ):
        debit_col, credit_col, line_currency = self._amount_columns(currency)
        query = (
            select(
                Account.id,
                Account.account_type,
                func.coalesce(func.sum(debit_col), 0),
                func.coalesce(func.sum(credit_col), 0),
            )
            .join(JournalEntryLine, JournalEntryLine.account_id == Account.id)
            .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.status.in_(_EFFECTIVE))
            .group_by(Account.id, Account.account_type)
        )
        if start is not None:
            query = query.where(JournalEntry.transaction_date >= start)
        if end is not None:
            query = query.where(JournalEntry.transaction_date <= end)
        if line_currency is not None:
            query = query.where(JournalEntryLine.currency == line_currency)
        if account_ids is not None:
            query = query.where(Account.id.in_(account_ids))
        return query

    def activity_between(
        self,
        start: date | None,
        end: date | None,
        currency: str | None = None,
        account_ids: list[UUID] | None = None,
    ) -> dict[UUID, AccountActivity]:
        """
        Debit/credit totals per account for entries dated within [start, end].

        Either bound may be None for an open range.  Accounts with no lines
        in the window are absent from the result.
        """
        rows = self.session.execute(
            self._activity_query(start, end, currency, account_ids)
        ).all()
        return {
            account_id: AccountActivity(
                account_id=account_id,
                account_type=AccountType(account_type),
                debit_total=to_decimal(debits),
                credit_total=to_decimal(credits),
            )
            for account_id, account_type, debits, credits in rows
        }

    def balances_as_of(
        self,
        as_of: date | None = None,
        currency: str | None = None,
        account_ids: list[UUID] | None = None,
    ) -> dict[UUID, Decimal]:
        """Natural balance per account from the beginning of time to ``as_of``."""
        activity = self.activity_between(None, as_of, currency, account_ids)
        return {account_id: a.net for account_id, a in activity.items()}

    def balance_as_of(
        self,
        account_id: UUID,
        as_of: date | None = None,
        currency: str | None = None,
    ) -> Decimal:
        """
        Fold the account's posted lines dated on or before ``as_of``.

        Raises:
            AccountNotFoundError: unknown account.
        """
        account_type = self.session.execute(
            select(Account.account_type).where(Account.id == account_id)
        ).scalar_one_or_none()
        if account_type is None:
            raise AccountNotFoundError(str(account_id))
        activity = self.activity_between(None, as_of, currency, [account_id])
        if account_id not in activity:
            return _ZERO
        return activity[account_id].net

    def has_posted_lines(self, account_id: UUID) -> bool:
        """True once any posted (or since reversed) line references the account."""
        query = (
            select(JournalEntryLine.id)
            .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntryLine.account_id == account_id)
            .where(JournalEntry.status.in_(_EFFECTIVE))
            .limit(1)
        )
        return self.session.execute(query).first() is not None
