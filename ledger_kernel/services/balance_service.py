"""
BalanceService -- the Balance Engine write path and reconciliation.

Responsibility:
    Applies a posted entry's effect to the cached ``Account.balance`` and
    proves, on demand, that every cached balance still equals the fold of
    posted history.

Architecture position:
    Kernel > Services.  Called by JournalService inside the post/reverse
    unit of work.  Reads history through LedgerSelector.

Invariants enforced:
    - This is the only code that writes ``Account.balance``.
    - Deltas are aggregated per account and applied as atomic SQL increments
      (``balance = balance + :delta``) in ascending account-id order, so
      concurrent postings touching the same account never lose an update
      and always lock rows in the same order.
    - Drift is reported, never repaired.

Failure modes:
    - BalanceDriftError (a ConsistencyError) from ``verify`` /
      ``assert_consistent`` when cached and recomputed balances disagree by
      the base currency's tolerance or more.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.rules import LineEffect, aggregate_deltas, is_balanced
from ledger_kernel.domain.values import AccountType
from ledger_kernel.exceptions import AccountNotFoundError, BalanceDriftError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.balance")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class AccountReconciliation:
    account_id: UUID
    account_code: str
    cached_balance: Decimal
    computed_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached_balance - self.computed_balance


@dataclass(frozen=True)
class ReconciliationReport:
    """Outcome of comparing cached balances with recomputed ones."""

    accounts_checked: int
    tolerance: Decimal
    discrepancies: tuple[AccountReconciliation, ...]

    @property
    def is_consistent(self) -> bool:
        return not self.discrepancies


class BalanceService(BaseService):
    """
    Contract:
        ``apply_entry`` is called exactly once per entry that reaches POSTED
        (including reversal entries).  ``reconcile`` is read-only.

    Non-goals:
        - Does NOT decide whether an entry may post (JournalService does).
        - Does NOT silently correct drift.
    """

    def __init__(
        self,
        session,
        base_currency: str,
        currencies: CurrencyRegistry | None = None,
    ):
        super().__init__(session)
        self._base_currency = base_currency.upper()
        self._currencies = currencies or CurrencyRegistry()
        self._ledger = LedgerSelector(session, self._base_currency)

    @property
    def tolerance(self) -> Decimal:
        return self._currencies.get_rounding_tolerance(self._base_currency)

    # =========================================================================
    # Write path
    # =========================================================================

    def apply_entry(self, entry: JournalEntry) -> dict[UUID, Decimal]:
        """
        Add the entry's base-currency movement to each account's cached balance.

        Returns:
            account_id -> delta applied.
        """
        effects = [
            LineEffect(
                account_id=line.account_id,
                account_type=AccountType(line.account.account_type),
                debit_base=line.debit_amount_base,
                credit_base=line.credit_amount_base,
            )
            for line in entry.lines
        ]
        deltas = aggregate_deltas(effects)

        # Fixed lock order across concurrent postings
        for account_id in sorted(deltas, key=str):
            self.session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(balance=Account.balance + deltas[account_id])
                .execution_options(synchronize_session=False)
            )
        self._expire_balances(deltas.keys())

        logger.info(
            "balance_applied",
            extra={
                "entry_id": str(entry.id),
                "journal_no": entry.journal_no,
                "accounts_updated": len(deltas),
            },
        )
        return deltas

    def _expire_balances(self, account_ids) -> None:
        ids = set(account_ids)
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, Account) and obj.id in ids:
                self.session.expire(obj, ["balance"])

    # =========================================================================
    # Recompute / reconcile
    # =========================================================================

    def recompute_balance(self, account_id: UUID) -> Decimal:
        """Balance from the full posted history, ignoring the cache."""
        return self._ledger.balance_as_of(account_id)

    def cached_balance(self, account_id: UUID) -> Decimal:
        balance = self.session.execute(
            select(Account.balance).where(Account.id == account_id)
        ).scalar_one_or_none()
        if balance is None:
            raise AccountNotFoundError(str(account_id))
        return balance

    def reconcile(self, account_ids: list[UUID] | None = None) -> ReconciliationReport:
        """Compare every (or the given) account's cache against its history."""
        query = select(Account.id, Account.code, Account.balance).order_by(Account.code)
        if account_ids is not None:
            query = query.where(Account.id.in_(account_ids))
        rows = self.session.execute(query).all()
        computed = self._ledger.balances_as_of(None, account_ids=account_ids)

        tolerance = self.tolerance
        discrepancies = []
        for account_id, code, cached in rows:
            recomputed = computed.get(account_id, _ZERO)
            if not is_balanced(cached, recomputed, tolerance):
                discrepancies.append(
                    AccountReconciliation(account_id, code, cached, recomputed)
                )

        report = ReconciliationReport(
            accounts_checked=len(rows),
            tolerance=tolerance,
            discrepancies=tuple(discrepancies),
        )
        if discrepancies:
            logger.error(
                "balance_drift_detected",
                extra={
                    "accounts_checked": report.accounts_checked,
                    "drifted_accounts": [d.account_code for d in discrepancies],
                },
            )
        else:
            logger.info(
                "balances_reconciled",
                extra={"accounts_checked": report.accounts_checked},
            )
        return report

    def verify(self, account_id: UUID) -> Decimal:
        """
        Recompute one account and compare with its cache.

        Returns:
            The recomputed balance.

        Raises:
            BalanceDriftError: cached and recomputed disagree.
        """
        report = self.reconcile([account_id])
        if report.accounts_checked == 0:
            raise AccountNotFoundError(str(account_id))
        self._raise_on_drift(report)
        return self.recompute_balance(account_id)

    def assert_consistent(self, account_ids: list[UUID] | None = None) -> ReconciliationReport:
        report = self.reconcile(account_ids)
        self._raise_on_drift(report)
        return report

    @staticmethod
    def _raise_on_drift(report: ReconciliationReport) -> None:
        if report.discrepancies:
            first = report.discrepancies[0]
            raise BalanceDriftError(
                first.account_code,
                first.cached_balance,
                first.computed_balance,
                report.tolerance,
            )
