"""
JournalService -- the journal entry state machine.

Responsibility:
    Owns the lifecycle of a journal entry: draft creation and editing,
    submission for approval, posting, and reversal.  Enforces the
    double-entry invariant before every transition and drives the Balance
    Engine so that status, balances and external transactions move together.

Architecture position:
    Kernel > Services.  Composes SequenceService (numbers), BalanceService
    (cached balances), the CurrencyConverter (missing entry rates) and the
    journal selectors.  Runs inside one LedgerStore unit of work per call.

States:
    DRAFT -> PENDING_APPROVAL -> POSTED -> REVERSED
    DRAFT -> POSTED is allowed.  Reversal creates a second, already POSTED
    entry (``REV-<journal_no>``) with every line's sides swapped.

Invariants enforced:
    - Every line has exactly one positive side; at least two lines.
    - sum(debit) == sum(credit) within the entry currency's tolerance, and
      the same for base amounts with the base currency's tolerance.  Checked
      at draft creation, on every edit, and again before posting.
    - Status changes are compare-and-set: ``UPDATE ... WHERE status IN
      (...)``.  Of two concurrent posts of one entry exactly one updates a
      row; the other gets EntryNotPostableError.
    - Only accounts that are active, allow posting and are not control
      accounts receive lines.
    - Entries created by a reversal cannot themselves be reversed.

Failure modes:
    - ValidationError family for bad input (nothing is written).
    - JournalEntryNotFoundError, AccountNotFoundError.
    - EntryNotPostableError / EntryNotReversibleError / EntryNotEditableError
      carrying the current status.
    - UnsupportedCurrencyError when a foreign entry has no rate and none is
      on file for its transaction date.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update

from ledger_kernel.config import LedgerConfig
from ledger_kernel.db.types import MONEY_DECIMAL_PLACES, round_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.converter import CurrencyConverter
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.dtos import DraftEntry, EntryFilter, EntryPage, JournalEntryView
from ledger_kernel.domain.rules import check_balanced, swap_sides, validate_line_sides
from ledger_kernel.domain.values import (
    EDITABLE_STATUSES,
    EntrySource,
    EntryStatus,
    LineSide,
    TransactionStatus,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AccountNotPostableError,
    EntryNotEditableError,
    EntryNotPostableError,
    EntryNotReversibleError,
    InvalidRateError,
    InvalidReversalDateError,
    JournalEntryNotFoundError,
    MissingReversalReasonError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.models.ledger_transaction import (
    REFERENCE_JOURNAL_ENTRY,
    LedgerTransaction,
)
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.rate_selector import RateSelector
from ledger_kernel.services.balance_service import BalanceService
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")

_ZERO = Decimal("0")
_ONE = Decimal("1")

_EDITABLE = tuple(s.value for s in EDITABLE_STATUSES)

_DESCRIPTION_LIMIT = 1000
REVERSAL_PREFIX = "REVERSAL: "


@dataclass(frozen=True)
class PostResult:
    entry: JournalEntryView
    balance_deltas: dict[UUID, Decimal]


@dataclass(frozen=True)
class ReversalResult:
    original: JournalEntryView
    reversal: JournalEntryView
    balance_deltas: dict[UUID, Decimal]


@dataclass(frozen=True)
class _PreparedLine:
    account_id: UUID
    debit: Decimal
    credit: Decimal
    debit_base: Decimal
    credit_base: Decimal
    description: str | None
    cost_center: str | None
    project: str | None


@dataclass(frozen=True)
class _PreparedEntry:
    currency: str
    exchange_rate: Decimal
    lines: tuple[_PreparedLine, ...]
    total_debit: Decimal
    total_credit: Decimal
    total_debit_base: Decimal
    total_credit_base: Decimal


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class JournalService(BaseService):
    """
    Journal entry lifecycle.

    Contract:
        Each public command validates completely, then mutates.  Callers run
        each command in its own unit of work; on any exception the unit of
        work rolls back so no partial status/balance change survives.

    Non-goals:
        - Does NOT commit.
        - Does NOT retry; LedgerStore.run retries transient conflicts.
    """

    def __init__(
        self,
        session,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        converter: CurrencyConverter | None = None,
    ):
        super().__init__(session)
        self._config = config or LedgerConfig()
        self._clock = clock or SystemClock()
        self._base_currency = self._config.base_currency
        self._currencies = CurrencyRegistry.from_config(self._config)
        self._converter = converter or CurrencyConverter(
            self._base_currency, RateSelector(session).lookup, self._currencies
        )
        self._sequences = SequenceService(session)
        self._balances = BalanceService(session, self._base_currency, self._currencies)
        self._journal = JournalSelector(session)

    # =========================================================================
    # Drafts
    # =========================================================================

    def create_draft(self, draft: DraftEntry, actor_id: UUID) -> JournalEntryView:
        """
        Validate and store a new DRAFT entry with pending transactions.

        Raises:
            ValidationError family: unbalanced, malformed lines, missing
                description, unpostable accounts.
            UnsupportedCurrencyError: foreign entry with no rate available.
        """
        prepared = self._prepare(draft)
        journal_no = self._sequences.next_document_number(
            SequenceService.JOURNAL,
            self._config.journal_prefix,
            draft.transaction_date.year,
        )

        entry = JournalEntry(
            journal_no=journal_no,
            reference=draft.reference,
            description=draft.description.strip(),
            transaction_date=draft.transaction_date,
            currency=prepared.currency,
            exchange_rate=prepared.exchange_rate,
            status=EntryStatus.DRAFT.value,
            source=EntrySource(draft.source).value,
            source_id=draft.source_id,
            created_by_id=actor_id,
        )
        self._set_lines(entry, prepared, actor_id)
        self.session.add(entry)
        self.session.flush()
        self._record_transactions(entry, TransactionStatus.PENDING, actor_id)

        logger.info(
            "journal_entry_drafted",
            extra={
                "entry_id": str(entry.id),
                "journal_no": journal_no,
                "line_count": len(prepared.lines),
                "currency": prepared.currency,
                "total_debit": prepared.total_debit,
            },
        )
        return JournalEntryView.from_model(entry)

    def update_draft(
        self, entry_id: UUID, draft: DraftEntry, actor_id: UUID
    ) -> JournalEntryView:
        """
        Replace the content of a DRAFT or PENDING_APPROVAL entry.

        The journal number is kept; pending transactions are cancelled and
        re-issued for the new lines.
        """
        entry = self._load(entry_id, for_update=True)
        if entry.status not in _EDITABLE:
            raise EntryNotEditableError(str(entry_id), str(entry.status))
        prepared = self._prepare(draft)

        # Old rows must be gone before new line numbers are inserted
        entry.lines.clear()
        self.session.flush()

        entry.description = draft.description.strip()
        entry.reference = draft.reference
        entry.transaction_date = draft.transaction_date
        entry.currency = prepared.currency
        entry.exchange_rate = prepared.exchange_rate
        entry.source = EntrySource(draft.source).value
        entry.source_id = draft.source_id
        entry.updated_by_id = actor_id
        self._set_lines(entry, prepared, actor_id)
        self.session.flush()

        self._set_transaction_status(entry.id, TransactionStatus.CANCELLED)
        self._record_transactions(entry, TransactionStatus.PENDING, actor_id)

        logger.info(
            "journal_entry_updated",
            extra={
                "entry_id": str(entry.id),
                "journal_no": entry.journal_no,
                "line_count": len(prepared.lines),
            },
        )
        return JournalEntryView.from_model(entry)

    def submit_for_approval(self, entry_id: UUID, actor_id: UUID) -> JournalEntryView:
        """DRAFT -> PENDING_APPROVAL."""
        entry = self._load(entry_id)
        result = self.session.execute(
            update(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .where(JournalEntry.status == EntryStatus.DRAFT.value)
            .values(
                status=EntryStatus.PENDING_APPROVAL.value,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise EntryNotEditableError(
                str(entry_id), self._current_status(entry_id), action="submit"
            )
        self.session.refresh(entry)

        logger.info(
            "journal_entry_submitted",
            extra={"entry_id": str(entry_id), "journal_no": entry.journal_no},
        )
        return JournalEntryView.from_model(entry)

    # =========================================================================
    # Posting
    # =========================================================================

    def post(self, entry_id: UUID, actor_id: UUID) -> PostResult:
        """
        Post a DRAFT or PENDING_APPROVAL entry.

        Effects, all in the caller's unit of work:
            1. status -> POSTED with approver, approval time, posting date
            2. every line's base-currency delta added to its account balance
            3. the entry's pending transactions -> COMPLETED

        Raises:
            EntryNotPostableError: already POSTED or REVERSED (also the
                outcome for the loser of a concurrent post).
            UnbalancedEntryError / AccountNotPostableError: re-check failed.
        """
        entry = self._load(entry_id, for_update=True)
        if entry.status not in _EDITABLE:
            raise EntryNotPostableError(str(entry_id), str(entry.status))

        self._revalidate(entry)

        now = self._clock.now()
        result = self.session.execute(
            update(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .where(JournalEntry.status.in_(_EDITABLE))
            .values(
                status=EntryStatus.POSTED.value,
                approved_by_id=actor_id,
                approved_at=now,
                posting_date=now.date(),
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self._current_status(entry_id)
            logger.warning(
                "journal_entry_post_conflict",
                extra={"entry_id": str(entry_id), "current_status": current},
            )
            raise EntryNotPostableError(str(entry_id), current)
        self.session.refresh(entry)

        deltas = self._balances.apply_entry(entry)
        completed = self._set_transaction_status(
            entry.id, TransactionStatus.COMPLETED, only_from=TransactionStatus.PENDING
        )

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "journal_no": entry.journal_no,
                "actor_id": str(actor_id),
                "accounts_updated": len(deltas),
                "transactions_completed": completed,
            },
        )
        return PostResult(entry=JournalEntryView.from_model(entry), balance_deltas=deltas)

    def reverse(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reason: str,
        reversal_date: date | None = None,
    ) -> ReversalResult:
        """
        Reverse a POSTED entry.

        Effects, all in the caller's unit of work:
            1. original -> REVERSED with reverser, time and reason
            2. new POSTED entry REV-<journal_no>, every line's sides swapped
            3. the new entry's deltas applied, restoring prior balances
            4. original transactions -> CANCELLED, new ones COMPLETED

        Args:
            reversal_date: Transaction date of the reversal entry; defaults
                to today and may not precede the original's date.

        Raises:
            MissingReversalReasonError: blank reason.
            EntryNotReversibleError: not POSTED, or itself a reversal.
            InvalidReversalDateError: reversal dated before the original.
        """
        reason = (reason or "").strip()
        if not reason:
            raise MissingReversalReasonError(str(entry_id))

        original = self._load(entry_id, for_update=True)
        if original.reversal_of_id is not None:
            raise EntryNotReversibleError(
                str(entry_id), str(original.status), reason="entry is itself a reversal"
            )
        if original.status != EntryStatus.POSTED.value:
            raise EntryNotReversibleError(str(entry_id), str(original.status))

        reversal_date = reversal_date or self._clock.today()
        if reversal_date < original.transaction_date:
            raise InvalidReversalDateError(
                str(entry_id), original.transaction_date, reversal_date
            )

        now = self._clock.now()
        result = self.session.execute(
            update(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .where(JournalEntry.status == EntryStatus.POSTED.value)
            .values(
                status=EntryStatus.REVERSED.value,
                reversed_by_id=actor_id,
                reversed_at=now,
                reversal_reason=reason,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise EntryNotReversibleError(str(entry_id), self._current_status(entry_id))
        self.session.refresh(original)

        reversal = JournalEntry(
            journal_no=f"{self._config.reversal_prefix}-{original.journal_no}",
            reference=f"Reversal of {original.journal_no}",
            description=(
                f"{REVERSAL_PREFIX}{original.description} - {reason}"
            )[:_DESCRIPTION_LIMIT],
            transaction_date=reversal_date,
            posting_date=now.date(),
            currency=original.currency,
            exchange_rate=original.exchange_rate,
            total_debit=original.total_credit,
            total_credit=original.total_debit,
            total_debit_base=original.total_credit_base,
            total_credit_base=original.total_debit_base,
            status=EntryStatus.POSTED.value,
            source=EntrySource.REVERSAL.value,
            source_id=str(original.id),
            approved_by_id=actor_id,
            approved_at=now,
            reversal_of_id=original.id,
            created_by_id=actor_id,
        )
        for line in original.lines:
            debit, credit = swap_sides(line.debit_amount, line.credit_amount)
            debit_base, credit_base = swap_sides(
                line.debit_amount_base, line.credit_amount_base
            )
            reversal.lines.append(
                JournalEntryLine(
                    line_number=line.line_number,
                    account_id=line.account_id,
                    description=(
                        f"{REVERSAL_PREFIX}{line.description or original.description}"
                    )[:_DESCRIPTION_LIMIT],
                    debit_amount=debit,
                    credit_amount=credit,
                    currency=line.currency,
                    exchange_rate=line.exchange_rate,
                    debit_amount_base=debit_base,
                    credit_amount_base=credit_base,
                    cost_center=line.cost_center,
                    project=line.project,
                    created_by_id=actor_id,
                )
            )
        self.session.add(reversal)
        self.session.flush()

        deltas = self._balances.apply_entry(reversal)
        self._set_transaction_status(original.id, TransactionStatus.CANCELLED)
        self._record_transactions(reversal, TransactionStatus.COMPLETED, actor_id)

        logger.info(
            "journal_entry_reversed",
            extra={
                "entry_id": str(original.id),
                "journal_no": original.journal_no,
                "reversal_entry_id": str(reversal.id),
                "reversal_journal_no": reversal.journal_no,
                "reason": reason,
            },
        )
        return ReversalResult(
            original=JournalEntryView.from_model(original),
            reversal=JournalEntryView.from_model(reversal),
            balance_deltas=deltas,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_entry(self, entry_id: UUID) -> JournalEntryView:
        view = self._journal.get_entry(entry_id)
        if view is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return view

    def list_entries(self, criteria: EntryFilter | None = None) -> EntryPage:
        return self._journal.list_entries(criteria)

    # =========================================================================
    # Internal
    # =========================================================================

    def _load(self, entry_id: UUID, for_update: bool = False) -> JournalEntry:
        query = select(JournalEntry).where(JournalEntry.id == entry_id)
        if for_update:
            query = query.with_for_update()
        entry = self.session.execute(query).scalar_one_or_none()
        if entry is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return entry

    def _current_status(self, entry_id: UUID) -> str:
        status = self.session.execute(
            select(JournalEntry.status)
            .where(JournalEntry.id == entry_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if status is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return str(status)

    def _prepare(self, draft: DraftEntry) -> _PreparedEntry:
        description = (draft.description or "").strip()
        if not description:
            raise ValidationError("Description is required", field="description")
        if len(description) > _DESCRIPTION_LIMIT:
            raise ValidationError("Description is too long", field="description")

        currency = self._currencies.validate(draft.currency or self._base_currency)
        exchange_rate = self._resolve_rate(currency, draft)

        amounts = [(_as_decimal(l.debit), _as_decimal(l.credit)) for l in draft.lines]
        validate_line_sides(amounts)

        for number, line in enumerate(draft.lines, start=1):
            if line.currency is not None and line.currency.upper() != currency:
                raise ValidationError(
                    f"Line {number} currency {line.currency} differs from entry currency {currency}",
                    field="currency",
                )
            if line.exchange_rate is not None and _as_decimal(line.exchange_rate) != exchange_rate:
                raise ValidationError(
                    f"Line {number} exchange rate differs from entry rate {exchange_rate}",
                    field="exchange_rate",
                )

        self._check_accounts_postable([l.account_id for l in draft.lines])

        lines = tuple(
            _PreparedLine(
                account_id=line.account_id,
                debit=debit,
                credit=credit,
                debit_base=round_money(debit * exchange_rate, MONEY_DECIMAL_PLACES),
                credit_base=round_money(credit * exchange_rate, MONEY_DECIMAL_PLACES),
                description=line.description,
                cost_center=line.cost_center,
                project=line.project,
            )
            for line, (debit, credit) in zip(draft.lines, amounts)
        )
        prepared = _PreparedEntry(
            currency=currency,
            exchange_rate=exchange_rate,
            lines=lines,
            total_debit=sum((l.debit for l in lines), _ZERO),
            total_credit=sum((l.credit for l in lines), _ZERO),
            total_debit_base=sum((l.debit_base for l in lines), _ZERO),
            total_credit_base=sum((l.credit_base for l in lines), _ZERO),
        )
        self._check_balanced(
            prepared.total_debit,
            prepared.total_credit,
            currency,
            prepared.total_debit_base,
            prepared.total_credit_base,
        )
        return prepared

    def _resolve_rate(self, currency: str, draft: DraftEntry) -> Decimal:
        if draft.exchange_rate is not None:
            rate = _as_decimal(draft.exchange_rate)
            if rate <= _ZERO:
                raise InvalidRateError(rate)
            if currency == self._base_currency and rate != _ONE:
                raise InvalidRateError(rate, "base currency entries use rate 1")
            return rate
        if currency == self._base_currency:
            return _ONE
        return self._converter.rate(currency, self._base_currency, draft.transaction_date)

    def _check_balanced(
        self,
        total_debit: Decimal,
        total_credit: Decimal,
        currency: str,
        total_debit_base: Decimal,
        total_credit_base: Decimal,
    ) -> None:
        check_balanced(
            total_debit,
            total_credit,
            currency,
            self._currencies.get_rounding_tolerance(currency),
        )
        if currency != self._base_currency:
            check_balanced(
                total_debit_base,
                total_credit_base,
                self._base_currency,
                self._currencies.get_rounding_tolerance(self._base_currency),
            )

    def _check_accounts_postable(self, account_ids: list[UUID]) -> None:
        accounts = {
            a.id: a
            for a in self.session.scalars(
                select(Account).where(Account.id.in_(list(set(account_ids))))
            )
        }
        for account_id in account_ids:
            account = accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(str(account_id))
            if not account.is_active:
                raise AccountNotPostableError(account.code, "account is inactive")
            if account.is_control_account:
                raise AccountNotPostableError(account.code, "control account")
            if not account.allow_posting:
                raise AccountNotPostableError(account.code, "posting is disabled")

    def _revalidate(self, entry: JournalEntry) -> None:
        validate_line_sides([(l.debit_amount, l.credit_amount) for l in entry.lines])
        self._check_balanced(
            sum((l.debit_amount for l in entry.lines), _ZERO),
            sum((l.credit_amount for l in entry.lines), _ZERO),
            entry.currency,
            sum((l.debit_amount_base for l in entry.lines), _ZERO),
            sum((l.credit_amount_base for l in entry.lines), _ZERO),
        )
        self._check_accounts_postable([l.account_id for l in entry.lines])

    @staticmethod
    def _set_lines(entry: JournalEntry, prepared: _PreparedEntry, actor_id: UUID) -> None:
        for number, line in enumerate(prepared.lines, start=1):
            entry.lines.append(
                JournalEntryLine(
                    line_number=number,
                    account_id=line.account_id,
                    description=line.description,
                    debit_amount=line.debit,
                    credit_amount=line.credit,
                    currency=prepared.currency,
                    exchange_rate=prepared.exchange_rate,
                    debit_amount_base=line.debit_base,
                    credit_amount_base=line.credit_base,
                    cost_center=line.cost_center,
                    project=line.project,
                    created_by_id=actor_id,
                )
            )
        entry.total_debit = prepared.total_debit
        entry.total_credit = prepared.total_credit
        entry.total_debit_base = prepared.total_debit_base
        entry.total_credit_base = prepared.total_credit_base

    def _record_transactions(
        self,
        entry: JournalEntry,
        status: TransactionStatus,
        actor_id: UUID,
    ) -> None:
        for line in entry.lines:
            is_debit = line.debit_amount > _ZERO
            self.session.add(
                LedgerTransaction(
                    transaction_no=self._sequences.next_document_number(
                        SequenceService.TRANSACTION,
                        self._config.transaction_prefix,
                        entry.transaction_date.year,
                    ),
                    account_id=line.account_id,
                    side=(LineSide.DEBIT if is_debit else LineSide.CREDIT).value,
                    amount=line.debit_amount if is_debit else line.credit_amount,
                    currency=line.currency,
                    transaction_date=entry.transaction_date,
                    description=line.description or entry.description,
                    reference_type=REFERENCE_JOURNAL_ENTRY,
                    reference_id=entry.id,
                    status=status.value,
                    created_by_id=actor_id,
                )
            )
        self.session.flush()

    def _set_transaction_status(
        self,
        entry_id: UUID,
        status: TransactionStatus,
        only_from: TransactionStatus | None = None,
    ) -> int:
        query = (
            update(LedgerTransaction)
            .where(LedgerTransaction.reference_type == REFERENCE_JOURNAL_ENTRY)
            .where(LedgerTransaction.reference_id == entry_id)
            .where(LedgerTransaction.status != status.value)
        )
        if only_from is not None:
            query = query.where(LedgerTransaction.status == only_from.value)
        result = self.session.execute(
            query.values(status=status.value).execution_options(synchronize_session=False)
        )
        return result.rowcount
