"""
Typed exception hierarchy for the ledger kernel.

Every error raised by the kernel is a ``LedgerError`` subclass with:
  1. a TYPED class, so callers catch by type and never parse messages;
  2. a ``code`` attribute, machine-readable and safe to return over an API;
  3. structured attributes describing what went wrong.

Example:
    try:
        engine.post(entry_id, actor_id)
    except EntryNotPostableError as e:
        respond(code=e.code, status=e.current_state)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError                 rejected before any mutation
    |   +-- UnbalancedEntryError
    |   +-- InsufficientLinesError
    |   +-- InvalidLineError
    |   +-- AccountNotPostableError
    |   +-- DuplicateAccountCodeError
    |   +-- AccountHierarchyError
    |   +-- ChartAlreadySeededError
    |   +-- MissingReversalReasonError
    |   +-- InvalidReversalDateError
    |   +-- InvalidCurrencyError
    |   +-- InvalidRateError
    |   +-- RateConflictError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- JournalEntryNotFoundError
    |   +-- RateProviderNotFoundError
    |
    +-- InvalidStateError               always carries ``current_state``
    |   +-- EntryNotPostableError
    |   +-- EntryNotReversibleError
    |   +-- EntryNotEditableError
    |   +-- AccountChangeBlockedError
    |
    +-- UnsupportedCurrencyError        no rate for a required pair
    |
    +-- ConsistencyError                never expected in correct operation
    |   +-- BalanceDriftError
    |   +-- HierarchyCycleError
    |
    +-- ConcurrencyError                storage retries exhausted
    |
    +-- RateProviderError               external rate source failed

===============================================================================
ERROR CODES
===============================================================================

| Code                      | Exception                   |
|---------------------------|-----------------------------|
| VALIDATION_ERROR          | ValidationError             |
| UNBALANCED_ENTRY          | UnbalancedEntryError        |
| INSUFFICIENT_LINES        | InsufficientLinesError      |
| INVALID_LINE              | InvalidLineError            |
| ACCOUNT_NOT_POSTABLE      | AccountNotPostableError     |
| DUPLICATE_ACCOUNT_CODE    | DuplicateAccountCodeError   |
| ACCOUNT_HIERARCHY_INVALID | AccountHierarchyError       |
| CHART_ALREADY_SEEDED      | ChartAlreadySeededError     |
| MISSING_REVERSAL_REASON   | MissingReversalReasonError  |
| INVALID_REVERSAL_DATE     | InvalidReversalDateError    |
| INVALID_CURRENCY          | InvalidCurrencyError        |
| INVALID_RATE              | InvalidRateError            |
| RATE_CONFLICT             | RateConflictError           |
| NOT_FOUND                 | NotFoundError               |
| ACCOUNT_NOT_FOUND         | AccountNotFoundError        |
| JOURNAL_ENTRY_NOT_FOUND   | JournalEntryNotFoundError   |
| RATE_PROVIDER_NOT_FOUND   | RateProviderNotFoundError   |
| INVALID_STATE             | InvalidStateError           |
| ENTRY_NOT_POSTABLE        | EntryNotPostableError       |
| ENTRY_NOT_REVERSIBLE      | EntryNotReversibleError     |
| ENTRY_NOT_EDITABLE        | EntryNotEditableError       |
| ACCOUNT_CHANGE_BLOCKED    | AccountChangeBlockedError   |
| UNSUPPORTED_CURRENCY      | UnsupportedCurrencyError    |
| CONSISTENCY_ERROR         | ConsistencyError            |
| BALANCE_DRIFT             | BalanceDriftError           |
| HIERARCHY_CYCLE           | HierarchyCycleError         |
| CONCURRENCY_CONFLICT      | ConcurrencyError            |
| RATE_PROVIDER_FAILED      | RateProviderError           |
"""

from datetime import date
from decimal import Decimal


class LedgerError(Exception):
    """Base exception for all ledger kernel errors."""

    code: str = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Validation
# =============================================================================


class ValidationError(LedgerError):
    """Input rejected before anything was written."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class UnbalancedEntryError(ValidationError):
    """Total debits differ from total credits beyond the currency tolerance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: Decimal, credits: Decimal, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Entry is unbalanced in {currency}: "
            f"debits={debits}, credits={credits}"
        )


class InsufficientLinesError(ValidationError):
    """A journal entry needs at least two lines."""

    code: str = "INSUFFICIENT_LINES"

    def __init__(self, line_count: int, minimum: int = 2):
        self.line_count = line_count
        self.minimum = minimum
        super().__init__(
            f"Journal entry requires at least {minimum} lines, got {line_count}"
        )


class InvalidLineError(ValidationError):
    """A single line is malformed (both sides set, negative amount, ...)."""

    code: str = "INVALID_LINE"

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}")


class AccountNotPostableError(ValidationError):
    """The target account cannot receive postings."""

    code: str = "ACCOUNT_NOT_POSTABLE"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Account {account_code} cannot receive postings: {reason}")


class DuplicateAccountCodeError(ValidationError):
    """Account codes are unique across the chart."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}", field="code")


class AccountHierarchyError(ValidationError):
    """Parent/child assignment breaks a hierarchy rule."""

    code: str = "ACCOUNT_HIERARCHY_INVALID"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Invalid hierarchy for account {account_code}: {reason}")


class ChartAlreadySeededError(ValidationError):
    """The standard chart can only be installed into an empty registry."""

    code: str = "CHART_ALREADY_SEEDED"

    def __init__(self, account_count: int):
        self.account_count = account_count
        super().__init__(
            f"Chart of accounts already contains {account_count} accounts"
        )


class MissingReversalReasonError(ValidationError):
    """A reversal must state why."""

    code: str = "MISSING_REVERSAL_REASON"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Reversal reason is required for entry {entry_id}", field="reason")


class InvalidReversalDateError(ValidationError):
    """A reversal cannot be dated before the entry it undoes."""

    code: str = "INVALID_REVERSAL_DATE"

    def __init__(self, entry_id: str, transaction_date: date, reversal_date: date):
        self.entry_id = entry_id
        self.transaction_date = transaction_date
        self.reversal_date = reversal_date
        super().__init__(
            f"Reversal date {reversal_date} precedes transaction date "
            f"{transaction_date} of entry {entry_id}"
        )


class InvalidCurrencyError(ValidationError):
    """Not a supported ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid or unsupported currency code: {currency!r}", field="currency")


class InvalidRateError(ValidationError):
    """Exchange rates are strictly positive."""

    code: str = "INVALID_RATE"

    def __init__(self, rate: Decimal, reason: str = "rate must be positive"):
        self.rate = rate
        self.reason = reason
        super().__init__(f"Invalid exchange rate {rate}: {reason}", field="rate")


class RateConflictError(ValidationError):
    """A different rate is already recorded for this pair and date."""

    code: str = "RATE_CONFLICT"

    def __init__(
        self,
        from_currency: str,
        to_currency: str,
        rate_date: date,
        existing_rate: Decimal,
        new_rate: Decimal,
    ):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.rate_date = rate_date
        self.existing_rate = existing_rate
        self.new_rate = new_rate
        super().__init__(
            f"Rate {from_currency}->{to_currency} on {rate_date} is already "
            f"recorded as {existing_rate}; refusing to overwrite with {new_rate}"
        )


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(LedgerError):
    """A referenced record does not exist."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account lookup by id or code failed."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class JournalEntryNotFoundError(NotFoundError):
    """Journal entry lookup failed."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class RateProviderNotFoundError(NotFoundError):
    """No rate provider registered under this source name."""

    code: str = "RATE_PROVIDER_NOT_FOUND"

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"No rate provider registered for source: {source}")


# =============================================================================
# Invalid state
# =============================================================================


class InvalidStateError(LedgerError):
    """
    Operation is illegal in the record's current state.

    ``current_state`` lets the caller decide whether to retry or abandon.
    """

    code: str = "INVALID_STATE"

    def __init__(self, message: str, current_state: str):
        self.current_state = current_state
        super().__init__(message)


class EntryNotPostableError(InvalidStateError):
    """Posting is legal only from DRAFT or PENDING_APPROVAL."""

    code: str = "ENTRY_NOT_POSTABLE"

    def __init__(self, entry_id: str, current_state: str):
        self.entry_id = entry_id
        super().__init__(
            f"Journal entry {entry_id} cannot be posted from status {current_state}",
            current_state,
        )


class EntryNotReversibleError(InvalidStateError):
    """Reversal is legal only from POSTED, and never on a reversal entry."""

    code: str = "ENTRY_NOT_REVERSIBLE"

    def __init__(self, entry_id: str, current_state: str, reason: str | None = None):
        self.entry_id = entry_id
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Journal entry {entry_id} cannot be reversed from status "
            f"{current_state}{detail}",
            current_state,
        )


class EntryNotEditableError(InvalidStateError):
    """Only DRAFT and PENDING_APPROVAL entries may change."""

    code: str = "ENTRY_NOT_EDITABLE"

    def __init__(self, entry_id: str, current_state: str, action: str = "edit"):
        self.entry_id = entry_id
        self.action = action
        super().__init__(
            f"Cannot {action} journal entry {entry_id} in status {current_state}",
            current_state,
        )


class AccountChangeBlockedError(InvalidStateError):
    """A field is frozen because postings already reference the account."""

    code: str = "ACCOUNT_CHANGE_BLOCKED"

    def __init__(self, account_code: str, field: str, current_state: str):
        self.account_code = account_code
        self.field = field
        super().__init__(
            f"Cannot change {field} of account {account_code}: "
            f"it already has posted transactions (current {field}={current_state})",
            current_state,
        )


# =============================================================================
# Currency
# =============================================================================


class UnsupportedCurrencyError(LedgerError):
    """No rate exists for a required pair as of the requested date."""

    code: str = "UNSUPPORTED_CURRENCY"

    def __init__(self, from_currency: str, to_currency: str, as_of: date | None = None):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.as_of = as_of
        when = f" as of {as_of}" if as_of else ""
        super().__init__(f"No exchange rate for {from_currency}->{to_currency}{when}")


# =============================================================================
# Consistency
# =============================================================================


class ConsistencyError(LedgerError):
    """Stored state contradicts a ledger invariant.  Never corrected silently."""

    code: str = "CONSISTENCY_ERROR"


class BalanceDriftError(ConsistencyError):
    """Cached balance disagrees with the balance recomputed from history."""

    code: str = "BALANCE_DRIFT"

    def __init__(
        self,
        account_code: str,
        cached_balance: Decimal,
        computed_balance: Decimal,
        tolerance: Decimal,
    ):
        self.account_code = account_code
        self.cached_balance = cached_balance
        self.computed_balance = computed_balance
        self.tolerance = tolerance
        super().__init__(
            f"Balance drift on account {account_code}: cached={cached_balance}, "
            f"recomputed={computed_balance}, tolerance={tolerance}"
        )


class HierarchyCycleError(ConsistencyError):
    """Parent links of stored accounts form a cycle."""

    code: str = "HIERARCHY_CYCLE"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Cycle detected in parent chain of account {account_id}")


# =============================================================================
# Concurrency / infrastructure
# =============================================================================


class ConcurrencyError(LedgerError):
    """Transient storage conflicts persisted past the retry budget."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"Operation {operation} failed after {attempts} attempts "
            "due to concurrent modification"
        )


class RateProviderError(LedgerError):
    """An external rate provider failed to deliver rates."""

    code: str = "RATE_PROVIDER_FAILED"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Rate provider {source} failed: {reason}")
