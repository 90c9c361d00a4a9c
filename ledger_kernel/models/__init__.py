"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.currency_rate import CurrencyRate
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.models.ledger_transaction import LedgerTransaction
from ledger_kernel.models.sequence import SequenceCounter

__all__ = [
    "Account",
    "CurrencyRate",
    "JournalEntry",
    "JournalEntryLine",
    "LedgerTransaction",
    "SequenceCounter",
]
