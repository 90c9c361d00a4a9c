"""Read-only selectors for the ledger kernel."""

from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import AccountActivity, LedgerSelector
from ledger_kernel.selectors.rate_selector import RateSelector

__all__ = [
    "AccountActivity",
    "AccountSelector",
    "JournalSelector",
    "LedgerSelector",
    "RateSelector",
]
