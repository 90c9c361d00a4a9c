"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.balance_service import (
    AccountReconciliation,
    BalanceService,
    ReconciliationReport,
)
from ledger_kernel.services.currency_service import CurrencyService, RatesSnapshot, SyncResult
from ledger_kernel.services.journal_service import JournalService, PostResult, ReversalResult
from ledger_kernel.services.sequence_service import SequenceService

__all__ = [
    "AccountReconciliation",
    "AccountService",
    "BalanceService",
    "CurrencyService",
    "JournalService",
    "PostResult",
    "RatesSnapshot",
    "ReconciliationReport",
    "ReversalResult",
    "SequenceService",
    "SyncResult",
]
