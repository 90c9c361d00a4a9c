"""Ledger services - the request-facing layer over the kernel."""

from ledger_services.facade import LedgerFacade
from ledger_services.orchestrator import LedgerOrchestrator

__all__ = ["LedgerFacade", "LedgerOrchestrator"]
