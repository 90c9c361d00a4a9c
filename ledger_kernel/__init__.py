"""
Ledger Kernel - double-entry accounting core.

A transactional general ledger with:
- Hierarchical chart of accounts
- Journal entry lifecycle (draft, approval, posting, reversal)
- Balances derivable from posted history at any time
- Multi-currency amounts normalized through a base currency
"""

__version__ = "0.1.0"
