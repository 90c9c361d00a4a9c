"""Ledger modules - read-side features built on the ledger kernel."""
