"""
Exchange-rate provider protocol and built-in providers.

Contract:
    RateProvider.fetch_rates(base_currency, as_of) returns one ProviderRate
    per quoted target currency: 1 base = rate target.  Providers do I/O only;
    validation and storage happen in CurrencyService.sync_external_rates.

Architecture: ledger_kernel/domain.  No DB or service imports.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable

from ledger_kernel.exceptions import RateProviderError


@dataclass(frozen=True)
class ProviderRate:
    """One quote from an external source."""

    to_currency: str
    rate: Decimal


@runtime_checkable
class RateProvider(Protocol):
    """Protocol for anything that can quote rates against a base currency."""

    name: str

    def fetch_rates(self, base_currency: str, as_of: date) -> list[ProviderRate]:
        """Quotes for ``base_currency`` valid on ``as_of``. Raises RateProviderError."""
        ...


def _parse_rates(source: str, quotes: Mapping[str, Any]) -> list[ProviderRate]:
    rates: list[ProviderRate] = []
    for code, raw in quotes.items():
        try:
            value = Decimal(str(raw))
        except (InvalidOperation, ValueError) as exc:
            raise RateProviderError(source, f"unparseable rate for {code}: {raw!r}") from exc
        rates.append(ProviderRate(to_currency=str(code).strip().upper(), rate=value))
    return rates


class StaticRateProvider:
    """Fixed quotes held in memory, keyed by base currency.  Used for seeding and tests."""

    def __init__(self, quotes: Mapping[str, Mapping[str, Any]], name: str = "static"):
        self.name = name
        self._quotes = {base.upper(): dict(targets) for base, targets in quotes.items()}

    def fetch_rates(self, base_currency: str, as_of: date) -> list[ProviderRate]:
        targets = self._quotes.get(base_currency.upper())
        if targets is None:
            raise RateProviderError(self.name, f"no quotes for base {base_currency}")
        return _parse_rates(self.name, targets)


class JsonFileRateProvider:
    """
    Quotes read from a JSON file exported by a bank feed.

    Expected shape::

        {"base": "AED", "rates": {"USD": "0.2723", "EUR": "0.2510"}}

    or a list of such objects with an optional ``"date"`` (ISO) per object;
    the object with the latest date on or before ``as_of`` wins.
    """

    def __init__(self, path: Path | str, name: str = "json_file", encoding: str = "utf-8"):
        self.name = name
        self._path = Path(path)
        self._encoding = encoding

    def fetch_rates(self, base_currency: str, as_of: date) -> list[ProviderRate]:
        try:
            with self._path.open("r", encoding=self._encoding) as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise RateProviderError(self.name, f"cannot read {self._path}: {exc}") from exc

        snapshots = payload if isinstance(payload, list) else [payload]
        best: dict[str, Any] | None = None
        best_date: date | None = None
        for snapshot in snapshots:
            if not isinstance(snapshot, dict):
                continue
            if str(snapshot.get("base", "")).upper() != base_currency.upper():
                continue
            raw_date = snapshot.get("date")
            try:
                snapshot_date = date.fromisoformat(raw_date) if raw_date else None
            except (TypeError, ValueError) as exc:
                raise RateProviderError(self.name, f"bad date {raw_date!r}") from exc
            if snapshot_date is not None and snapshot_date > as_of:
                continue
            if best is None or (snapshot_date or date.min) >= (best_date or date.min):
                best, best_date = snapshot, snapshot_date

        if best is None or not isinstance(best.get("rates"), dict):
            raise RateProviderError(self.name, f"no quotes for base {base_currency} on {as_of}")
        return _parse_rates(self.name, best["rates"])
