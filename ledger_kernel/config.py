"""
Ledger configuration (``ledger_kernel.config``).

Responsibility
--------------
Single typed configuration object for a ledger process: where the store
lives, which currency is the base, which currencies are accepted, and the
retry budget for transient storage conflicts.

Sources, lowest to highest precedence:
    1. dataclass defaults
    2. a YAML file (``load_config(path)``)
    3. environment: ``LEDGER_DATABASE_URL``, ``LEDGER_BASE_CURRENCY``,
       ``LEDGER_LOG_LEVEL``

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from ``__post_init__``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Self

import yaml

from ledger_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULT_DATABASE_URL = "sqlite:///ledger.db"

DEFAULT_SUPPORTED_CURRENCIES: tuple[str, ...] = (
    "AED", "USD", "EUR", "GBP", "SAR", "KWD", "QAR", "OMR", "BHD", "INR",
)

_ENV_OVERRIDES = {
    "LEDGER_DATABASE_URL": "database_url",
    "LEDGER_BASE_CURRENCY": "base_currency",
    "LEDGER_LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class LedgerConfig:
    """
    Process-wide ledger settings.

    Contract:
        Immutable once built.  Services receive the values they need at
        construction; nothing reads the environment after ``load_config``.
    """

    database_url: str = DEFAULT_DATABASE_URL
    base_currency: str = "AED"
    supported_currencies: tuple[str, ...] = DEFAULT_SUPPORTED_CURRENCIES

    # Chart of accounts
    max_account_depth: int = 6
    hierarchy_depth: int = 4

    # Transient conflict retry on post/reverse
    max_retries: int = 3
    retry_backoff_seconds: float = 0.05

    # Document numbering
    journal_prefix: str = "JE"
    transaction_prefix: str = "TXN"
    reversal_prefix: str = "REV"

    # Storage
    echo_sql: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    busy_timeout_seconds: float = 30.0

    log_level: str = "INFO"

    # Free-form extras (e.g. rate provider settings) passed through untouched
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.base_currency) != 3 or not self.base_currency.isalpha():
            raise ValueError(f"base_currency must be a 3-letter ISO code, got {self.base_currency!r}")
        if self.base_currency.upper() not in {c.upper() for c in self.supported_currencies}:
            raise ValueError(
                f"base_currency {self.base_currency} is not in supported_currencies"
            )
        if self.max_account_depth < 4:
            raise ValueError("max_account_depth must allow at least 4 levels")
        if self.hierarchy_depth < 1:
            raise ValueError("hierarchy_depth must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds cannot be negative")
        for prefix_name in ("journal_prefix", "transaction_prefix", "reversal_prefix"):
            if not getattr(self, prefix_name):
                raise ValueError(f"{prefix_name} cannot be empty")
        logger.debug(
            "ledger_config_validated",
            extra={
                "base_currency": self.base_currency,
                "supported_currencies": list(self.supported_currencies),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Build from a plain mapping (parsed YAML).

        Unknown keys land in ``extra`` rather than failing, so deployment
        files can carry settings for collaborators outside the kernel.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = dict(data.get("extra", {}))
        for key, value in data.items():
            if key == "extra":
                continue
            if key in known:
                kwargs[key] = value
            else:
                extra[key] = value
        if "supported_currencies" in kwargs:
            kwargs["supported_currencies"] = tuple(
                str(c).upper() for c in kwargs["supported_currencies"]
            )
        if "base_currency" in kwargs:
            kwargs["base_currency"] = str(kwargs["base_currency"]).upper()
        return cls(extra=extra, **kwargs)


def load_config(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> LedgerConfig:
    """
    Load configuration from an optional YAML file plus environment overrides.

    Args:
        path: YAML file; ``None`` skips the file layer.
        environ: Environment mapping, ``os.environ`` by default.

    Returns:
        A validated LedgerConfig.
    """
    data: dict[str, Any] = {}
    if path is not None:
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
        if loaded is not None:
            if not isinstance(loaded, dict):
                raise ValueError(f"Config file {path} must contain a mapping")
            data.update(loaded.get("ledger", loaded))

    env = os.environ if environ is None else environ
    for env_name, attr in _ENV_OVERRIDES.items():
        if env.get(env_name):
            data[attr] = env[env_name]

    config = LedgerConfig.from_dict(data)
    logger.info(
        "ledger_config_loaded",
        extra={
            "config_path": str(path) if path else None,
            "base_currency": config.base_currency,
        },
    )
    return config


def override(config: LedgerConfig, **changes: Any) -> LedgerConfig:
    """Return a copy with ``changes`` applied (validation re-runs)."""
    return replace(config, **changes)
