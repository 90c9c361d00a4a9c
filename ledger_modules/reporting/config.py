"""
Reporting Configuration Schema.

Defines classification rules and report formatting options.
Account classification uses code prefixes consistent with the
standard chart (1xxx=assets, 2xxx=liabilities, ...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass(frozen=True)
class AccountClassification:
    """
    Rules for classifying accounts into statement sections.

    Prefix matching: an account matches a section if its code
    starts with any of the configured prefixes.  AccountType decides
    balance sheet vs P&L first; prefixes only subdivide.
    """

    # Balance sheet
    current_asset_prefixes: tuple[str, ...] = ("11",)
    fixed_asset_prefixes: tuple[str, ...] = ("12",)
    current_liability_prefixes: tuple[str, ...] = ("21",)
    long_term_liability_prefixes: tuple[str, ...] = ("22",)

    # P&L -- revenue outside other_income is operating revenue,
    # expenses outside every band are operating expenses
    cogs_prefixes: tuple[str, ...] = ("5",)
    operating_expense_prefixes: tuple[str, ...] = ("6",)
    other_income_prefixes: tuple[str, ...] = ("42",)
    other_expense_prefixes: tuple[str, ...] = ("7",)

    # Cash flow -- fixed assets are investing, long-term liabilities
    # are financing; these refine the remaining accounts
    cash_account_prefixes: tuple[str, ...] = ("1110", "1120")
    accumulated_depreciation_prefixes: tuple[str, ...] = ("122",)
    loan_prefixes: tuple[str, ...] = ("214",)
    retained_earnings_prefixes: tuple[str, ...] = ("32", "33")
    receivable_prefixes: tuple[str, ...] = ("113",)
    supplier_prefixes: tuple[str, ...] = ("114", "115", "211")

    def matches_prefix(self, code: str, prefixes: tuple[str, ...]) -> bool:
        """Check if an account code matches any of the given prefixes."""
        return any(code.startswith(p) for p in prefixes)


@dataclass(frozen=True)
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    ``default_currency`` of None means the ledger's base currency.
    """

    classification: AccountClassification = field(
        default_factory=AccountClassification,
    )

    default_currency: str | None = None

    entity_name: str = "Company"

    # Rounding precision for amounts shown on statements
    display_precision: int = 2

    include_zero_balances: bool = False

    # Applied to positive net profit before tax only
    tax_rate: Decimal = Decimal("0")

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if self.default_currency is not None and len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter ISO 4217 code")
        if not isinstance(self.tax_rate, Decimal):
            object.__setattr__(self, "tax_rate", Decimal(str(self.tax_rate)))
        if self.tax_rate < 0 or self.tax_rate >= 1:
            raise ValueError("tax_rate must be in [0, 1)")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        data = dict(data)
        if "classification" in data and isinstance(data["classification"], dict):
            data["classification"] = AccountClassification(
                **{k: tuple(v) for k, v in data["classification"].items()}
            )
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
