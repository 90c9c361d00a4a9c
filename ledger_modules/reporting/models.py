"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects representing statement outputs: trial
balance, balance sheet, profit & loss (with optional comparison figures
and variance) and cash flow.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``ReportingService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReportType(str, Enum):
    """Types of financial reports."""

    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    PROFIT_AND_LOSS = "profit_and_loss"
    CASH_FLOW = "cash_flow"


class CashFlowMethod(str, Enum):
    """How operating activities are presented."""

    INDIRECT = "indirect"  # net income adjusted for non-cash and working capital
    DIRECT = "direct"  # receipts and payments


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every financial report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO format timestamp from injected clock
    period_start: date | None = None
    period_end: date | None = None
    comparison_date: date | None = None
    comparison_start: date | None = None
    comparison_end: date | None = None


@dataclass(frozen=True)
class Variance:
    """current - comparison, and that difference as a percent of comparison."""

    amount: Decimal
    percent: Decimal


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLine:
    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    debit_balance: Decimal
    credit_balance: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    lines: tuple[TrialBalanceLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool


# =========================================================================
# Statement building blocks
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """
    One account's amount on a statement.

    ``account_id`` is None for synthetic lines (retained earnings).
    ``level`` is the account's depth in the hierarchy, for indentation.
    """

    account_id: UUID | None
    account_code: str
    account_name: str
    account_name_ar: str | None
    account_type: str
    amount: Decimal
    level: int = 0
    percent_of_revenue: Decimal | None = None
    comparison_amount: Decimal | None = None
    variance: Variance | None = None


@dataclass(frozen=True)
class StatementTotal:
    """A named total with its optional comparison figures."""

    label: str
    amount: Decimal
    percent_of_revenue: Decimal | None = None
    comparison_amount: Decimal | None = None
    variance: Variance | None = None


@dataclass(frozen=True)
class StatementSection:
    key: str
    label: str
    lines: tuple[StatementLine, ...]
    total: StatementTotal


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Classified balance sheet.

    Assets = Liabilities + Equity within the currency tolerance is the
    statement's correctness check, reported in ``is_balanced``.
    """

    metadata: ReportMetadata

    current_assets: StatementSection
    fixed_assets: StatementSection
    other_assets: StatementSection
    total_assets: StatementTotal

    current_liabilities: StatementSection
    long_term_liabilities: StatementSection
    other_liabilities: StatementSection
    total_liabilities: StatementTotal

    # Includes the synthetic retained earnings line
    equity: StatementSection
    total_equity: StatementTotal
    retained_earnings: Decimal

    total_liabilities_and_equity: StatementTotal
    working_capital: StatementTotal

    difference: Decimal  # total_assets - total_liabilities_and_equity
    is_balanced: bool


# =========================================================================
# Profit & Loss
# =========================================================================


@dataclass(frozen=True)
class ProfitAndLossReport:
    """
    Multi-step profit and loss.

    Revenue - COGS = Gross Profit - Operating Expenses = Operating Income
    + Other Income - Other Expenses = Net Profit Before Tax - Tax
    = Net Profit After Tax
    """

    metadata: ReportMetadata

    revenue: StatementSection
    cost_of_goods_sold: StatementSection
    gross_profit: StatementTotal
    operating_expenses: StatementSection
    operating_income: StatementTotal
    other_income: StatementSection
    other_expenses: StatementSection
    net_profit_before_tax: StatementTotal
    tax_rate: Decimal
    tax: StatementTotal
    net_profit_after_tax: StatementTotal

    # Percentages of revenue; 0 when revenue is 0
    gross_margin: Decimal
    operating_margin: Decimal
    net_margin_before_tax: Decimal
    net_margin_after_tax: Decimal


# =========================================================================
# Cash Flow
# =========================================================================


@dataclass(frozen=True)
class CashFlowReport:
    """
    Cash flow statement over [period_start, period_end].

    closing_cash is measured from the cash accounts; ``is_reconciled``
    checks it against opening_cash + net_cash_flow within the currency
    tolerance.
    """

    metadata: ReportMetadata
    method: CashFlowMethod

    net_income: Decimal
    operating_activities: StatementSection
    investing_activities: StatementSection
    financing_activities: StatementSection
    net_cash_flow: StatementTotal

    opening_cash: Decimal
    closing_cash: Decimal
    difference: Decimal  # closing_cash - (opening_cash + net_cash_flow)
    is_reconciled: bool
