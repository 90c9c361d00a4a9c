"""
Financial Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only module that generates statements from the ledger: trial
balance, classified balance sheet with a derived retained earnings line,
multi-step profit & loss with optional comparison and variance, and a
cash flow statement by the direct or indirect method.

Architecture position
---------------------
**Modules layer** -- statement generation is implemented as pure
functions over balances that the kernel folds from posted history.

Invariants enforced
-------------------
* No journal entries are created by this module.
* Statements never read the cached ``Account.balance``.
"""

from ledger_modules.reporting.config import AccountClassification, ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowMethod,
    CashFlowReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    StatementTotal,
    TrialBalanceLine,
    TrialBalanceReport,
    Variance,
)
from ledger_modules.reporting.service import ReportingService
from ledger_modules.reporting.statements import (
    AccountInfo,
    build_balance_sheet,
    build_cash_flow,
    build_profit_and_loss,
    build_trial_balance,
    compute_variance,
    render_to_dict,
)

__all__ = [
    "AccountClassification",
    "AccountInfo",
    "BalanceSheetReport",
    "CashFlowMethod",
    "CashFlowReport",
    "ProfitAndLossReport",
    "ReportMetadata",
    "ReportType",
    "ReportingConfig",
    "ReportingService",
    "StatementLine",
    "StatementSection",
    "StatementTotal",
    "TrialBalanceLine",
    "TrialBalanceReport",
    "Variance",
    "build_balance_sheet",
    "build_cash_flow",
    "build_profit_and_loss",
    "build_trial_balance",
    "compute_variance",
    "render_to_dict",
]
