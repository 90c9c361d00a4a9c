"""
Reporting-specific test fixtures.

Provides:
- A default ReportingConfig
- Synthetic account data for the pure statement builders (no DB required)
"""

from datetime import date
from uuid import UUID, uuid4

import pytest

from ledger_kernel.domain.values import AccountType
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import ReportMetadata, ReportType
from ledger_modules.reporting.statements import AccountInfo


@pytest.fixture
def reporting_config() -> ReportingConfig:
    """Standard reporting configuration for tests."""
    return ReportingConfig.with_defaults()


def make_account_info(
    code: str,
    account_type: AccountType,
    name: str | None = None,
    parent_id: UUID | None = None,
) -> AccountInfo:
    """Factory for AccountInfo used in pure tests."""
    return AccountInfo(
        account_id=uuid4(),
        code=code,
        name=name or f"Account {code}",
        account_type=account_type,
        parent_id=parent_id,
    )


@pytest.fixture
def metadata() -> ReportMetadata:
    return ReportMetadata(
        report_type=ReportType.BALANCE_SHEET,
        entity_name="Test Co",
        currency="AED",
        as_of_date=date(2024, 1, 31),
        generated_at="2024-01-31T12:00:00+00:00",
    )


@pytest.fixture
def small_chart() -> dict[str, AccountInfo]:
    """
    A two-level chart keyed by code: one control account per type and
    leaves underneath, covering every statement section.
    """
    a = AccountType
    assets = make_account_info("1000", a.ASSET, "Assets")
    liabilities = make_account_info("2000", a.LIABILITY, "Liabilities")
    equity = make_account_info("3000", a.EQUITY, "Equity")
    revenue = make_account_info("4000", a.REVENUE, "Revenue")
    expenses = make_account_info("5000", a.EXPENSE, "Expenses")
    leaves = [
        make_account_info("1110", a.ASSET, "Cash", assets.account_id),
        make_account_info("1210", a.ASSET, "Equipment", assets.account_id),
        make_account_info("2110", a.LIABILITY, "Payables", liabilities.account_id),
        make_account_info("2210", a.LIABILITY, "Loan", liabilities.account_id),
        make_account_info("3100", a.EQUITY, "Capital", equity.account_id),
        make_account_info("4110", a.REVENUE, "Perfume Sales", revenue.account_id),
        make_account_info("4120", a.REVENUE, "Oud Sales", revenue.account_id),
        make_account_info("4200", a.REVENUE, "Other Income", revenue.account_id),
        make_account_info("5100", a.EXPENSE, "Materials", expenses.account_id),
        make_account_info("6100", a.EXPENSE, "Selling", expenses.account_id),
        make_account_info("6300", a.EXPENSE, "Rent", expenses.account_id),
        make_account_info("7100", a.EXPENSE, "Interest", expenses.account_id),
    ]
    return {
        info.code: info
        for info in (assets, liabilities, equity, revenue, expenses, *leaves)
    }
