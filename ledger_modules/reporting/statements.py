"""
Pure financial statement transformation functions.

These functions turn per-account amounts and account metadata into
structured statements.  ZERO I/O.  ZERO side effects.

All monetary values are Decimal.  All inputs/outputs are frozen dataclasses.

Functions in this module follow the ledger_kernel/domain/ purity convention:
- No database access
- No clock access
- Deterministic: same inputs always produce same outputs

Rounding: totals, differences and balance checks are computed from the
unrounded amounts; ``display_precision`` is applied only to the figures
placed on the report.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import round_money
from ledger_kernel.domain.values import AccountType
from ledger_kernel.selectors.ledger_selector import AccountActivity
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowMethod,
    CashFlowReport,
    ProfitAndLossReport,
    ReportMetadata,
    StatementLine,
    StatementSection,
    StatementTotal,
    TrialBalanceLine,
    TrialBalanceReport,
    Variance,
)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

RETAINED_EARNINGS_CODE = "RE"
RETAINED_EARNINGS_NAME = "Retained Earnings (Current)"
RETAINED_EARNINGS_NAME_AR = "الأرباح المحتجزة (الحالية)"

NET_INCOME_CODE = "NI"

# =========================================================================
# Bridge type: account metadata for pure functions
# =========================================================================


@dataclasses.dataclass(frozen=True)
class AccountInfo:
    """
    Snapshot of account metadata needed for classification.

    The service converts Account rows to AccountInfo before calling any
    function here, keeping this layer free of ORM dependencies.
    """

    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    name_ar: str | None = None
    parent_id: UUID | None = None


@dataclasses.dataclass(frozen=True)
class _SyntheticLine:
    """A derived line (retained earnings, net income) with its raw amount."""

    code: str
    name: str
    name_ar: str | None
    account_type: AccountType
    amount: Decimal
    comparison: Decimal | None = None


@dataclasses.dataclass(frozen=True)
class _BuiltSection:
    section: StatementSection
    raw_total: Decimal
    raw_comparison: Decimal | None


# =========================================================================
# Helpers
# =========================================================================


def compute_levels(accounts: Mapping[UUID, AccountInfo]) -> dict[UUID, int]:
    """Hierarchy depth per account (roots are 1).  Stops at a repeated parent."""
    levels: dict[UUID, int] = {}
    for account_id, info in accounts.items():
        level = 1
        seen = {account_id}
        parent = info.parent_id
        while parent is not None and parent in accounts and parent not in seen:
            seen.add(parent)
            level += 1
            parent = accounts[parent].parent_id
        levels[account_id] = level
    return levels


def percent_of(amount: Decimal, base: Decimal) -> Decimal:
    """``amount`` as a percentage of ``base``, 0 when base is 0."""
    if base == _ZERO:
        return _ZERO
    return round_money(amount / base * _HUNDRED, 2)


def compute_variance(current: Decimal, comparison: Decimal) -> Variance:
    """amount = current - comparison; percent = amount / comparison * 100."""
    amount = current - comparison
    return Variance(amount=amount, percent=percent_of(amount, comparison))


def compute_net_income(
    amounts: Mapping[UUID, Decimal],
    accounts: Mapping[UUID, AccountInfo],
) -> Decimal:
    """
    Revenue natural balances minus expense natural balances.

    Only REVENUE and EXPENSE accounts are considered.
    """
    revenue = _ZERO
    expense = _ZERO
    for account_id, amount in amounts.items():
        acct = accounts.get(account_id)
        if acct is None:
            continue
        if acct.account_type == AccountType.REVENUE:
            revenue += amount
        elif acct.account_type == AccountType.EXPENSE:
            expense += amount
    return revenue - expense


def _make_total(
    label: str,
    raw_amount: Decimal,
    precision: int,
    raw_comparison: Decimal | None = None,
    raw_revenue: Decimal | None = None,
) -> StatementTotal:
    amount = round_money(raw_amount, precision)
    comparison = None
    if raw_comparison is not None:
        comparison = round_money(raw_comparison, precision)
    return StatementTotal(
        label=label,
        amount=amount,
        percent_of_revenue=(
            percent_of(raw_amount, raw_revenue) if raw_revenue is not None else None
        ),
        comparison_amount=comparison,
        variance=compute_variance(amount, comparison) if comparison is not None else None,
    )


def _is_visible(
    amount: Decimal,
    comparison: Decimal | None,
    config: ReportingConfig,
    tolerance: Decimal,
) -> bool:
    if config.include_zero_balances:
        return True
    if abs(amount) >= tolerance:
        return True
    return comparison is not None and abs(comparison) >= tolerance


def _line(
    account_id: UUID | None,
    code: str,
    name: str,
    name_ar: str | None,
    account_type: AccountType,
    raw_amount: Decimal,
    raw_comparison: Decimal | None,
    level: int,
    precision: int,
    raw_revenue: Decimal | None,
) -> StatementLine:
    amount = round_money(raw_amount, precision)
    comparison = None
    if raw_comparison is not None:
        comparison = round_money(raw_comparison, precision)
    return StatementLine(
        account_id=account_id,
        account_code=code,
        account_name=name,
        account_name_ar=name_ar,
        account_type=account_type.value,
        amount=amount,
        level=level,
        percent_of_revenue=(
            percent_of(raw_amount, raw_revenue) if raw_revenue is not None else None
        ),
        comparison_amount=comparison,
        variance=compute_variance(amount, comparison) if comparison is not None else None,
    )


def _make_section(
    key: str,
    label: str,
    members: Sequence[AccountInfo],
    amounts: Mapping[UUID, Decimal],
    comparison: Mapping[UUID, Decimal] | None,
    config: ReportingConfig,
    levels: Mapping[UUID, int],
    tolerance: Decimal,
    revenue: Decimal | None = None,
    leading: tuple[_SyntheticLine, ...] = (),
    trailing: tuple[_SyntheticLine, ...] = (),
) -> _BuiltSection:
    """
    Lines for ``members`` sorted by code, framed by any synthetic lines.

    The section total sums the raw amounts of every member, shown or not.
    """
    precision = config.display_precision
    raw_total = _ZERO
    raw_comparison = _ZERO if comparison is not None else None

    def synthetic(extra: _SyntheticLine) -> StatementLine:
        nonlocal raw_total, raw_comparison
        raw_total += extra.amount
        if raw_comparison is not None and extra.comparison is not None:
            raw_comparison += extra.comparison
        return _line(
            None, extra.code, extra.name, extra.name_ar, extra.account_type,
            extra.amount, extra.comparison, 1, precision, revenue,
        )

    lines: list[StatementLine] = [synthetic(extra) for extra in leading]

    for acct in sorted(members, key=lambda a: a.code):
        amount = amounts.get(acct.account_id, _ZERO)
        cmp_amount = None
        if comparison is not None:
            cmp_amount = comparison.get(acct.account_id, _ZERO)
            raw_comparison += cmp_amount
        raw_total += amount
        line = _line(
            acct.account_id, acct.code, acct.name, acct.name_ar, acct.account_type,
            amount, cmp_amount, levels.get(acct.account_id, 1), precision, revenue,
        )
        if _is_visible(line.amount, line.comparison_amount, config, tolerance):
            lines.append(line)

    lines.extend(synthetic(extra) for extra in trailing)

    return _BuiltSection(
        section=StatementSection(
            key=key,
            label=label,
            lines=tuple(lines),
            total=_make_total(label, raw_total, precision, raw_comparison, revenue),
        ),
        raw_total=raw_total,
        raw_comparison=raw_comparison,
    )


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def build_trial_balance(
    activity: Mapping[UUID, AccountActivity],
    accounts: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
    tolerance: Decimal,
) -> TrialBalanceReport:
    """
    Net debit or credit balance per account; totals must agree.

    An account's net lands in the debit column when debits exceed credits,
    otherwise in the credit column, whatever its normal side.
    """
    precision = config.display_precision
    lines: list[TrialBalanceLine] = []
    raw_debits = _ZERO
    raw_credits = _ZERO
    for account_id, act in activity.items():
        acct = accounts.get(account_id)
        if acct is None:
            continue
        raw_net = act.debit_total - act.credit_total
        if raw_net > _ZERO:
            raw_debits += raw_net
        else:
            raw_credits -= raw_net
        net = round_money(raw_net, precision)
        if not config.include_zero_balances and abs(net) < tolerance:
            continue
        lines.append(
            TrialBalanceLine(
                account_id=account_id,
                account_code=acct.code,
                account_name=acct.name,
                account_type=acct.account_type.value,
                debit_balance=net if net > _ZERO else _ZERO,
                credit_balance=-net if net < _ZERO else _ZERO,
            )
        )
    return TrialBalanceReport(
        metadata=metadata,
        lines=tuple(sorted(lines, key=lambda x: x.account_code)),
        total_debits=round_money(raw_debits, precision),
        total_credits=round_money(raw_credits, precision),
        is_balanced=abs(raw_debits - raw_credits) < tolerance,
    )


# =========================================================================
# 2. BALANCE SHEET
# =========================================================================


def classify_for_balance_sheet(
    accounts: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
) -> dict[str, list[AccountInfo]]:
    """
    Classify accounts into balance sheet sections.

    Primary: AccountType determines balance sheet vs P&L.
    Secondary: code prefix determines the subsection.
    """
    clf = config.classification
    result: dict[str, list[AccountInfo]] = {
        "current_assets": [],
        "fixed_assets": [],
        "other_assets": [],
        "current_liabilities": [],
        "long_term_liabilities": [],
        "other_liabilities": [],
        "equity": [],
    }
    for acct in accounts.values():
        if acct.account_type == AccountType.ASSET:
            if clf.matches_prefix(acct.code, clf.current_asset_prefixes):
                result["current_assets"].append(acct)
            elif clf.matches_prefix(acct.code, clf.fixed_asset_prefixes):
                result["fixed_assets"].append(acct)
            else:
                result["other_assets"].append(acct)
        elif acct.account_type == AccountType.LIABILITY:
            if clf.matches_prefix(acct.code, clf.current_liability_prefixes):
                result["current_liabilities"].append(acct)
            elif clf.matches_prefix(acct.code, clf.long_term_liability_prefixes):
                result["long_term_liabilities"].append(acct)
            else:
                result["other_liabilities"].append(acct)
        elif acct.account_type == AccountType.EQUITY:
            result["equity"].append(acct)
        # REVENUE and EXPENSE roll into retained earnings
    return result


def build_balance_sheet(
    balances: Mapping[UUID, Decimal],
    accounts: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
    tolerance: Decimal,
    comparison_balances: Mapping[UUID, Decimal] | None = None,
) -> BalanceSheetReport:
    """
    Build a classified balance sheet from natural balances as of a date.

    1. Subdivide ASSET and LIABILITY accounts by code prefix
    2. EQUITY section gets a synthetic retained earnings line equal to
       net income accumulated up to the as-of date
    3. Verify A = L + E within ``tolerance`` on the unrounded totals
    """
    precision = config.display_precision
    levels = compute_levels(accounts)
    classified = classify_for_balance_sheet(accounts, config)

    def section(key: str, label: str, trailing: tuple[_SyntheticLine, ...] = ()):
        return _make_section(
            key, label, classified[key], balances, comparison_balances,
            config, levels, tolerance, trailing=trailing,
        )

    current_assets = section("current_assets", "Current Assets")
    fixed_assets = section("fixed_assets", "Fixed Assets")
    other_assets = section("other_assets", "Other Assets")
    current_liabilities = section("current_liabilities", "Current Liabilities")
    long_term_liabilities = section("long_term_liabilities", "Long-term Liabilities")
    other_liabilities = section("other_liabilities", "Other Liabilities")

    retained = compute_net_income(balances, accounts)
    cmp_retained = None
    if comparison_balances is not None:
        cmp_retained = compute_net_income(comparison_balances, accounts)
    equity = section(
        "equity",
        "Equity",
        (
            _SyntheticLine(
                RETAINED_EARNINGS_CODE,
                RETAINED_EARNINGS_NAME,
                RETAINED_EARNINGS_NAME_AR,
                AccountType.EQUITY,
                retained,
                cmp_retained,
            ),
        ),
    )

    def raw_sum(*parts: _BuiltSection) -> tuple[Decimal, Decimal | None]:
        amount = sum((p.raw_total for p in parts), _ZERO)
        cmp = None
        if comparison_balances is not None:
            cmp = sum((p.raw_comparison for p in parts), _ZERO)
        return amount, cmp

    assets, assets_cmp = raw_sum(current_assets, fixed_assets, other_assets)
    liabilities, liabilities_cmp = raw_sum(
        current_liabilities, long_term_liabilities, other_liabilities,
    )
    l_and_e, l_and_e_cmp = raw_sum(
        current_liabilities, long_term_liabilities, other_liabilities, equity,
    )

    working_capital_cmp = None
    if comparison_balances is not None:
        working_capital_cmp = current_assets.raw_comparison - current_liabilities.raw_comparison

    difference = assets - l_and_e
    return BalanceSheetReport(
        metadata=metadata,
        current_assets=current_assets.section,
        fixed_assets=fixed_assets.section,
        other_assets=other_assets.section,
        total_assets=_make_total("Total Assets", assets, precision, assets_cmp),
        current_liabilities=current_liabilities.section,
        long_term_liabilities=long_term_liabilities.section,
        other_liabilities=other_liabilities.section,
        total_liabilities=_make_total(
            "Total Liabilities", liabilities, precision, liabilities_cmp,
        ),
        equity=equity.section,
        total_equity=_make_total(
            "Total Equity", equity.raw_total, precision, equity.raw_comparison,
        ),
        retained_earnings=round_money(retained, precision),
        total_liabilities_and_equity=_make_total(
            "Total Liabilities and Equity", l_and_e, precision, l_and_e_cmp,
        ),
        working_capital=_make_total(
            "Working Capital",
            current_assets.raw_total - current_liabilities.raw_total,
            precision,
            working_capital_cmp,
        ),
        difference=round_money(difference, precision),
        is_balanced=abs(difference) < tolerance,
    )


# =========================================================================
# 3. PROFIT AND LOSS
# =========================================================================


def classify_for_profit_and_loss(
    accounts: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
) -> dict[str, list[AccountInfo]]:
    """
    Classify accounts into P&L sections.

    revenue, cogs, operating_expenses, other_income, other_expenses
    """
    clf = config.classification
    result: dict[str, list[AccountInfo]] = {
        "revenue": [],
        "cogs": [],
        "operating_expenses": [],
        "other_income": [],
        "other_expenses": [],
    }
    for acct in accounts.values():
        if acct.account_type == AccountType.REVENUE:
            if clf.matches_prefix(acct.code, clf.other_income_prefixes):
                result["other_income"].append(acct)
            else:
                result["revenue"].append(acct)
        elif acct.account_type == AccountType.EXPENSE:
            if clf.matches_prefix(acct.code, clf.cogs_prefixes):
                result["cogs"].append(acct)
            elif clf.matches_prefix(acct.code, clf.other_expense_prefixes):
                result["other_expenses"].append(acct)
            else:
                result["operating_expenses"].append(acct)
    return result


@dataclasses.dataclass(frozen=True)
class _ProfitFigures:
    revenue: Decimal
    cogs: Decimal
    gross_profit: Decimal
    operating_expenses: Decimal
    operating_income: Decimal
    other_income: Decimal
    other_expenses: Decimal
    before_tax: Decimal
    tax: Decimal
    after_tax: Decimal


def _profit_figures(
    classified: dict[str, list[AccountInfo]],
    amounts: Mapping[UUID, Decimal],
    tax_rate: Decimal,
    precision: int,
) -> _ProfitFigures:
    def total(key: str) -> Decimal:
        return sum((amounts.get(a.account_id, _ZERO) for a in classified[key]), _ZERO)

    revenue = total("revenue")
    cogs = total("cogs")
    gross = revenue - cogs
    opex = total("operating_expenses")
    operating = gross - opex
    other_income = total("other_income")
    other_expenses = total("other_expenses")
    before_tax = operating + other_income - other_expenses
    tax = round_money(before_tax * tax_rate, precision) if before_tax > _ZERO else _ZERO
    return _ProfitFigures(
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross,
        operating_expenses=opex,
        operating_income=operating,
        other_income=other_income,
        other_expenses=other_expenses,
        before_tax=before_tax,
        tax=tax,
        after_tax=before_tax - tax,
    )


def build_profit_and_loss(
    amounts: Mapping[UUID, Decimal],
    accounts: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
    tolerance: Decimal,
    comparison_amounts: Mapping[UUID, Decimal] | None = None,
) -> ProfitAndLossReport:
    """
    Build a multi-step P&L from natural-balance movements over a period.

    Every line and total carries its percentage of (operating) revenue.
    """
    precision = config.display_precision
    levels = compute_levels(accounts)
    classified = classify_for_profit_and_loss(accounts, config)
    cur = _profit_figures(classified, amounts, config.tax_rate, precision)
    cmp = None
    if comparison_amounts is not None:
        cmp = _profit_figures(classified, comparison_amounts, config.tax_rate, precision)

    def section(key: str, label: str) -> StatementSection:
        return _make_section(
            key, label, classified[key], amounts, comparison_amounts,
            config, levels, tolerance, revenue=cur.revenue,
        ).section

    def total(label: str, field: str) -> StatementTotal:
        return _make_total(
            label,
            getattr(cur, field),
            precision,
            getattr(cmp, field) if cmp is not None else None,
            cur.revenue,
        )

    return ProfitAndLossReport(
        metadata=metadata,
        revenue=section("revenue", "Revenue"),
        cost_of_goods_sold=section("cogs", "Cost of Goods Sold"),
        gross_profit=total("Gross Profit", "gross_profit"),
        operating_expenses=section("operating_expenses", "Operating Expenses"),
        operating_income=total("Operating Income", "operating_income"),
        other_income=section("other_income", "Other Income"),
        other_expenses=section("other_expenses", "Other Expenses"),
        net_profit_before_tax=total("Net Profit Before Tax", "before_tax"),
        tax_rate=config.tax_rate,
        tax=total("Tax", "tax"),
        net_profit_after_tax=total("Net Profit After Tax", "after_tax"),
        gross_margin=percent_of(cur.gross_profit, cur.revenue),
        operating_margin=percent_of(cur.operating_income, cur.revenue),
        net_margin_before_tax=percent_of(cur.before_tax, cur.revenue),
        net_margin_after_tax=percent_of(cur.after_tax, cur.revenue),
    )


# =========================================================================
# 4. CASH FLOW
# =========================================================================


def classify_for_cash_flow(
    accounts: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
) -> dict[str, list[AccountInfo]]:
    """
    Classify accounts by the cash flow activity their movements belong to.

    cash:            the cash and bank accounts themselves
    income:          revenue, expenses and retained earnings (net income)
    non_cash:        accumulated depreciation, added back to net income
    working_capital: every other asset or liability of the operating cycle
    investing:       fixed assets
    financing:       loans, long-term liabilities and contributed equity
    """
    clf = config.classification
    result: dict[str, list[AccountInfo]] = {
        "cash": [],
        "income": [],
        "non_cash": [],
        "working_capital": [],
        "investing": [],
        "financing": [],
    }
    for acct in accounts.values():
        code = acct.code
        if acct.account_type in (AccountType.REVENUE, AccountType.EXPENSE):
            result["income"].append(acct)
        elif acct.account_type == AccountType.EQUITY:
            if clf.matches_prefix(code, clf.retained_earnings_prefixes):
                result["income"].append(acct)
            else:
                result["financing"].append(acct)
        elif acct.account_type == AccountType.ASSET:
            if clf.matches_prefix(code, clf.cash_account_prefixes):
                result["cash"].append(acct)
            elif clf.matches_prefix(code, clf.accumulated_depreciation_prefixes):
                result["non_cash"].append(acct)
            elif clf.matches_prefix(code, clf.fixed_asset_prefixes):
                result["investing"].append(acct)
            else:
                result["working_capital"].append(acct)
        elif acct.account_type == AccountType.LIABILITY:
            if clf.matches_prefix(code, clf.loan_prefixes) or clf.matches_prefix(
                code, clf.long_term_liability_prefixes
            ):
                result["financing"].append(acct)
            else:
                result["working_capital"].append(acct)
    return result


def build_cash_flow(
    activity: Mapping[UUID, AccountActivity],
    opening_balances: Mapping[UUID, Decimal],
    accounts: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
    tolerance: Decimal,
    method: CashFlowMethod = CashFlowMethod.INDIRECT,
) -> CashFlowReport:
    """
    Build a cash flow statement from period activity.

    Every non-cash account contributes ``credits - debits`` over the
    period: for balanced entries these contributions sum to the change in
    cash.  Operating activities start from net income (indirect method)
    or from receipts and payments (direct method); both methods give the
    same operating total.

    The closing cash position is measured from the cash accounts and
    reconciled against opening cash plus the net cash flow.
    """
    precision = config.display_precision
    clf = config.classification
    levels = compute_levels(accounts)
    classified = classify_for_cash_flow(accounts, config)

    flows = {
        account_id: act.credit_total - act.debit_total
        for account_id, act in activity.items()
    }

    def flow_of(members: Sequence[AccountInfo]) -> Decimal:
        return sum((flows.get(a.account_id, _ZERO) for a in members), _ZERO)

    def section(key: str, label: str, members, leading=()) -> _BuiltSection:
        return _make_section(
            key, label, members, flows, None, config, levels, tolerance, leading=leading,
        )

    net_income = flow_of(classified["income"])
    adjustments = classified["non_cash"] + classified["working_capital"]

    if method == CashFlowMethod.DIRECT:
        receipts = flow_of(
            [a for a in classified["income"] if a.account_type == AccountType.REVENUE]
            + [
                a for a in classified["working_capital"]
                if clf.matches_prefix(a.code, clf.receivable_prefixes)
            ]
        )
        suppliers = flow_of(
            [
                a for a in classified["income"]
                if a.account_type == AccountType.EXPENSE
                and clf.matches_prefix(a.code, clf.cogs_prefixes)
            ]
            + [
                a for a in classified["working_capital"]
                if clf.matches_prefix(a.code, clf.supplier_prefixes)
            ]
        )
        other = net_income + flow_of(adjustments) - receipts - suppliers
        operating = section(
            "operating_activities",
            "Operating Activities",
            (),
            (
                _SyntheticLine(
                    "RECEIPTS", "Cash Received from Customers",
                    "النقد المحصل من العملاء", AccountType.REVENUE, receipts,
                ),
                _SyntheticLine(
                    "SUPPLIERS", "Cash Paid to Suppliers",
                    "النقد المدفوع للموردين", AccountType.EXPENSE, suppliers,
                ),
                _SyntheticLine(
                    "OPERATING", "Cash Paid for Operating Expenses",
                    "النقد المدفوع للمصروفات التشغيلية", AccountType.EXPENSE, other,
                ),
            ),
        )
    else:
        operating = section(
            "operating_activities",
            "Operating Activities",
            adjustments,
            (
                _SyntheticLine(
                    NET_INCOME_CODE, "Net Income", "صافي الدخل",
                    AccountType.EQUITY, net_income,
                ),
            ),
        )

    investing = section("investing_activities", "Investing Activities", classified["investing"])
    financing = section("financing_activities", "Financing Activities", classified["financing"])

    cash_ids = [a.account_id for a in classified["cash"]]
    opening = sum((opening_balances.get(i, _ZERO) for i in cash_ids), _ZERO)
    closing = opening - flow_of(classified["cash"])
    net = operating.raw_total + investing.raw_total + financing.raw_total
    difference = closing - (opening + net)

    return CashFlowReport(
        metadata=metadata,
        method=method,
        net_income=round_money(net_income, precision),
        operating_activities=operating.section,
        investing_activities=investing.section,
        financing_activities=financing.section,
        net_cash_flow=_make_total("Net Cash Flow", net, precision),
        opening_cash=round_money(opening, precision),
        closing_cash=round_money(closing, precision),
        difference=round_money(difference, precision),
        is_reconciled=abs(difference) < tolerance,
    )


# =========================================================================
# 5. RENDERER (dict/JSON output)
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - date -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
