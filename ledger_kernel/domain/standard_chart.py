"""
Standard chart of accounts for a UAE trading company.

Bilingual (English / Arabic).  Group levels are control accounts so they
only aggregate; leaves accept postings.  Code bands line up with the
statement classification defaults: 11xx current assets, 12xx fixed
assets, 21xx current liabilities, 22xx long-term liabilities, 42xx other
income, 5xxx cost of goods sold, 6xxx operating expenses.
"""

from dataclasses import dataclass

from ledger_kernel.domain.values import AccountType


@dataclass(frozen=True)
class ChartAccount:
    code: str
    name: str
    name_ar: str
    account_type: AccountType
    parent_code: str | None = None
    is_control_account: bool = False


_A = AccountType.ASSET
_L = AccountType.LIABILITY
_E = AccountType.EQUITY
_R = AccountType.REVENUE
_X = AccountType.EXPENSE

# Parents always precede their children.
STANDARD_CHART: tuple[ChartAccount, ...] = (
    ChartAccount("1000", "ASSETS", "الأصول", _A, None, True),
    ChartAccount("1100", "Current Assets", "الأصول المتداولة", _A, "1000", True),
    ChartAccount("1110", "Cash in Hand", "النقد في الصندوق", _A, "1100"),
    ChartAccount("1120", "Bank Accounts", "الحسابات البنكية", _A, "1100"),
    ChartAccount("1130", "Accounts Receivable", "الذمم المدينة", _A, "1100"),
    ChartAccount("1140", "Inventory - Raw Materials", "المخزون - المواد الخام", _A, "1100"),
    ChartAccount("1150", "Inventory - Finished Goods", "المخزون - البضائع الجاهزة", _A, "1100"),
    ChartAccount("1160", "Prepaid Expenses", "المصروفات المدفوعة مقدماً", _A, "1100"),
    ChartAccount("1170", "VAT Recoverable", "ضريبة القيمة المضافة القابلة للاسترداد", _A, "1100"),
    ChartAccount("1200", "Fixed Assets", "الأصول الثابتة", _A, "1000", True),
    ChartAccount("1210", "Property, Plant & Equipment", "الممتلكات والمصانع والمعدات", _A, "1200"),
    ChartAccount("1220", "Accumulated Depreciation", "مجمع الإهلاك", _A, "1200"),
    ChartAccount("2000", "LIABILITIES", "الخصوم", _L, None, True),
    ChartAccount("2100", "Current Liabilities", "الخصوم المتداولة", _L, "2000", True),
    ChartAccount("2110", "Accounts Payable", "الذمم الدائنة", _L, "2100"),
    ChartAccount("2120", "VAT Payable", "ضريبة القيمة المضافة المستحقة", _L, "2100"),
    ChartAccount("2130", "Accrued Expenses", "المصروفات المستحقة", _L, "2100"),
    ChartAccount("2140", "Short-term Loans", "القروض قصيرة الأجل", _L, "2100"),
    ChartAccount("2200", "Long-term Liabilities", "الخصوم طويلة الأجل", _L, "2000", True),
    ChartAccount("2210", "Long-term Loans", "القروض طويلة الأجل", _L, "2200"),
    ChartAccount("3000", "EQUITY", "حقوق الملكية", _E, None, True),
    ChartAccount("3100", "Share Capital", "رأس المال", _E, "3000"),
    ChartAccount("3200", "Retained Earnings", "الأرباح المحتجزة", _E, "3000"),
    ChartAccount("3300", "Current Year Profit/Loss", "ربح/خسارة العام الحالي", _E, "3000"),
    ChartAccount("4000", "REVENUE", "الإيرادات", _R, None, True),
    ChartAccount("4100", "Sales Revenue", "إيرادات المبيعات", _R, "4000"),
    ChartAccount("4110", "Perfume Sales", "مبيعات العطور", _R, "4100"),
    ChartAccount("4120", "Oud Sales", "مبيعات العود", _R, "4100"),
    ChartAccount("4200", "Other Income", "إيرادات أخرى", _R, "4000"),
    ChartAccount("5000", "COST OF GOODS SOLD", "تكلفة البضائع المباعة", _X, None, True),
    ChartAccount("5100", "Raw Material Costs", "تكاليف المواد الخام", _X, "5000"),
    ChartAccount("5200", "Direct Labor", "العمالة المباشرة", _X, "5000"),
    ChartAccount("5300", "Manufacturing Overhead", "تكاليف التصنيع العامة", _X, "5000"),
    ChartAccount("6000", "OPERATING EXPENSES", "المصروفات التشغيلية", _X, None, True),
    ChartAccount("6100", "Selling Expenses", "مصروفات البيع", _X, "6000"),
    ChartAccount("6200", "Administrative Expenses", "المصروفات الإدارية", _X, "6000"),
    ChartAccount("6300", "Rent Expense", "مصروف الإيجار", _X, "6200"),
    ChartAccount("6400", "Utilities", "المرافق", _X, "6200"),
    ChartAccount("6500", "Depreciation Expense", "مصروف الإهلاك", _X, "6200"),
)
