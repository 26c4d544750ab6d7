# accounting/chart.py
"""
Default chart of accounts.

Each row: (code, name, name_ar, account_type, parent_code, is_contra).
Rows are ordered so every parent precedes its children. Seeded by the
seed_chart_of_accounts management command through ensure_account, so
reseeding an existing chart is a no-op.

The document posting accounts (LEDGER_POSTING_ACCOUNTS) all exist here.
"""

from accounting.models import Account

ASSET = Account.AccountType.ASSET
LIABILITY = Account.AccountType.LIABILITY
EQUITY = Account.AccountType.EQUITY
REVENUE = Account.AccountType.REVENUE
EXPENSE = Account.AccountType.EXPENSE


DEFAULT_CHART = [
    # Assets
    ("0001", "Assets", "الأصول", ASSET, None, False),
    ("1100", "Current Assets", "أصول متداولة", ASSET, "0001", False),
    ("1110", "Cash and Cash Equivalents", "النقد وما في حكمه", ASSET, "1100", False),
    ("1111", "Main Cash", "صندوق رئيسي", ASSET, "1110", False),
    ("1112", "Sub Cash", "صندوق فرعي", ASSET, "1110", False),
    ("1120", "Banks", "بنوك", ASSET, "1100", False),
    ("1121", "Main Bank", "البنك الرئيسي", ASSET, "1120", False),
    ("1140", "Accounts Receivable", "الذمم المدينة", ASSET, "1100", False),
    ("1141", "Customers", "عملاء", ASSET, "1140", False),
    ("1142", "Other Receivables", "ذمم مدينة أخرى", ASSET, "1140", False),
    ("1150", "Advances and Deposits", "سلف وعهد", ASSET, "1100", False),
    ("1151", "Employee Advances", "سلف موظفين", ASSET, "1150", False),
    ("1160", "Inventory", "المخزون", ASSET, "1100", False),
    ("1161", "Merchandise Inventory", "مخزون بضائع", ASSET, "1160", False),
    ("1200", "Non-Current Assets", "أصول غير متداولة", ASSET, "0001", False),
    ("1210", "Property and Equipment", "ممتلكات ومعدات", ASSET, "1200", False),
    ("1211", "Equipment", "أجهزة", ASSET, "1210", False),
    ("1212", "Furniture", "أثاث", ASSET, "1210", False),
    ("1213", "Vehicles", "سيارات", ASSET, "1210", False),
    ("1220", "Accumulated Depreciation", "مجمع الإهلاك", ASSET, "1200", True),
    ("1221", "Accumulated Depreciation - Equipment", "مجمع إهلاك أجهزة", ASSET, "1220", True),
    ("1222", "Accumulated Depreciation - Vehicles", "مجمع إهلاك سيارات", ASSET, "1220", True),

    # Liabilities
    ("0002", "Liabilities", "الالتزامات", LIABILITY, None, False),
    ("2100", "Current Liabilities", "التزامات متداولة", LIABILITY, "0002", False),
    ("2110", "Accounts Payable", "الذمم الدائنة", LIABILITY, "2100", False),
    ("2111", "Suppliers", "موردون", LIABILITY, "2110", False),
    ("2130", "Government Payables", "مستحقات حكومية", LIABILITY, "2100", False),
    ("2131", "GOSI Payable", "التأمينات الاجتماعية", LIABILITY, "2130", False),
    ("2140", "Tax Payables", "ضرائب مستحقة", LIABILITY, "2100", False),
    ("2141", "VAT", "ضريبة القيمة المضافة", LIABILITY, "2140", False),
    ("2142", "Other Taxes", "ضرائب أخرى", LIABILITY, "2140", False),
    ("2150", "Accrued Expenses", "مصروفات مستحقة", LIABILITY, "2100", False),
    ("2400", "Payroll Liabilities", "التزامات الرواتب", LIABILITY, "0002", False),
    ("2430", "Accrued Payroll", "رواتب مستحقة", LIABILITY, "2400", False),
    ("2431", "Payroll Deductions Payable", "مستحقات استقطاعات الرواتب", LIABILITY, "2400", False),
    ("2200", "Non-Current Liabilities", "التزامات غير متداولة", LIABILITY, "0002", False),
    ("2210", "Long-term Loans", "قروض طويلة الأجل", LIABILITY, "2200", False),

    # Equity
    ("0003", "Equity", "حقوق الملكية", EQUITY, None, False),
    ("3100", "Capital", "رأس المال", EQUITY, "0003", False),
    ("3200", "Retained Earnings", "الأرباح المحتجزة", EQUITY, "0003", False),
    ("3300", "Owner Current Account", "جاري المالك", EQUITY, "0003", False),

    # Revenue
    ("0004", "Revenue", "الإيرادات", REVENUE, None, False),
    ("4100", "Operating Revenue", "الإيرادات التشغيلية", REVENUE, "0004", False),
    ("4111", "Cash Sales", "مبيعات نقدية", REVENUE, "4100", False),
    ("4112", "Credit Sales", "مبيعات آجلة", REVENUE, "4100", False),
    ("4113", "Service Revenue", "إيرادات خدمات", REVENUE, "4100", False),
    ("4200", "Other Revenue", "إيرادات أخرى", REVENUE, "0004", False),
    ("4220", "Discount Received from Suppliers", "خصم مكتسب من الموردين", REVENUE, "4200", False),

    # Expenses
    ("0005", "Expenses", "المصروفات", EXPENSE, None, False),
    ("5100", "Operating Expenses", "مصروفات تشغيلية", EXPENSE, "0005", False),
    ("5110", "Cost of Goods Sold", "تكلفة مبيعات", EXPENSE, "5100", False),
    ("5120", "Electricity Expense", "مصروف كهرباء", EXPENSE, "5100", False),
    ("5130", "Water Expense", "مصروف ماء", EXPENSE, "5100", False),
    ("5140", "Telecom Expense", "مصروف اتصالات", EXPENSE, "5100", False),
    ("5200", "Administrative and General Expenses", "مصروفات إدارية وعمومية", EXPENSE, "0005", False),
    ("5201", "Purchases", "مشتريات", EXPENSE, "5200", False),
    ("5210", "Salaries and Wages", "رواتب وأجور", EXPENSE, "5200", False),
    ("5220", "Allowances", "بدلات", EXPENSE, "5200", False),
    ("5250", "Bank Expenses", "مصروفات بنكية", EXPENSE, "5200", False),
    ("5260", "Miscellaneous Expenses", "مصروفات متنوعة", EXPENSE, "5200", False),
    ("5270", "Discount Given to Customers", "خصم ممنوح للعملاء", EXPENSE, "5200", False),
    ("5300", "Financial Expenses", "مصروفات مالية", EXPENSE, "0005", False),
    ("5310", "Bank Interest", "فوائد بنكية", EXPENSE, "5300", False),
]
