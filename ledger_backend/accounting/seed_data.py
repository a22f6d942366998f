# accounting/seed_data.py

"""
PATH: accounting/seed_data.py

DEFAULT SEED DATA (Indian chart of accounts + default posting rule pack)

CHART rows: (code, name, account_type, parent_code, control_account_type)
RULES: PostingRule field dicts; every (source_type, trigger_event) pair has
a fallback rule (priority 1000, no conditions).
"""

from __future__ import annotations

from accounting.event_schema import (
    CONTRACTOR_PAYMENT,
    EXPENSE_CLAIM,
    INVOICE,
    ON_APPROVAL,
    ON_CREATE,
    ON_FINALIZE,
    PAYMENT,
    PAYROLL_RUN,
    VENDOR_INVOICE,
    VENDOR_PAYMENT,
)

ASSET = "asset"
LIABILITY = "liability"
EQUITY = "equity"
INCOME = "income"
EXPENSE = "expense"

FALLBACK_PRIORITY = 1000

CHART = [
    # ASSETS
    ("1000", "Current Assets", ASSET, None, ""),
    ("1100", "Cash and Cash Equivalents", ASSET, "1000", ""),
    ("1111", "Cash in Hand", ASSET, "1100", ""),
    ("1112", "Bank Accounts - Current", ASSET, "1100", ""),
    ("1113", "Bank Accounts - Savings", ASSET, "1100", ""),
    ("1120", "Trade Receivables", ASSET, "1000", "receivables"),
    ("1130", "TDS Receivable", ASSET, "1000", "tds_receivable"),
    ("1131", "TDS Receivable - 194J", ASSET, "1130", ""),
    ("1132", "TDS Receivable - 194C", ASSET, "1130", ""),
    ("1133", "TDS Receivable - 194H", ASSET, "1130", ""),
    ("1140", "GST Input Credit", ASSET, "1000", "gst_input"),
    ("1141", "CGST Input", ASSET, "1140", ""),
    ("1142", "SGST Input", ASSET, "1140", ""),
    ("1143", "IGST Input", ASSET, "1140", ""),
    ("1150", "Advances and Prepayments", ASSET, "1000", ""),
    ("1600", "Fixed Assets", ASSET, None, ""),
    ("1650", "Office Equipment", ASSET, "1600", ""),
    ("1660", "Computers and IT Equipment", ASSET, "1600", ""),
    # LIABILITIES
    ("2000", "Current Liabilities", LIABILITY, None, ""),
    ("2100", "Trade Payables", LIABILITY, "2000", "payables"),
    ("2110", "Salary Payable", LIABILITY, "2000", ""),
    ("2200", "Statutory Dues", LIABILITY, "2000", ""),
    ("2220", "PF Payable", LIABILITY, "2200", ""),
    ("2230", "ESI Payable", LIABILITY, "2200", ""),
    ("2240", "Professional Tax Payable", LIABILITY, "2200", ""),
    ("2250", "GST Output", LIABILITY, "2200", ""),
    ("2251", "CGST Payable", LIABILITY, "2250", ""),
    ("2252", "SGST Payable", LIABILITY, "2250", ""),
    ("2253", "IGST Payable", LIABILITY, "2250", ""),
    ("2260", "TDS Payable", LIABILITY, "2200", ""),
    ("2310", "Advance from Customers", LIABILITY, "2000", ""),
    ("2500", "Non-Current Liabilities", LIABILITY, None, ""),
    ("2510", "Long-Term Borrowings", LIABILITY, "2500", "loans"),
    # EQUITY
    ("3000", "Equity", EQUITY, None, ""),
    ("3100", "Retained Earnings", EQUITY, "3000", ""),
    ("3200", "Share Capital", EQUITY, "3000", ""),
    # INCOME
    ("4000", "Revenue", INCOME, None, ""),
    ("4110", "Domestic Sales", INCOME, "4000", ""),
    ("4120", "Export Sales", INCOME, "4000", ""),
    ("4500", "Other Income", INCOME, None, ""),
    ("4510", "Interest Income", INCOME, "4500", ""),
    ("4540", "Foreign Exchange Gain", INCOME, "4500", ""),
    # EXPENSES
    ("5000", "Direct Costs", EXPENSE, None, ""),
    ("5020", "Contractor Payments", EXPENSE, "5000", ""),
    ("5100", "Purchases", EXPENSE, "5000", ""),
    ("5200", "Salaries", EXPENSE, None, ""),
    ("5210", "Salaries and Wages", EXPENSE, "5200", ""),
    ("5220", "Employer PF Contribution", EXPENSE, "5200", ""),
    ("5230", "Employer ESI Contribution", EXPENSE, "5200", ""),
    ("5500", "Operating Expenses", EXPENSE, None, ""),
    ("5510", "Rent Expense", EXPENSE, "5500", ""),
    ("5540", "Travel and Conveyance", EXPENSE, "5500", ""),
    ("5550", "Professional Fees", EXPENSE, "5500", ""),
    ("5560", "Office Expenses", EXPENSE, "5500", ""),
    ("5580", "Bank Charges", EXPENSE, "5500", ""),
    ("5630", "Foreign Exchange Loss", EXPENSE, "5500", ""),
]


def _receivable(amount_field: str, side: str = "debit") -> dict:
    return {
        "account_code": "1120",
        "side": side,
        "amount_field": amount_field,
        "subledger_type": "customer",
        "subledger_id_field": "customer_id",
        "description": "Trade Receivables - {customer_name}",
    }


def _payable(amount_field: str, side: str = "credit", kind: str = "vendor", id_field: str = "vendor_id") -> dict:
    return {
        "account_code": "2100",
        "side": side,
        "amount_field": amount_field,
        "subledger_type": kind,
        "subledger_id_field": id_field,
        "description": "Trade Payables",
    }


def _bank(amount_field: str, side: str) -> dict:
    return {
        "account_code_field": "bank_account_code",
        "account_code_fallback": "1112",
        "side": side,
        "amount_field": amount_field,
        "description": "Bank Account",
    }


RULES = [
    # =============================================================
    # INVOICES (invoice / on_finalize)
    # =============================================================
    {
        "rule_code": "INV_EXPORT",
        "rule_name": "Invoice - Export (Zero-rated)",
        "source_type": INVOICE,
        "trigger_event": ON_FINALIZE,
        "priority": 90,
        "conditions": {"is_export": True},
        "template": {
            "description_template": "Export Invoice #{source_number} - {customer_name}",
            "lines": [
                _receivable("total_amount"),
                {"account_code": "4120", "side": "credit", "amount_field": "total_amount", "description": "Sales - Export"},
            ],
        },
    },
    {
        "rule_code": "INV_DOM_INTRA_B2B",
        "rule_name": "Invoice - Domestic B2B Intra-state (CGST+SGST)",
        "source_type": INVOICE,
        "trigger_event": ON_FINALIZE,
        "priority": 100,
        "conditions": {"invoice_type": "b2b", "is_export": False, "is_interstate": False},
        "template": {
            "description_template": "Invoice #{source_number} - {customer_name}",
            "lines": [
                _receivable("total_amount"),
                {"account_code": "4110", "side": "credit", "amount_field": "subtotal", "description": "Sales - Domestic"},
                {"account_code": "2251", "side": "credit", "amount_field": "total_cgst", "skip_if_zero": True, "description": "CGST Output"},
                {"account_code": "2252", "side": "credit", "amount_field": "total_sgst", "skip_if_zero": True, "description": "SGST Output"},
            ],
        },
    },
    {
        "rule_code": "INV_DOM_INTER_B2B",
        "rule_name": "Invoice - Domestic B2B Inter-state (IGST)",
        "source_type": INVOICE,
        "trigger_event": ON_FINALIZE,
        "priority": 110,
        "conditions": {"invoice_type": "b2b", "is_export": False, "is_interstate": True},
        "template": {
            "description_template": "Invoice #{source_number} - {customer_name}",
            "lines": [
                _receivable("total_amount"),
                {"account_code": "4110", "side": "credit", "amount_field": "subtotal", "description": "Sales - Domestic"},
                {"account_code": "2253", "side": "credit", "amount_field": "total_igst", "skip_if_zero": True, "description": "IGST Output"},
            ],
        },
    },
    {
        "rule_code": "INV_DEFAULT",
        "rule_name": "Invoice - Default",
        "source_type": INVOICE,
        "trigger_event": ON_FINALIZE,
        "priority": FALLBACK_PRIORITY,
        "is_fallback": True,
        "template": {
            "description_template": "Invoice #{source_number} - {customer_name}",
            "lines": [
                _receivable("total_amount"),
                {
                    "account_code_field": "revenue_account_code",
                    "account_code_fallback": "4110",
                    "side": "credit",
                    "amount_field": "subtotal",
                    "description": "Sales",
                },
                {"account_code": "2251", "credit_field": "total_cgst", "skip_if_zero": True, "description": "CGST Output"},
                {"account_code": "2252", "credit_field": "total_sgst", "skip_if_zero": True, "description": "SGST Output"},
                {"account_code": "2253", "credit_field": "total_igst", "skip_if_zero": True, "description": "IGST Output"},
            ],
        },
    },
    # =============================================================
    # PAYMENT RECEIPTS (payment / on_create)
    # =============================================================
    {
        "rule_code": "PMT_RECEIPT_TDS_194J",
        "rule_name": "Payment Receipt - With TDS 194J",
        "source_type": PAYMENT,
        "trigger_event": ON_CREATE,
        "priority": 90,
        "conditions": {"tds_applicable": True, "tds_section": "194J"},
        "template": {
            "description_template": "Payment from {customer_name} - {source_number} (TDS 194J)",
            "lines": [
                _bank("net_amount", "debit"),
                {"account_code": "1131", "side": "debit", "amount_field": "tds_amount", "description": "TDS Receivable - 194J"},
                _receivable("amount", side="credit"),
            ],
        },
    },
    {
        "rule_code": "PMT_RECEIPT_NO_TDS",
        "rule_name": "Payment Receipt - Without TDS",
        "source_type": PAYMENT,
        "trigger_event": ON_CREATE,
        "priority": FALLBACK_PRIORITY,
        "is_fallback": True,
        "template": {
            "description_template": "Payment from {customer_name} - {source_number}",
            "lines": [
                _bank("amount", "debit"),
                _receivable("amount", side="credit"),
            ],
        },
    },
    # =============================================================
    # VENDOR BILLS (vendor_invoice / on_approval)
    # =============================================================
    {
        "rule_code": "VBILL_DOM_INTRA",
        "rule_name": "Vendor Bill - Domestic Intra-state",
        "source_type": VENDOR_INVOICE,
        "trigger_event": ON_APPROVAL,
        "priority": 100,
        "conditions": {"is_interstate": False, "reverse_charge": False},
        "template": {
            "description_template": "Vendor Bill {bill_number} - {vendor_name}",
            "lines": [
                {
                    "account_code_field": "expense_account_code",
                    "account_code_fallback": "5100",
                    "side": "debit",
                    "amount_field": "subtotal",
                    "description": "Purchases",
                },
                {"account_code": "1141", "side": "debit", "amount_field": "total_cgst", "skip_if_zero": True, "description": "CGST Input"},
                {"account_code": "1142", "side": "debit", "amount_field": "total_sgst", "skip_if_zero": True, "description": "SGST Input"},
                _payable("total_amount"),
            ],
        },
    },
    {
        "rule_code": "VBILL_DEFAULT",
        "rule_name": "Vendor Bill - Default",
        "source_type": VENDOR_INVOICE,
        "trigger_event": ON_APPROVAL,
        "priority": FALLBACK_PRIORITY,
        "is_fallback": True,
        "template": {
            "description_template": "Vendor Bill {bill_number} - {vendor_name}",
            "lines": [
                {
                    "account_code_field": "expense_account_code",
                    "account_code_fallback": "5100",
                    "side": "debit",
                    "amount_field": "subtotal",
                    "description": "Purchases",
                },
                {"account_code": "1141", "debit_field": "total_cgst", "skip_if_zero": True, "description": "CGST Input"},
                {"account_code": "1142", "debit_field": "total_sgst", "skip_if_zero": True, "description": "SGST Input"},
                {"account_code": "1143", "debit_field": "total_igst", "skip_if_zero": True, "description": "IGST Input"},
                _payable("total_amount"),
            ],
        },
    },
    # =============================================================
    # VENDOR PAYMENTS (vendor_payment / on_create)
    # =============================================================
    {
        "rule_code": "VPMT_DEFAULT",
        "rule_name": "Vendor Payment - Default",
        "source_type": VENDOR_PAYMENT,
        "trigger_event": ON_CREATE,
        "priority": FALLBACK_PRIORITY,
        "is_fallback": True,
        "template": {
            "description_template": "Payment to {vendor_name} - {source_number}",
            "lines": [
                _payable("amount", side="debit"),
                _bank("amount", "credit"),
            ],
        },
    },
    # =============================================================
    # PAYROLL (payroll_run / on_approval)
    # =============================================================
    {
        "rule_code": "PAYROLL_DEFAULT",
        "rule_name": "Payroll Run - Default",
        "source_type": PAYROLL_RUN,
        "trigger_event": ON_APPROVAL,
        "priority": FALLBACK_PRIORITY,
        "is_fallback": True,
        "template": {
            "description_template": "Payroll {payroll_month}",
            "lines": [
                {
                    "account_code_field": "salary_expense_account_code",
                    "account_code_fallback": "5210",
                    "side": "debit",
                    "amount_field": "total_gross",
                    "description": "Salaries and Wages",
                },
                {"account_code": "5220", "debit_field": "total_pf_employer", "skip_if_zero": True, "description": "Employer PF"},
                {"account_code": "5230", "debit_field": "total_esi_employer", "skip_if_zero": True, "description": "Employer ESI"},
                {"account_code": "2110", "credit_field": "total_net_pay", "description": "Net salary payable"},
                {"account_code": "2220", "credit_field": "total_pf_employee", "skip_if_zero": True, "description": "Employee PF"},
                {"account_code": "2220", "credit_field": "total_pf_employer", "skip_if_zero": True, "description": "Employer PF"},
                {"account_code": "2230", "credit_field": "total_esi_employee", "skip_if_zero": True, "description": "Employee ESI"},
                {"account_code": "2230", "credit_field": "total_esi_employer", "skip_if_zero": True, "description": "Employer ESI"},
                {"account_code": "2240", "credit_field": "total_professional_tax", "skip_if_zero": True, "description": "Professional Tax"},
                {"account_code": "2260", "credit_field": "total_tds", "skip_if_zero": True, "description": "TDS on Salary"},
            ],
        },
    },
    # =============================================================
    # EXPENSE CLAIMS (expense_claim / on_approval)
    # =============================================================
    {
        "rule_code": "EXPENSE_CLAIM_DEFAULT",
        "rule_name": "Expense Claim - Default",
        "source_type": EXPENSE_CLAIM,
        "trigger_event": ON_APPROVAL,
        "priority": FALLBACK_PRIORITY,
        "is_fallback": True,
        "template": {
            "description_template": "Expense Claim {claim_number} - {employee_name}",
            "lines": [
                {
                    "account_code_field": "expense_account_code",
                    "account_code_fallback": "5560",
                    "side": "debit",
                    "amount_field": "approved_amount",
                    "description": "{category}",
                },
                _payable("approved_amount", kind="employee", id_field="employee_id"),
            ],
        },
    },
    # =============================================================
    # CONTRACTOR PAYMENTS (contractor_payment / on_create)
    # =============================================================
    {
        "rule_code": "CONTRACTOR_PMT_DEFAULT",
        "rule_name": "Contractor Payment - Default",
        "source_type": CONTRACTOR_PAYMENT,
        "trigger_event": ON_CREATE,
        "priority": FALLBACK_PRIORITY,
        "is_fallback": True,
        "template": {
            "description_template": "Contractor Payment {source_number} - {vendor_name}",
            "lines": [
                {
                    "account_code_field": "expense_account_code",
                    "account_code_fallback": "5020",
                    "side": "debit",
                    "amount_field": "gross_amount",
                    "description": "Contractor Payments",
                },
                _bank("net_amount", "credit"),
                {"account_code": "2260", "credit_field": "tds_amount", "skip_if_zero": True, "description": "TDS Payable"},
            ],
        },
    },
]
