# accounting/event_schema.py

"""
PATH: accounting/event_schema.py

EVENT FIELD SCHEMA (FRAMEWORK-AGNOSTIC)

Posting rules reference event fields by name: in conditions
({"tds_applicable": true}), in amount / account-code / subledger-id field
references, and in {field} description placeholders. A rule may only reference
fields that the producing collaborator actually sends for its source type.

This module is the catalogue of those names. Rule validation (model clean +
validate_posting_rules) checks every reference against it, so typos fail when
the rule is saved instead of when the first event arrives.

Extensions:
- settings.ACCOUNTING_EVENT_FIELDS = {"invoice": ["project_code"], ...}
  is merged in by callers through the `extra` argument.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Mapping, Optional


class RuleDefinitionError(ValueError):
    """Raised when a rule's conditions or template are malformed."""


# Source types
INVOICE = "invoice"
VENDOR_INVOICE = "vendor_invoice"
PAYMENT = "payment"
VENDOR_PAYMENT = "vendor_payment"
PAYROLL_RUN = "payroll_run"
EXPENSE_CLAIM = "expense_claim"
CONTRACTOR_PAYMENT = "contractor_payment"

# Engine-internal source types (never rule driven)
REVERSAL = "reversal"
PERIOD_CLOSE = "period_close"

INTERNAL_SOURCE_TYPES = frozenset({REVERSAL, PERIOD_CLOSE})

SOURCE_TYPE_CHOICES = [
    (INVOICE, "Sales invoice"),
    (VENDOR_INVOICE, "Vendor bill"),
    (PAYMENT, "Customer payment"),
    (VENDOR_PAYMENT, "Vendor payment"),
    (PAYROLL_RUN, "Payroll run"),
    (EXPENSE_CLAIM, "Expense claim"),
    (CONTRACTOR_PAYMENT, "Contractor payment"),
]

# Trigger events
ON_CREATE = "on_create"
ON_FINALIZE = "on_finalize"
ON_APPROVAL = "on_approval"
ON_PAYMENT = "on_payment"
ON_CANCEL = "on_cancel"
ON_REVERSE = "on_reverse"
ON_CLOSE = "on_close"

TRIGGER_EVENT_CHOICES = [
    (ON_CREATE, "On create"),
    (ON_FINALIZE, "On finalize"),
    (ON_APPROVAL, "On approval"),
    (ON_PAYMENT, "On payment"),
    (ON_CANCEL, "On cancel"),
]

# Available to every source type
COMMON_FIELDS: FrozenSet[str] = frozenset(
    {
        "source_type",
        "source_id",
        "source_number",
        "trigger_event",
        "event_date",
        "description",
        "narration",
        "currency",
        "exchange_rate",
        "status",
    }
)

SOURCE_TYPE_FIELDS: Dict[str, FrozenSet[str]] = {
    INVOICE: frozenset(
        {
            "customer_id",
            "customer_name",
            "total_amount",
            "subtotal",
            "total_cgst",
            "total_sgst",
            "total_igst",
            "total_cess",
            "discount_amount",
            "round_off",
            "invoice_type",
            "supply_type",
            "is_export",
            "is_interstate",
            "place_of_supply",
            "revenue_account_code",
        }
    ),
    VENDOR_INVOICE: frozenset(
        {
            "vendor_id",
            "vendor_name",
            "bill_number",
            "total_amount",
            "subtotal",
            "total_cgst",
            "total_sgst",
            "total_igst",
            "tds_amount",
            "net_payable",
            "is_interstate",
            "reverse_charge",
            "tds_applicable",
            "tds_section",
            "expense_account_code",
        }
    ),
    PAYMENT: frozenset(
        {
            "customer_id",
            "customer_name",
            "amount",
            "tds_amount",
            "net_amount",
            "tds_applicable",
            "tds_section",
            "payment_mode",
            "bank_account_id",
            "bank_account_code",
        }
    ),
    VENDOR_PAYMENT: frozenset(
        {
            "vendor_id",
            "vendor_name",
            "amount",
            "tds_amount",
            "net_amount",
            "tds_applicable",
            "tds_section",
            "payment_mode",
            "bank_account_id",
            "bank_account_code",
        }
    ),
    PAYROLL_RUN: frozenset(
        {
            "payroll_month",
            "employee_id",
            "total_gross",
            "total_basic",
            "total_hra",
            "total_allowances",
            "total_net_pay",
            "total_pf_employee",
            "total_pf_employer",
            "total_esi_employee",
            "total_esi_employer",
            "total_professional_tax",
            "total_tds",
            "salary_expense_account_code",
            "bank_account_id",
            "bank_account_code",
        }
    ),
    EXPENSE_CLAIM: frozenset(
        {
            "employee_id",
            "employee_name",
            "claim_number",
            "amount",
            "approved_amount",
            "category",
            "expense_account_code",
            "bank_account_id",
            "bank_account_code",
        }
    ),
    CONTRACTOR_PAYMENT: frozenset(
        {
            "vendor_id",
            "vendor_name",
            "gross_amount",
            "tds_amount",
            "net_amount",
            "tds_applicable",
            "tds_section",
            "expense_account_code",
            "bank_account_id",
            "bank_account_code",
        }
    ),
}


def rule_source_types() -> FrozenSet[str]:
    return frozenset(SOURCE_TYPE_FIELDS)


def permitted_fields(
    source_type: str,
    extra: Optional[Mapping[str, Iterable[str]]] = None,
) -> FrozenSet[str]:
    """
    Field names a rule for `source_type` may reference.

    Unknown (or engine-internal) source types are rejected.
    """
    source_type = (source_type or "").strip()
    extra = extra or {}

    base = SOURCE_TYPE_FIELDS.get(source_type)
    if base is None and source_type not in extra:
        raise RuleDefinitionError(f"Unknown source type for posting rules: {source_type!r}")

    return COMMON_FIELDS | (base or frozenset()) | frozenset(extra.get(source_type, ()))
