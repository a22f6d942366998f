# accounting/tests/ledger_fixtures.py

"""Shared setup for accounting tests: a seeded company + global rule pack."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from accounting.models.company import Company
from accounting.services.posting import PostingRequest, post
from accounting.services.seed_service import seed_chart, seed_rules

FY_DATE = date(2025, 5, 10)


def make_company(code: str = "acme", name: str = "Acme Exports Pvt Ltd") -> Company:
    company = Company.objects.create(code=code, name=name)
    seed_chart(company)
    return company


def seed_default_rules() -> None:
    seed_rules(None)


def invoice_fields(**overrides) -> dict:
    fields = {
        "customer_id": "C001",
        "customer_name": "Globex",
        "invoice_type": "b2b",
        "is_export": False,
        "is_interstate": False,
        "subtotal": "10000.00",
        "total_cgst": "900.00",
        "total_sgst": "900.00",
        "total_igst": "0",
        "total_amount": "11800.00",
    }
    fields.update(overrides)
    return fields


def payment_fields(**overrides) -> dict:
    fields = {
        "customer_id": "C001",
        "customer_name": "Globex",
        "amount": "11800.00",
        "net_amount": "11800.00",
        "tds_amount": "0",
        "tds_applicable": False,
    }
    fields.update(overrides)
    return fields


def post_invoice(company, source_id="INV-1", event_date=FY_DATE, **overrides):
    return post(
        PostingRequest(
            company=company,
            source_type="invoice",
            source_id=source_id,
            trigger_event="on_finalize",
            event_date=event_date,
            event_fields=invoice_fields(**overrides),
            source_number=source_id,
        )
    )


def post_payment(company, source_id="PMT-1", event_date=FY_DATE, **overrides):
    return post(
        PostingRequest(
            company=company,
            source_type="payment",
            source_id=source_id,
            trigger_event="on_create",
            event_date=event_date,
            event_fields=payment_fields(**overrides),
            source_number=source_id,
        )
    )


def lines_by_code(entry) -> dict:
    return {
        line.account_code: (line.debit_amount, line.credit_amount)
        for line in entry.lines.order_by("line_number")
    }


D = Decimal
