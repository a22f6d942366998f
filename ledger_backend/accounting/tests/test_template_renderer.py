# accounting/tests/test_template_renderer.py

from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase

from accounting.event_schema import RuleDefinitionError
from accounting.posting_templates import parse_template, template_account_codes, template_fields
from accounting.services.exceptions import FieldResolutionError, UnbalancedTemplateError
from accounting.services.template_renderer import render

SALES_TEMPLATE = {
    "description_template": "Invoice #{source_number} - {customer_name}",
    "lines": [
        {
            "account_code": "1120",
            "side": "debit",
            "amount_field": "total_amount",
            "subledger_type": "customer",
            "subledger_id_field": "customer_id",
        },
        {
            "account_code_field": "revenue_account_code",
            "account_code_fallback": "4110",
            "side": "credit",
            "amount_field": "subtotal",
        },
        {"account_code": "2251", "credit_field": "total_cgst", "skip_if_zero": True},
        {"account_code": "2252", "credit_field": "total_sgst", "skip_if_zero": True},
        {"account_code": "2253", "credit_field": "total_igst", "skip_if_zero": True},
    ],
}


def _render(fields, template=SALES_TEMPLATE, **kwargs):
    kwargs.setdefault("base_currency", "INR")
    kwargs.setdefault("context", {"source_number": "INV-7"})
    return render(parse_template(template), fields, **kwargs)


class TemplateParsingTests(SimpleTestCase):
    def test_fields_and_codes(self):
        tpl = parse_template(SALES_TEMPLATE)
        self.assertEqual(template_account_codes(tpl), {"1120", "4110", "2251", "2252", "2253"})
        self.assertTrue(
            {"customer_name", "total_amount", "customer_id", "revenue_account_code"} <= template_fields(tpl)
        )

    def test_one_sided_template_rejected(self):
        with self.assertRaises(RuleDefinitionError):
            parse_template({"lines": [{"account_code": "1", "side": "debit", "amount_field": "a"}]})

    def test_side_must_be_given_once(self):
        with self.assertRaises(RuleDefinitionError):
            parse_template(
                {
                    "lines": [
                        {"account_code": "1", "side": "debit", "amount_field": "a", "credit_field": "b"},
                        {"account_code": "2", "side": "credit", "amount_field": "a"},
                    ]
                }
            )

    def test_subledger_spec_needs_both_keys(self):
        with self.assertRaises(RuleDefinitionError):
            parse_template(
                {
                    "lines": [
                        {"account_code": "1", "side": "debit", "amount_field": "a", "subledger_type": "customer"},
                        {"account_code": "2", "side": "credit", "amount_field": "a"},
                    ]
                }
            )


class RendererTests(SimpleTestCase):
    def test_intra_state_invoice(self):
        rendered = _render(
            {
                "customer_id": "C001",
                "customer_name": "Globex",
                "subtotal": "10000",
                "total_cgst": "900",
                "total_sgst": "900",
                "total_igst": 0,
                "total_amount": "11800",
            }
        )

        self.assertEqual(rendered.description, "Invoice #INV-7 - Globex")
        self.assertEqual([line.account_code for line in rendered.lines], ["1120", "4110", "2251", "2252"])
        self.assertEqual(rendered.total_debit, Decimal("11800.00"))
        self.assertEqual(rendered.total_credit, Decimal("11800.00"))
        self.assertEqual(rendered.lines[0].subledger.id, "C001")
        self.assertIsNone(rendered.lines[0].foreign_amount)

    def test_account_code_field_wins_over_fallback(self):
        fields = {"customer_id": "C1", "subtotal": "100", "total_amount": "100", "revenue_account_code": "4120"}
        rendered = _render(fields)
        self.assertEqual(rendered.lines[1].account_code, "4120")

        fields["revenue_account_code"] = "  "
        self.assertEqual(_render(fields).lines[1].account_code, "4110")

    def test_missing_required_amount(self):
        with self.assertRaises(FieldResolutionError) as ctx:
            _render({"customer_id": "C1", "total_amount": "100"})
        self.assertEqual(ctx.exception.context["field"], "subtotal")

    def test_zero_required_amount_is_an_error(self):
        with self.assertRaises(FieldResolutionError):
            _render({"customer_id": "C1", "total_amount": "0", "subtotal": "0"})

    def test_missing_subledger_party(self):
        with self.assertRaises(FieldResolutionError):
            _render({"total_amount": "100", "subtotal": "100"})

    def test_negative_amount(self):
        with self.assertRaises(FieldResolutionError):
            _render({"customer_id": "C1", "total_amount": "-100", "subtotal": "-100"})

    def test_unbalanced_render(self):
        with self.assertRaises(UnbalancedTemplateError):
            _render({"customer_id": "C1", "total_amount": "118", "subtotal": "100", "total_cgst": "9"})

    def test_everything_skipped_is_empty(self):
        template = {
            "lines": [
                {"account_code": "5020", "debit_field": "gross_amount", "skip_if_zero": True},
                {"account_code": "1112", "credit_field": "net_amount", "skip_if_zero": True},
            ]
        }
        rendered = _render({"gross_amount": "0.00"}, template=template)
        self.assertTrue(rendered.is_empty)

    def test_amounts_round_half_up(self):
        template = {
            "lines": [
                {"account_code": "5510", "debit_field": "amount"},
                {"account_code": "1112", "credit_field": "amount"},
            ]
        }
        rendered = _render({"amount": "10.005"}, template=template)
        self.assertEqual(rendered.lines[0].amount, Decimal("10.01"))


class ForeignCurrencyTests(SimpleTestCase):
    EXPORT = {
        "lines": [
            {
                "account_code": "1120",
                "side": "debit",
                "amount_field": "total_amount",
                "subledger_type": "customer",
                "subledger_id_field": "customer_id",
            },
            {"account_code": "4120", "side": "credit", "amount_field": "total_amount"},
        ]
    }

    def test_converted_at_event_rate(self):
        rendered = _render(
            {"customer_id": "C9", "total_amount": "100", "currency": "usd", "exchange_rate": "83.25"},
            template=self.EXPORT,
        )
        line = rendered.lines[0]
        self.assertEqual(rendered.currency, "USD")
        self.assertEqual(line.amount, Decimal("8325.00"))
        self.assertEqual(line.foreign_amount, Decimal("100.00"))
        self.assertEqual(line.exchange_rate, Decimal("83.250000"))

    def test_rate_required_for_foreign_currency(self):
        with self.assertRaises(FieldResolutionError):
            _render({"customer_id": "C9", "total_amount": "100", "currency": "USD"}, template=self.EXPORT)

        with self.assertRaises(FieldResolutionError):
            _render(
                {"customer_id": "C9", "total_amount": "100", "currency": "USD", "exchange_rate": "0"},
                template=self.EXPORT,
            )

    def test_conversion_residual_keeps_base_balanced(self):
        template = {
            "lines": [
                {"account_code": "1112", "debit_field": "amount"},
                {"account_code": "4110", "credit_field": "a"},
                {"account_code": "4120", "credit_field": "b"},
                {"account_code": "4510", "credit_field": "c"},
            ]
        }
        rendered = _render(
            {"amount": "100.00", "a": "33.33", "b": "33.33", "c": "33.34", "currency": "EUR", "exchange_rate": "1.5"},
            template=template,
        )
        self.assertEqual(rendered.total_debit, rendered.total_credit)
        self.assertEqual(rendered.total_debit, Decimal("150.01"))
