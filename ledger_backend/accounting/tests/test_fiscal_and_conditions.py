# accounting/tests/test_fiscal_and_conditions.py

from __future__ import annotations

from datetime import date

from django.test import SimpleTestCase

from accounting import fiscal
from accounting.conditions import ConditionEvaluationError, evaluate, parse_conditions
from accounting.event_schema import RuleDefinitionError, permitted_fields


class FiscalCalendarTests(SimpleTestCase):
    def test_april_start_labels(self):
        self.assertEqual(fiscal.fiscal_year_for(date(2025, 3, 31)), "2024-25")
        self.assertEqual(fiscal.fiscal_year_for(date(2025, 4, 1)), "2025-26")
        self.assertEqual(fiscal.fiscal_year_for(date(2099, 12, 31)), "2099-00")

    def test_period_months(self):
        self.assertEqual(fiscal.period_month_for(date(2025, 4, 1)), 1)
        self.assertEqual(fiscal.period_month_for(date(2025, 12, 15)), 9)
        self.assertEqual(fiscal.period_month_for(date(2026, 3, 31)), 12)

    def test_bounds(self):
        self.assertEqual(
            fiscal.fiscal_year_bounds("2025-26"),
            (date(2025, 4, 1), date(2026, 3, 31)),
        )
        self.assertEqual(
            fiscal.period_bounds("2025-26", 11),
            (date(2026, 2, 1), date(2026, 2, 28)),
        )

    def test_invalid_labels(self):
        for label in ("2025", "2025-27", "abcd-ef"):
            with self.assertRaises(fiscal.FiscalCalendarError):
                fiscal.parse_fiscal_year(label)

    def test_entry_number_prefix(self):
        self.assertEqual(fiscal.entry_number_prefix("2025-26"), "202526")


class ConditionTests(SimpleTestCase):
    def test_empty_conditions_match_everything(self):
        self.assertTrue(evaluate(parse_conditions({}), {"anything": 1}))
        self.assertTrue(evaluate(parse_conditions(None), {}))

    def test_boolean_equality_accepts_strings(self):
        conds = parse_conditions({"is_export": True})
        self.assertTrue(evaluate(conds, {"is_export": "true"}))
        self.assertTrue(evaluate(conds, {"is_export": 1}))
        self.assertFalse(evaluate(conds, {"is_export": False}))

    def test_missing_field_never_matches(self):
        conds = parse_conditions({"tds_section": "194J"})
        self.assertFalse(evaluate(conds, {}))
        self.assertFalse(evaluate(conds, {"tds_section": None}))

    def test_strings_are_case_insensitive(self):
        conds = parse_conditions({"invoice_type": "B2B"})
        self.assertTrue(evaluate(conds, {"invoice_type": " b2b "}))

    def test_one_of_and_comparisons(self):
        conds = parse_conditions(
            {"status": ["approved", "paid"], "total_amount": {"gte": 50000, "lt": 100000}}
        )
        self.assertTrue(evaluate(conds, {"status": "paid", "total_amount": "50000.00"}))
        self.assertFalse(evaluate(conds, {"status": "draft", "total_amount": "60000"}))
        self.assertFalse(evaluate(conds, {"status": "paid", "total_amount": 100000}))

    def test_exists(self):
        conds = parse_conditions({"total_igst": {"exists": False}})
        self.assertTrue(evaluate(conds, {"total_igst": ""}))
        self.assertFalse(evaluate(conds, {"total_igst": "10"}))

    def test_non_numeric_comparison_raises(self):
        conds = parse_conditions({"total_amount": {"gt": 0}})
        with self.assertRaises(ConditionEvaluationError):
            evaluate(conds, {"total_amount": "lots"})

    def test_malformed_conditions_rejected(self):
        for raw in ({"x": {"between": [1, 2]}}, {"x": {}}, {"x": {"gt": "ten"}}, ["x"]):
            with self.assertRaises(RuleDefinitionError):
                parse_conditions(raw)


class EventSchemaTests(SimpleTestCase):
    def test_common_fields_available_everywhere(self):
        self.assertIn("source_number", permitted_fields("payroll_run"))
        self.assertIn("customer_id", permitted_fields("invoice"))

    def test_unknown_source_type(self):
        with self.assertRaises(RuleDefinitionError):
            permitted_fields("reversal")

    def test_extra_fields_merge(self):
        fields = permitted_fields("invoice", extra={"invoice": ["project_code"]})
        self.assertIn("project_code", fields)
