# accounting/tests/test_posting_rules.py

from __future__ import annotations

from datetime import date
from io import StringIO

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from accounting.models.account import Account
from accounting.models.posting_rule import PostingRule, PostingRuleUsageLog
from accounting.seed_data import CHART, RULES
from accounting.services.exceptions import NoMatchingRuleError
from accounting.services.rule_matcher import select_rule
from accounting.services.rule_repository import candidate_rules, supersede_rule
from accounting.services.rule_validation import ERROR, WARNING, has_errors, validate_rules
from accounting.tests.ledger_fixtures import (
    FY_DATE,
    invoice_fields,
    make_company,
    post_invoice,
    seed_default_rules,
)

SIMPLE_TEMPLATE = {
    "lines": [
        {
            "account_code": "1120",
            "side": "debit",
            "amount_field": "total_amount",
            "subledger_type": "customer",
            "subledger_id_field": "customer_id",
        },
        {"account_code": "4110", "side": "credit", "amount_field": "total_amount"},
    ]
}


def _rule(**overrides) -> PostingRule:
    fields = {
        "rule_code": "INV_SPECIAL",
        "rule_name": "Special invoice",
        "source_type": "invoice",
        "trigger_event": "on_finalize",
        "priority": 500,
        "conditions": {"invoice_type": "b2b"},
        "template": SIMPLE_TEMPLATE,
    }
    fields.update(overrides)
    return PostingRule.objects.create(**fields)


class RuleMatchingTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()

    def select(self, fields, on_date=FY_DATE):
        return select_rule(
            company=self.company,
            source_type="invoice",
            trigger_event="on_finalize",
            event_date=on_date,
            event_fields=fields,
        )

    def test_priority_order(self):
        self.assertEqual(self.select(invoice_fields()).rule_code, "INV_DOM_INTRA_B2B")
        self.assertEqual(self.select(invoice_fields(is_export=True)).rule_code, "INV_EXPORT")
        self.assertEqual(self.select({"invoice_type": "b2c"}).rule_code, "INV_DEFAULT")

    def test_selection_is_deterministic(self):
        picks = {self.select(invoice_fields()).pk for _ in range(5)}
        self.assertEqual(len(picks), 1)

    def test_company_rule_beats_global(self):
        _rule(company=self.company)
        self.assertEqual(self.select(invoice_fields()).rule_code, "INV_SPECIAL")

        other = make_company("globex", "Globex Trading")
        rule = select_rule(
            company=other,
            source_type="invoice",
            trigger_event="on_finalize",
            event_date=FY_DATE,
            event_fields=invoice_fields(),
        )
        self.assertEqual(rule.rule_code, "INV_DOM_INTRA_B2B")

    def test_inactive_and_out_of_window_rules_ignored(self):
        _rule(company=self.company, is_active=False)
        _rule(company=self.company, rule_code="INV_LATER", priority=501, effective_from=date(2026, 1, 1))
        self.assertEqual(self.select(invoice_fields()).rule_code, "INV_DOM_INTRA_B2B")
        self.assertEqual(self.select(invoice_fields(), on_date=date(2026, 2, 1)).rule_code, "INV_LATER")

    def test_fiscal_year_scoped_rule(self):
        _rule(company=self.company, rule_code="INV_FY26", fiscal_year="2026-27")
        self.assertEqual(self.select(invoice_fields()).rule_code, "INV_DOM_INTRA_B2B")
        self.assertEqual(self.select(invoice_fields(), on_date=date(2026, 5, 1)).rule_code, "INV_FY26")

    def test_candidate_order(self):
        _rule(company=self.company)
        codes = [
            r.rule_code
            for r in candidate_rules(
                company=self.company, source_type="invoice", trigger_event="on_finalize", on_date=FY_DATE
            )
        ]
        self.assertEqual(codes, ["INV_SPECIAL", "INV_EXPORT", "INV_DOM_INTRA_B2B", "INV_DOM_INTER_B2B", "INV_DEFAULT"])

    def test_no_rule(self):
        with self.assertRaises(NoMatchingRuleError) as ctx:
            select_rule(
                company=self.company,
                source_type="invoice",
                trigger_event="on_cancel",
                event_date=FY_DATE,
                event_fields={},
            )
        self.assertEqual(ctx.exception.context["candidates"], 0)


class RuleDefinitionTests(TestCase):
    def test_unknown_field_rejected(self):
        with self.assertRaises(ValidationError):
            _rule(conditions={"invoice_kind": "b2b"})

        template = {"lines": [dict(SIMPLE_TEMPLATE["lines"][0]), {"account_code": "4110", "credit_field": "amount"}]}
        with self.assertRaises(ValidationError):
            _rule(template=template)

    def test_internal_source_types_not_rule_driven(self):
        with self.assertRaises(ValidationError):
            _rule(source_type="reversal", trigger_event="on_reverse")

    def test_fallback_cannot_have_conditions(self):
        with self.assertRaises(ValidationError):
            _rule(is_fallback=True)

    def test_priority_clash_in_scope(self):
        _rule()
        with self.assertRaises(ValidationError):
            _rule(rule_code="INV_OTHER")

        _rule(rule_code="INV_OTHER", is_active=False)

    def test_single_fallback_per_scope(self):
        _rule(rule_code="FB_ONE", conditions={}, is_fallback=True, priority=1000)
        with self.assertRaises(ValidationError):
            _rule(rule_code="FB_TWO", conditions={}, is_fallback=True, priority=1001)

    def test_codes_normalized(self):
        rule = _rule(rule_code=" inv_special ", source_type="INVOICE")
        self.assertEqual((rule.rule_code, rule.source_type), ("INV_SPECIAL", "invoice"))


class RuleVersioningTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()
        self.rule = PostingRule.objects.get(rule_code="INV_DOM_INTRA_B2B", company__isnull=True)

    def test_used_rule_is_frozen(self):
        post_invoice(self.company)

        self.rule.priority = 95
        with self.assertRaises(ValidationError):
            self.rule.save()
        with self.assertRaises(ValidationError):
            PostingRule.objects.get(pk=self.rule.pk).delete()

        self.rule.refresh_from_db()
        self.rule.rule_name = "Renamed"
        self.rule.save()

    def test_supersede_keeps_history_explainable(self):
        old = post_invoice(self.company, "INV-OLD", event_date=date(2025, 5, 10))

        template = dict(self.rule.template)
        template["description_template"] = "B2B {source_number}"
        new_rule = supersede_rule(self.rule, effective_from=date(2025, 6, 1), template=template)

        self.rule.refresh_from_db()
        self.assertEqual(self.rule.effective_to, date(2025, 5, 31))
        self.assertEqual(new_rule.rule_code, self.rule.rule_code)
        self.assertIsNone(new_rule.effective_to)

        new = post_invoice(self.company, "INV-NEW", event_date=date(2025, 6, 10))
        late_old_window = post_invoice(self.company, "INV-MAY", event_date=date(2025, 5, 31))

        self.assertEqual(old.entry.posting_rule_id, self.rule.pk)
        self.assertEqual(late_old_window.entry.posting_rule_id, self.rule.pk)
        self.assertEqual(new.entry.posting_rule_id, new_rule.pk)
        self.assertEqual(new.entry.description, "B2B INV-NEW")

        snapshot = PostingRuleUsageLog.objects.get(journal_entry=old.entry).rule_snapshot
        self.assertEqual(snapshot["template"]["description_template"], "Invoice #{source_number} - {customer_name}")
        self.assertIsNone(snapshot["effective_to"])

    def test_supersede_window_checks(self):
        with self.assertRaises(ValueError):
            supersede_rule(self.rule, effective_from=self.rule.effective_from)


class RuleValidationTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()

    def test_default_pack_is_clean(self):
        issues = validate_rules(self.company)
        self.assertFalse(has_errors(issues), [i.as_dict() for i in issues])

    def test_missing_fallback_is_an_error(self):
        fallback = PostingRule.objects.get(rule_code="INV_DEFAULT")
        fallback.is_active = False
        fallback.save()

        issues = validate_rules(self.company)
        self.assertTrue(
            any(i.level == ERROR and i.source_type == "invoice" and "fallback" in i.message for i in issues)
        )

    def test_missing_account_is_an_error(self):
        Account.objects.filter(company=self.company, code="4120").update(is_active=False)
        issues = validate_rules(self.company)
        self.assertIn(("INV_EXPORT", ERROR), {(i.rule_code, i.level) for i in issues})

    def test_control_account_without_party_spec(self):
        _rule(
            company=self.company,
            template={
                "lines": [
                    {"account_code": "1120", "side": "debit", "amount_field": "total_amount"},
                    {"account_code": "4110", "side": "credit", "amount_field": "total_amount"},
                ]
            },
        )
        issues = validate_rules(self.company)
        self.assertIn(("INV_SPECIAL", ERROR), {(i.rule_code, i.level) for i in issues})

    def test_shadowing_fallback_is_a_warning(self):
        _rule(company=self.company, rule_code="INV_CATCH_ALL", conditions={}, is_fallback=True, priority=5)
        issues = validate_rules(self.company)
        self.assertIn(("INV_CATCH_ALL", WARNING), {(i.rule_code, i.level) for i in issues})


class SeedCommandTests(TestCase):
    def test_seed_chart_for_new_company(self):
        out = StringIO()
        call_command("seed_chart_of_accounts", company="acme", name="Acme Exports", stdout=out)

        self.assertEqual(Account.objects.filter(company__code="acme").count(), len(CHART))
        gst = Account.objects.get(company__code="acme", code="2251")
        self.assertEqual(gst.parent.code, "2250")
        self.assertEqual(gst.normal_balance, Account.CREDIT)
        self.assertTrue(Account.objects.get(company__code="acme", code="1120").is_control_account)

        call_command("seed_chart_of_accounts", company="acme", stdout=out)
        self.assertEqual(Account.objects.filter(company__code="acme").count(), len(CHART))
        self.assertIn("0 new accounts", out.getvalue())

    def test_provision_company_from_global_template(self):
        call_command("seed_chart_of_accounts", stdout=StringIO())
        Account.objects.filter(company__isnull=True, code="4120").update(name="Export Sales")

        out = StringIO()
        call_command("seed_chart_of_accounts", company="beta", name="Beta", from_template=True, stdout=out)

        accounts = Account.objects.filter(company__code="beta")
        self.assertEqual(accounts.count(), len(CHART))
        self.assertEqual(accounts.get(code="4120").name, "Export Sales")
        self.assertEqual(accounts.get(code="2251").parent.company.code, "beta")

        call_command("seed_chart_of_accounts", company="beta", from_template=True, stdout=out)
        self.assertIn("0 new accounts", out.getvalue())

    def test_seed_chart_unknown_company_needs_name(self):
        with self.assertRaises(CommandError):
            call_command("seed_chart_of_accounts", company="nobody", stdout=StringIO())

    def test_seed_rules_idempotent(self):
        call_command("seed_posting_rules", stdout=StringIO())
        call_command("seed_posting_rules", stdout=StringIO())
        self.assertEqual(PostingRule.objects.filter(company__isnull=True).count(), len(RULES))

    def test_validate_command(self):
        make_company()
        call_command("seed_posting_rules", stdout=StringIO())

        out = StringIO()
        call_command("validate_posting_rules", company="acme", stdout=out)
        self.assertIn("Posting rules OK", out.getvalue())

        PostingRule.objects.filter(rule_code="PMT_RECEIPT_NO_TDS").update(is_active=False)
        with self.assertRaises(CommandError):
            call_command("validate_posting_rules", company="acme", stdout=StringIO())

    def test_recalculate_command(self):
        company = make_company()
        seed_default_rules()
        post_invoice(company)
        Account.objects.filter(company=company, code="1120").update(current_balance=0)

        call_command("recalculate_balances", company="acme", stdout=StringIO())
        self.assertEqual(str(Account.objects.get(company=company, code="1120").current_balance), "11800.00")

    def test_close_period_command(self):
        company = make_company()
        seed_default_rules()
        post_invoice(company, event_date=date(2025, 4, 10))

        out = StringIO()
        call_command("close_period", company="acme", start_date="2025-04-01", end_date="2025-04-30", stdout=out)
        self.assertIn("net profit 10000.00", out.getvalue())

        with self.assertRaises(CommandError):
            call_command("close_period", company="acme", start_date="2025-04-01", end_date="2025-04-30",
                         stdout=StringIO())
