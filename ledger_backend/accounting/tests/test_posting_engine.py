# accounting/tests/test_posting_engine.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.account import Account
from accounting.models.balances import SubledgerBalance
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.models.posting_rule import PostingRule, PostingRuleUsageLog
from accounting.services.exceptions import (
    AccountNotFoundError,
    ControlAccountSubledgerError,
    EventDataError,
    FieldResolutionError,
    NoMatchingRuleError,
    ReversalError,
    UnbalancedEntryError,
)
from accounting.services.journal_entry_service import PostingLine, create_journal_entry
from accounting.services.posting import (
    ALREADY_POSTED,
    NOTHING_TO_POST,
    POSTED,
    PostingRequest,
    find_existing,
    post,
    reverse,
)
from accounting.subledger import Customer
from accounting.tests.ledger_fixtures import (
    FY_DATE,
    lines_by_code,
    make_company,
    post_invoice,
    post_payment,
    seed_default_rules,
)


class RulePostingTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()

    def account(self, code):
        return Account.objects.get(company=self.company, code=code)

    def test_intra_state_invoice_posts_gst_split(self):
        result = post_invoice(self.company)

        self.assertEqual(result.status, POSTED)
        self.assertTrue(result.created)
        self.assertEqual(result.rule.rule_code, "INV_DOM_INTRA_B2B")

        entry = result.entry
        self.assertEqual(entry.entry_number, "JV-202526-000001")
        self.assertEqual(entry.fiscal_year, "2025-26")
        self.assertEqual(entry.period_month, 2)
        self.assertEqual(entry.status, JournalEntry.POSTED)
        self.assertEqual(entry.description, "Invoice #INV-1 - Globex")
        self.assertEqual(entry.total_debit, Decimal("11800.00"))
        self.assertEqual(entry.total_credit, Decimal("11800.00"))
        self.assertEqual(
            lines_by_code(entry),
            {
                "1120": (Decimal("11800.00"), Decimal("0.00")),
                "4110": (Decimal("0.00"), Decimal("10000.00")),
                "2251": (Decimal("0.00"), Decimal("900.00")),
                "2252": (Decimal("0.00"), Decimal("900.00")),
            },
        )

        receivable = entry.lines.get(account_code="1120")
        self.assertEqual((receivable.subledger_type, receivable.subledger_id), ("customer", "C001"))

        self.assertEqual(self.account("1120").current_balance, Decimal("11800.00"))
        self.assertEqual(self.account("4110").current_balance, Decimal("10000.00"))

        party = SubledgerBalance.objects.get(account=self.account("1120"), subledger_id="C001")
        self.assertEqual(party.balance, Decimal("11800.00"))

        log = PostingRuleUsageLog.objects.get(journal_entry=entry)
        self.assertTrue(log.success)
        self.assertEqual(log.rule_snapshot["rule_code"], "INV_DOM_INTRA_B2B")

    def test_condition_routing(self):
        inter = post_invoice(self.company, "INV-2", is_interstate=True, total_cgst="0", total_sgst="0",
                             total_igst="1800.00")
        export = post_invoice(self.company, "INV-3", is_export=True, total_amount="5000", subtotal="5000")
        b2c = post_invoice(self.company, "INV-4", invoice_type="b2c")

        self.assertEqual(inter.rule.rule_code, "INV_DOM_INTER_B2B")
        self.assertIn("2253", lines_by_code(inter.entry))
        self.assertEqual(export.rule.rule_code, "INV_EXPORT")
        self.assertEqual(set(lines_by_code(export.entry)), {"1120", "4120"})
        self.assertEqual(b2c.rule.rule_code, "INV_DEFAULT")
        self.assertEqual(set(lines_by_code(b2c.entry)), {"1120", "4110", "2251", "2252"})

    def test_payment_with_tds(self):
        result = post_payment(
            self.company,
            amount="11800.00",
            net_amount="10620.00",
            tds_amount="1180.00",
            tds_applicable=True,
            tds_section="194J",
        )
        self.assertEqual(result.rule.rule_code, "PMT_RECEIPT_TDS_194J")
        self.assertEqual(
            lines_by_code(result.entry),
            {
                "1112": (Decimal("10620.00"), Decimal("0.00")),
                "1131": (Decimal("1180.00"), Decimal("0.00")),
                "1120": (Decimal("0.00"), Decimal("11800.00")),
            },
        )

    def test_idempotent_replay(self):
        first = post_invoice(self.company)
        second = post_invoice(self.company)

        self.assertEqual(second.status, ALREADY_POSTED)
        self.assertFalse(second.created)
        self.assertEqual(second.entry.pk, first.entry.pk)
        self.assertEqual(JournalEntry.objects.filter(company=self.company).count(), 1)
        self.assertEqual(self.account("1120").current_balance, Decimal("11800.00"))

    def test_concurrent_key_returns_existing_entry(self):
        first = post_invoice(self.company)
        lookups = []

        def lookup_before_commit(**key):
            # Both pre-insert lookups miss, as if the other writer had not committed yet.
            lookups.append(key.get("lock", False))
            return None if len(lookups) <= 2 else find_existing(**key)

        with mock.patch("accounting.services.posting.find_existing", side_effect=lookup_before_commit):
            second = post_invoice(self.company)

        self.assertEqual(lookups, [False, True, False])
        self.assertEqual(second.status, ALREADY_POSTED)
        self.assertEqual(second.entry.pk, first.entry.pk)
        self.assertEqual(JournalEntry.objects.filter(company=self.company).count(), 1)
        self.assertEqual(self.account("1120").current_balance, Decimal("11800.00"))
        self.assertEqual(self.account("4110").current_balance, Decimal("10000.00"))
        self.assertEqual(
            SubledgerBalance.objects.get(account=self.account("1120"), subledger_id="C001").balance,
            Decimal("11800.00"),
        )

        # The losing insert must not burn an entry number.
        self.assertEqual(post_invoice(self.company, "INV-2").entry.entry_number, "JV-202526-000002")

    def test_nil_rated_invoice_skips_tax_lines(self):
        result = post_invoice(
            self.company,
            "INV-NIL",
            subtotal="10000.00",
            total_amount="10000.00",
            total_cgst="0",
            total_sgst="0",
        )

        self.assertEqual(result.status, POSTED)
        self.assertEqual(result.rule.rule_code, "INV_DOM_INTRA_B2B")
        self.assertEqual(
            lines_by_code(result.entry),
            {
                "1120": (Decimal("10000.00"), Decimal("0.00")),
                "4110": (Decimal("0.00"), Decimal("10000.00")),
            },
        )

        inter = post_invoice(
            self.company,
            "INV-NIL-2",
            is_interstate=True,
            subtotal="500.00",
            total_amount="500.00",
            total_cgst="0",
            total_sgst="0",
            total_igst="0",
        )
        self.assertEqual(inter.rule.rule_code, "INV_DOM_INTER_B2B")
        self.assertEqual(set(lines_by_code(inter.entry)), {"1120", "4110"})

    def test_nothing_to_post(self):
        PostingRule.objects.create(
            company=self.company,
            rule_code="CPMT_ZERO_SKIP",
            rule_name="Contractor payment (optional lines)",
            source_type="contractor_payment",
            trigger_event="on_create",
            priority=10,
            template={
                "lines": [
                    {"account_code": "5020", "debit_field": "gross_amount", "skip_if_zero": True},
                    {"account_code": "1112", "credit_field": "net_amount", "skip_if_zero": True},
                ]
            },
        )

        result = post(
            PostingRequest(
                company=self.company,
                source_type="contractor_payment",
                source_id="CP-1",
                trigger_event="on_create",
                event_date=FY_DATE,
                event_fields={"gross_amount": "0", "net_amount": "0"},
            )
        )

        self.assertEqual(result.status, NOTHING_TO_POST)
        self.assertIsNone(result.entry)
        self.assertEqual(result.rule.rule_code, "CPMT_ZERO_SKIP")
        self.assertFalse(JournalEntry.objects.exists())

    def test_missing_fallback_raises_configuration_error(self):
        with self.assertRaises(NoMatchingRuleError):
            post(
                PostingRequest(
                    company=self.company,
                    source_type="invoice",
                    source_id="INV-9",
                    trigger_event="on_cancel",
                    event_date=FY_DATE,
                )
            )

    def test_failed_application_is_logged_and_rolled_back(self):
        account = self.account("4120")
        account.is_active = False
        account.save()

        with self.assertRaises(AccountNotFoundError):
            post_invoice(self.company, "INV-X", is_export=True, total_amount="100", subtotal="100")

        self.assertFalse(JournalEntry.objects.exists())
        log = PostingRuleUsageLog.objects.get(source_id="INV-X")
        self.assertFalse(log.success)
        self.assertIsNone(log.journal_entry)
        self.assertIn("4120", log.error_message)

    def test_missing_event_field(self):
        with self.assertRaises(FieldResolutionError):
            post_invoice(self.company, "INV-Y", subtotal=None)
        self.assertEqual(PostingRuleUsageLog.objects.filter(success=False).count(), 1)

    def test_request_validation(self):
        with self.assertRaises(EventDataError):
            post(
                PostingRequest(
                    company=self.company,
                    source_type="reversal",
                    source_id="1",
                    trigger_event="on_reverse",
                    event_date=FY_DATE,
                )
            )
        with self.assertRaises(EventDataError):
            post(
                PostingRequest(
                    company=self.company,
                    source_type="invoice",
                    source_id=" ",
                    trigger_event="on_finalize",
                    event_date=FY_DATE,
                )
            )

    def test_entry_numbers_are_sequential_per_fiscal_year(self):
        a = post_invoice(self.company, "INV-A", event_date=date(2025, 5, 1)).entry
        b = post_invoice(self.company, "INV-B", event_date=date(2026, 3, 31)).entry
        c = post_invoice(self.company, "INV-C", event_date=date(2026, 4, 1)).entry

        self.assertEqual(a.entry_number, "JV-202526-000001")
        self.assertEqual(b.entry_number, "JV-202526-000002")
        self.assertEqual(c.entry_number, "JV-202627-000001")

    def test_tenant_isolation(self):
        other = make_company("globex", "Globex Trading")
        post_invoice(self.company)
        result = post_invoice(other)

        self.assertEqual(result.status, POSTED)
        self.assertEqual(result.entry.entry_number, "JV-202526-000001")
        self.assertEqual(
            Account.objects.get(company=other, code="1120").current_balance,
            Decimal("11800.00"),
        )


class ReversalTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()
        self.original = post_invoice(self.company).entry

    def test_reversal_round_trip(self):
        result = reverse(self.original.pk, "Invoice cancelled", reversal_date=date(2025, 5, 20))
        reversal = result.entry

        self.assertEqual(result.status, POSTED)
        self.assertEqual(reversal.entry_type, JournalEntry.REVERSAL)
        self.assertEqual(reversal.reversal_of_id, self.original.pk)
        self.assertEqual(reversal.description, f"Reversal of {self.original.entry_number}: Invoice cancelled")
        self.assertEqual(
            lines_by_code(reversal),
            {
                "1120": (Decimal("0.00"), Decimal("11800.00")),
                "4110": (Decimal("10000.00"), Decimal("0.00")),
                "2251": (Decimal("900.00"), Decimal("0.00")),
                "2252": (Decimal("900.00"), Decimal("0.00")),
            },
        )
        self.assertEqual(reversal.lines.get(account_code="1120").subledger_id, "C001")

        self.original.refresh_from_db()
        self.assertEqual(self.original.status, JournalEntry.REVERSED)
        self.assertTrue(self.original.is_reversed)
        self.assertEqual(self.original.reversed_by_id, reversal.pk)

        for code in ("1120", "4110", "2251", "2252"):
            account = Account.objects.get(company=self.company, code=code)
            self.assertEqual(account.current_balance, Decimal("0.00"), code)

        party = SubledgerBalance.objects.get(account__company=self.company, subledger_id="C001")
        self.assertEqual(party.balance, Decimal("0.00"))
        self.assertEqual(party.transaction_count, 2)

    def test_reverse_twice_returns_first_reversal(self):
        first = reverse(self.original.pk, "duplicate")
        second = reverse(self.original.pk, "duplicate again")

        self.assertEqual(second.status, ALREADY_POSTED)
        self.assertEqual(second.entry.pk, first.entry.pk)
        self.assertEqual(JournalEntry.objects.filter(entry_type=JournalEntry.REVERSAL).count(), 1)

    def test_reversal_through_disabled_account(self):
        sales = Account.objects.get(company=self.company, code="4110")
        sales.is_active = False
        sales.save()

        with self.assertRaises(AccountNotFoundError):
            post_invoice(self.company, "INV-2")

        result = reverse(self.original.pk, "Sales account retired", reversal_date=date(2025, 5, 20))
        self.assertEqual(result.status, POSTED)
        self.assertEqual(lines_by_code(result.entry)["4110"], (Decimal("10000.00"), Decimal("0.00")))

        sales.refresh_from_db()
        self.assertEqual(sales.current_balance, Decimal("0.00"))

    def test_reversal_cannot_be_reversed(self):
        reversal = reverse(self.original.pk, "wrong customer").entry
        with self.assertRaises(ReversalError):
            reverse(reversal.pk, "undo")

    def test_reason_required(self):
        with self.assertRaises(EventDataError):
            reverse(self.original.pk, "  ")

    def test_unknown_entry(self):
        with self.assertRaises(EventDataError):
            reverse(999999, "nope")

    def test_company_scope(self):
        other = make_company("globex", "Globex Trading")
        with self.assertRaises(EventDataError):
            reverse(self.original.pk, "wrong tenant", company=other)


class JournalIntegrityTests(TestCase):
    def setUp(self):
        self.company = make_company()

    def account(self, code):
        return Account.objects.get(company=self.company, code=code)

    def _entry(self, lines, source_id="M-1"):
        return create_journal_entry(
            company=self.company,
            entry_date=FY_DATE,
            description="Manual adjustment",
            lines=lines,
            source_type="manual",
            source_id=source_id,
            trigger_event="on_create",
            entry_type=JournalEntry.MANUAL,
        )

    def test_unbalanced_entry_rejected(self):
        with self.assertRaises(UnbalancedEntryError):
            self._entry(
                [
                    PostingLine(account=self.account("5510"), debit=Decimal("100.00")),
                    PostingLine(account=self.account("1111"), credit=Decimal("99.00")),
                ]
            )
        self.assertFalse(JournalEntry.objects.exists())

    def test_control_account_requires_party(self):
        with self.assertRaises(ControlAccountSubledgerError):
            self._entry(
                [
                    PostingLine(account=self.account("1120"), debit=Decimal("100.00")),
                    PostingLine(account=self.account("4110"), credit=Decimal("100.00")),
                ]
            )

    def test_line_needs_exactly_one_side(self):
        with self.assertRaises(EventDataError):
            self._entry(
                [
                    PostingLine(account=self.account("5510"), debit=Decimal("100.00"), credit=Decimal("1.00")),
                    PostingLine(account=self.account("1111"), credit=Decimal("99.00")),
                ]
            )

    def test_posted_entry_and_lines_are_immutable(self):
        entry = self._entry(
            [
                PostingLine(account=self.account("5510"), debit=Decimal("100.00")),
                PostingLine(account=self.account("1111"), credit=Decimal("100.00")),
            ]
        )

        entry.description = "edited"
        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()

        line = JournalLine.objects.filter(journal_entry=entry).first()
        line.description = "edited"
        with self.assertRaises(ValidationError):
            line.save()
        with self.assertRaises(ValidationError):
            line.delete()

    def test_control_flag_frozen_once_posted(self):
        unused = self.account("1112")
        unused.is_control_account = True
        unused.control_account_type = "bank"
        unused.save()

        self._entry(
            [
                PostingLine(account=self.account("5510"), debit=Decimal("100.00")),
                PostingLine(account=self.account("1111"), credit=Decimal("100.00")),
            ]
        )

        cash = self.account("1111")
        cash.is_control_account = True
        cash.control_account_type = "bank"
        with self.assertRaises(ValidationError) as ctx:
            cash.save()
        self.assertIn("is_control_account", ctx.exception.message_dict)
        self.assertFalse(self.account("1111").is_control_account)

        receivables = self.account("1120")
        self.assertTrue(receivables.is_control_account)
        self._entry(
            [
                PostingLine(
                    account=receivables,
                    debit=Decimal("50.00"),
                    subledger=Customer("C001"),
                ),
                PostingLine(account=self.account("4110"), credit=Decimal("50.00")),
            ],
            source_id="M-2",
        )
        receivables.is_control_account = False
        with self.assertRaises(ValidationError):
            receivables.save()

    def test_accounts_cannot_be_deleted(self):
        with self.assertRaises(ValidationError):
            self.account("5510").delete()
