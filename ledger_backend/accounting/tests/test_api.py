# accounting/tests/test_api.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase
from rest_framework.test import APIClient

from accounting.models.journal import JournalEntry
from accounting.tests.ledger_fixtures import invoice_fields, make_company, seed_default_rules

POSTINGS_URL = "/api/accounting/postings/"
ENTRIES_URL = "/api/accounting/journal-entries/"


def _invoice_payload(source_id="INV-1", **overrides):
    return {
        "company": "acme",
        "source_type": "invoice",
        "source_id": source_id,
        "source_number": source_id,
        "trigger_event": "on_finalize",
        "event_date": "2025-05-10",
        "event_fields": invoice_fields(**overrides),
    }


class AccountingApiTestBase(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()

        User = get_user_model()
        self.admin = User.objects.create_superuser(username="admin", email="admin@example.com", password="pass1234")
        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)

    def post_invoice(self, source_id="INV-1", **overrides):
        return self.client.post(POSTINGS_URL, _invoice_payload(source_id, **overrides), format="json")


class PostingApiTests(AccountingApiTestBase):
    def test_post_then_replay(self):
        res = self.post_invoice()
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["status"], "posted")
        self.assertEqual(res.data["posting_rule"], "INV_DOM_INTRA_B2B")

        entry = res.data["journal_entry"]
        self.assertEqual(entry["entry_number"], "JV-202526-000001")
        self.assertEqual(entry["company"], "acme")
        self.assertEqual(len(entry["lines"]), 4)
        receivable, sales = entry["lines"][:2]
        self.assertEqual((receivable["account_code"], receivable["side"], receivable["amount"]),
                         ("1120", "debit", "11800.00"))
        self.assertEqual((sales["account_code"], sales["side"], sales["amount"]), ("4110", "credit", "10000.00"))

        replay = self.post_invoice()
        self.assertEqual(replay.status_code, 200)
        self.assertEqual(replay.data["status"], "already_posted")
        self.assertEqual(replay.data["journal_entry"]["id"], entry["id"])

    def test_configuration_error_is_422(self):
        payload = _invoice_payload()
        payload["trigger_event"] = "on_cancel"

        res = self.client.post(POSTINGS_URL, payload, format="json")
        self.assertEqual(res.status_code, 422)
        self.assertEqual(res.data["code"], "NoMatchingRuleError")
        self.assertEqual(res.data["context"]["source_type"], "invoice")

    def test_bad_event_data_is_400(self):
        res = self.post_invoice(subtotal=None)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["code"], "FieldResolutionError")

    def test_unknown_company_is_400(self):
        payload = _invoice_payload()
        payload["company"] = "nobody"
        res = self.client.post(POSTINGS_URL, payload, format="json")
        self.assertEqual(res.status_code, 400)

    def test_missing_fields_rejected_by_serializer(self):
        res = self.client.post(POSTINGS_URL, {"company": "acme", "source_type": "invoice"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("event_date", res.data)

    def test_locked_period_is_409(self):
        self.post_invoice()
        res = self.client.post(
            "/api/accounting/close-period/",
            {"company": "acme", "start_date": "2025-05-01", "end_date": "2025-05-31"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["summary"]["net_profit"], 10000.0)
        self.assertEqual(res.data["retained_earnings_account"], "3100")

        closes = self.client.get("/api/accounting/close-period/", {"company": "acme"})
        self.assertEqual(closes.status_code, 200)
        self.assertEqual([c["end_date"] for c in closes.data["results"]], ["2025-05-31"])

        late = self.post_invoice("INV-2")
        self.assertEqual(late.status_code, 409)
        self.assertEqual(late.data["code"], "PeriodLockedError")

    def test_permission_required(self):
        clerk = get_user_model().objects.create_user(username="clerk", password="pass1234")
        client = APIClient()
        client.force_authenticate(user=clerk)

        res = client.post(POSTINGS_URL, _invoice_payload(), format="json")
        self.assertEqual(res.status_code, 403)

        clerk.user_permissions.add(Permission.objects.get(codename="add_journalentry"))
        clerk = get_user_model().objects.get(pk=clerk.pk)
        client.force_authenticate(user=clerk)
        res = client.post(POSTINGS_URL, _invoice_payload(), format="json")
        self.assertEqual(res.status_code, 201)

    def test_anonymous_rejected(self):
        res = APIClient().post(POSTINGS_URL, _invoice_payload(), format="json")
        self.assertEqual(res.status_code, 401)


class JournalEntryApiTests(AccountingApiTestBase):
    def setUp(self):
        super().setUp()
        self.entry_id = self.post_invoice().data["journal_entry"]["id"]
        self.post_invoice("INV-2", is_export=True, total_amount="500", subtotal="500")

    def test_list_requires_company(self):
        self.assertEqual(self.client.get(ENTRIES_URL).status_code, 400)

        res = self.client.get(ENTRIES_URL, {"company": "acme"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 2)

        res = self.client.get(ENTRIES_URL, {"company": "acme", "source_id": "INV-2"})
        self.assertEqual([e["source_number"] for e in res.data["results"]], ["INV-2"])

    def test_reverse_action(self):
        url = f"{ENTRIES_URL}{self.entry_id}/reverse/"

        res = self.client.post(url, {"reason": "Cancelled by customer", "reversal_date": "2025-05-12"}, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["journal_entry"]["entry_type"], JournalEntry.REVERSAL)
        self.assertEqual(res.data["journal_entry"]["reversal_of"], "JV-202526-000001")

        again = self.client.post(url, {"reason": "again"}, format="json")
        self.assertEqual(again.status_code, 200)
        self.assertEqual(again.data["status"], "already_posted")

        original = self.client.get(f"{ENTRIES_URL}{self.entry_id}/")
        self.assertEqual(original.data["status"], JournalEntry.REVERSED)
        self.assertEqual(original.data["reversed_by"], res.data["journal_entry"]["entry_number"])

    def test_reverse_needs_reason(self):
        res = self.client.post(f"{ENTRIES_URL}{self.entry_id}/reverse/", {}, format="json")
        self.assertEqual(res.status_code, 400)


class ReportApiTests(AccountingApiTestBase):
    def setUp(self):
        super().setUp()
        self.post_invoice()

    def test_trial_balance(self):
        res = self.client.get("/api/accounting/reports/trial-balance/", {"company": "acme", "as_of": "2025-05-31"})
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["totals"]["balanced"])
        self.assertEqual(res.data["fiscal_year"], "2025-26")

    def test_bad_report_date_is_400(self):
        res = self.client.get("/api/accounting/reports/trial-balance/", {"company": "acme", "as_of": "yesterday"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["code"], "AccountingReportError")

    def test_subledger_balances(self):
        res = self.client.get(
            "/api/accounting/reports/subledger-balances/", {"company": "acme", "account_code": "1120"}
        )
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["reconciled"])
        self.assertEqual(res.data["parties"][0]["subledger_id"], "C001")

    def test_account_ledger_income_statement_balance_sheet(self):
        ledger = self.client.get(
            "/api/accounting/reports/account-ledger/",
            {"company": "acme", "account_code": "4110", "fiscal_year": "2025-26"},
        )
        self.assertEqual(ledger.status_code, 200)
        self.assertEqual(ledger.data["closing_balance"], 10000.0)

        pnl = self.client.get("/api/accounting/reports/income-statement/", {"company": "acme", "fiscal_year": "2025-26"})
        self.assertEqual(pnl.status_code, 200)
        self.assertEqual(pnl.data["net_profit_minor"], 1000000)

        sheet = self.client.get("/api/accounting/reports/balance-sheet/", {"company": "acme"})
        self.assertEqual(sheet.status_code, 200)
        self.assertTrue(sheet.data["totals"]["balanced"])

    def test_accounts_and_rules(self):
        accounts = self.client.get("/api/accounting/accounts/", {"company": "acme", "code_prefix": "225"})
        self.assertEqual(accounts.status_code, 200)
        self.assertEqual([a["code"] for a in accounts.data["results"]], ["2250", "2251", "2252", "2253"])

        rules = self.client.get("/api/accounting/posting-rules/", {"company": "acme", "source_type": "payment"})
        self.assertEqual(rules.status_code, 200)
        self.assertEqual(
            [r["rule_code"] for r in rules.data["results"]], ["PMT_RECEIPT_TDS_194J", "PMT_RECEIPT_NO_TDS"]
        )

        check = self.client.get("/api/accounting/posting-rules/validate/", {"company": "acme"})
        self.assertEqual(check.status_code, 200)
        self.assertTrue(check.data["valid"])

    def test_recalculate(self):
        res = self.client.post("/api/accounting/balances/recalculate/", {"company": "acme"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["company"], "acme")


class HealthApiTests(TestCase):
    def test_health_is_public(self):
        res = APIClient().get("/api/health/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"status": "ok", "db": "ok"})
