# accounting/tests/test_balances_and_reports.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.account import Account
from accounting.models.balances import AccountPeriodBalance, SubledgerBalance
from accounting.models.journal import JournalEntry
from accounting.services.account_ledger_service import generate_account_ledger
from accounting.services.balance_service import get_account_balance, recalculate_balances
from accounting.services.balance_sheet_service import generate_balance_sheet
from accounting.services.exceptions import AccountingReportError, PeriodLockedError
from accounting.services.period_close_service import PeriodCloseError, close_period
from accounting.services.posting import reverse
from accounting.services.profit_and_loss_service import generate_profit_and_loss
from accounting.services.subledger_service import generate_subledger_balances
from accounting.services.trial_balance_service import generate_trial_balance
from accounting.tests.ledger_fixtures import make_company, post_invoice, post_payment, seed_default_rules


def _snapshot(company):
    accounts = dict(Account.objects.filter(company=company).values_list("code", "current_balance"))
    parties = sorted(
        SubledgerBalance.objects.filter(company=company).values_list(
            "account__code", "subledger_type", "subledger_id", "debit_total", "credit_total", "balance",
            "transaction_count", "last_entry_date",
        )
    )
    periods = sorted(
        AccountPeriodBalance.objects.filter(company=company).values_list(
            "account__code", "fiscal_year", "period_month", "opening_balance", "period_debit",
            "period_credit", "closing_balance", "transaction_count",
        )
    )
    return accounts, parties, periods


class BalanceMaintenanceTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()

        post_invoice(self.company, "INV-1", event_date=date(2025, 4, 10))
        post_invoice(self.company, "INV-2", event_date=date(2025, 6, 5), customer_id="C002",
                     customer_name="Initech")
        post_payment(self.company, "PMT-1", event_date=date(2025, 5, 2), amount="5000.00", net_amount="5000.00")
        invoice = post_invoice(self.company, "INV-3", event_date=date(2025, 5, 15)).entry
        reverse(invoice.pk, "Raised in error", reversal_date=date(2025, 5, 20))

    def test_incremental_balances_match_rebuild(self):
        before = _snapshot(self.company)
        recalculate_balances(self.company)
        after = _snapshot(self.company)

        self.assertEqual(before, after)

    def test_rebuild_repairs_drift(self):
        Account.objects.filter(company=self.company, code="1120").update(current_balance=Decimal("1.00"))
        SubledgerBalance.objects.filter(company=self.company).delete()

        recalculate_balances(self.company)

        receivables = Account.objects.get(company=self.company, code="1120")
        self.assertEqual(receivables.current_balance, Decimal("18600.00"))
        self.assertEqual(SubledgerBalance.objects.filter(company=self.company).count(), 2)

    def test_later_period_rows_carry_earlier_movement(self):
        rows = AccountPeriodBalance.objects.filter(company=self.company, account__code="1120").order_by(
            "period_start"
        )
        april, may, june = rows
        self.assertEqual(april.closing_balance, Decimal("11800.00"))
        self.assertEqual(may.opening_balance, april.closing_balance)
        self.assertEqual(may.closing_balance, Decimal("6800.00"))
        self.assertEqual(june.opening_balance, may.closing_balance)
        self.assertEqual(june.closing_balance, Decimal("18600.00"))

    def test_line_derived_balance(self):
        receivables = Account.objects.get(company=self.company, code="1120")
        self.assertEqual(get_account_balance(receivables), receivables.current_balance)
        self.assertEqual(get_account_balance(receivables, as_of=date(2025, 4, 30)), Decimal("11800.00"))

    def test_subledger_reconciles_with_control_account(self):
        report = generate_subledger_balances(company=self.company, account_code="1120")

        self.assertTrue(report["reconciled"])
        self.assertEqual(report["total_minor"], 1860000)
        self.assertEqual(report["control_balance_minor"], 1860000)
        balances = {p["subledger_id"]: p["balance"] for p in report["parties"]}
        self.assertEqual(balances, {"C001": 6800.0, "C002": 11800.0})

        historic = generate_subledger_balances(company=self.company, account_code="1120", as_of="2025-04-30")
        self.assertTrue(historic["reconciled"])
        self.assertEqual(historic["total_minor"], 1180000)

        filtered = generate_subledger_balances(
            company=self.company, account_code="1120", subledger_type="customer"
        )
        self.assertIsNone(filtered["reconciled"])

    def test_subledger_report_needs_control_account(self):
        with self.assertRaises(AccountingReportError):
            generate_subledger_balances(company=self.company, account_code="4110")


class ReportTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()
        post_invoice(self.company, "INV-1", event_date=date(2025, 4, 10))
        post_payment(self.company, "PMT-1", event_date=date(2025, 4, 20))

    def test_trial_balance_balances(self):
        report = generate_trial_balance(company=self.company, fiscal_year="2025-26")
        totals = report["totals"]

        self.assertTrue(totals["balanced"])
        self.assertEqual(report["date_from"], "2025-04-01")
        self.assertEqual(report["date_to"], "2026-03-31")
        self.assertEqual(totals["debit_minor"], totals["credit_minor"])
        self.assertEqual(totals["debit_minor"], 2360000)

        by_code = {row["account_code"]: row for row in report["accounts"]}
        self.assertEqual(by_code["1112"]["closing_debit"], 11800.0)
        self.assertEqual(by_code["1120"]["closing_debit"], 0.0)
        self.assertEqual(by_code["4110"]["closing_credit"], 10000.0)

    def test_trial_balance_opening_columns(self):
        report = generate_trial_balance(company=self.company, date_from="2025-05-01", date_to="2025-05-31")
        by_code = {row["account_code"]: row for row in report["accounts"]}

        self.assertEqual(by_code["1112"]["opening_debit"], 11800.0)
        self.assertEqual(by_code["1112"]["debit"], 0.0)
        self.assertTrue(report["totals"]["balanced"])

    def test_account_ledger_running_balance(self):
        report = generate_account_ledger(company=self.company, account_code="1120", fiscal_year="2025-26")

        self.assertEqual(report["opening_balance"], 0.0)
        self.assertEqual([line["running_balance"] for line in report["lines"]], [11800.0, 0.0])
        self.assertEqual(report["lines"][0]["subledger_id"], "C001")
        self.assertEqual(report["closing_balance_minor"], 0)

    def test_profit_and_loss(self):
        report = generate_profit_and_loss(company=self.company, fiscal_year="2025-26", period_month=1)

        self.assertEqual(report["income"], 10000.0)
        self.assertEqual(report["expenses"], 0.0)
        self.assertEqual(report["net_profit_minor"], 1000000)
        self.assertEqual([row["code"] for row in report["sections"]["income"]], ["4110"])

    def test_balance_sheet_balances(self):
        report = generate_balance_sheet(company=self.company, as_of="2025-04-30")
        totals = report["totals"]

        self.assertTrue(totals["balanced"])
        self.assertEqual(totals["assets"], 11800.0)
        self.assertEqual(totals["liabilities"], 1800.0)
        self.assertEqual(totals["current_period_earnings"], 10000.0)
        self.assertEqual(totals["liabilities_plus_equity_minor"], 1180000)

    def test_invalid_report_filters(self):
        with self.assertRaises(AccountingReportError):
            generate_trial_balance(company=self.company, as_of="31-05-2025")
        with self.assertRaises(AccountingReportError):
            generate_trial_balance(company=self.company, fiscal_year="2025-27")
        with self.assertRaises(AccountingReportError):
            generate_profit_and_loss(company=self.company, date_from="2025-06-01", date_to="2025-05-01")


class PeriodCloseTests(TestCase):
    def setUp(self):
        seed_default_rules()
        self.company = make_company()
        post_invoice(self.company, "INV-1", event_date=date(2025, 4, 10))

    def test_close_moves_profit_and_locks_period(self):
        result = close_period(company=self.company, start_date=date(2025, 4, 1), end_date=date(2025, 4, 30))

        entry = result["journal_entry"]
        self.assertEqual(result["net_profit"], Decimal("10000.00"))
        self.assertEqual(entry.entry_type, JournalEntry.CLOSING)
        self.assertEqual(entry.entry_date, date(2025, 4, 30))

        lock = result["period_close"]
        self.assertEqual(lock.journal_entry_id, entry.pk)
        self.assertEqual(lock.retained_earnings_account.code, "3100")
        self.assertEqual((lock.total_income, lock.total_expenses), (Decimal("10000.00"), Decimal("0.00")))

        revenue = Account.objects.get(company=self.company, code="4110")
        retained = Account.objects.get(company=self.company, code="3100")
        self.assertEqual(revenue.current_balance, Decimal("0.00"))
        self.assertEqual(retained.current_balance, Decimal("10000.00"))

        with self.assertRaises(PeriodLockedError):
            post_invoice(self.company, "INV-2", event_date=date(2025, 4, 15))

        self.assertEqual(post_invoice(self.company, "INV-3", event_date=date(2025, 5, 2)).status, "posted")

        pnl = generate_profit_and_loss(company=self.company, date_from="2025-04-01", date_to="2025-04-30")
        self.assertEqual(pnl["net_profit"], 10000.0)

        sheet = generate_balance_sheet(company=self.company, as_of="2025-04-30")
        self.assertTrue(sheet["totals"]["balanced"])
        self.assertEqual(sheet["totals"]["current_period_earnings"], 0.0)

    def test_overlapping_close_rejected(self):
        close_period(company=self.company, start_date=date(2025, 4, 1), end_date=date(2025, 4, 30))
        with self.assertRaises(PeriodLockedError):
            close_period(company=self.company, start_date=date(2025, 4, 15), end_date=date(2025, 5, 15))

    def test_reversal_into_closed_period_rejected(self):
        entry = JournalEntry.objects.get(company=self.company, source_id="INV-1")
        close_period(company=self.company, start_date=date(2025, 4, 1), end_date=date(2025, 4, 30))

        with self.assertRaises(PeriodLockedError):
            reverse(entry.pk, "late correction", reversal_date=date(2025, 4, 29))

    def test_invalid_ranges(self):
        with self.assertRaises(PeriodCloseError):
            close_period(company=self.company, start_date=date(2025, 5, 1), end_date=date(2025, 4, 1))
        with self.assertRaises(PeriodCloseError):
            close_period(company=self.company, start_date=date(2025, 4, 1), end_date=date(2999, 1, 1))
        with self.assertRaises(PeriodCloseError):
            close_period(
                company=self.company,
                start_date=date(2025, 4, 1),
                end_date=date(2025, 4, 30),
                retained_earnings_code="1112",
            )
