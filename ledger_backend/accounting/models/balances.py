# accounting/models/balances.py

"""
======================================================
PATH: accounting/models/balances.py
======================================================
BALANCE CACHES

Both models are derived data over posted journal lines:
- written only by accounting.services.balance_service (inside the posting
  transaction, under row locks)
- rebuildable from scratch with recalculate_balances(); a rebuild must produce
  the same rows the incremental path maintained

Balances are signed on the account's normal side.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.company import Company
from accounting.subledger import SUBLEDGER_TYPE_CHOICES, subledger_ref

ZERO = Decimal("0.00")


class SubledgerBalance(models.Model):
    """Party-level balance under a control account."""

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="subledger_balances",
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="subledger_balances",
    )
    subledger_type = models.CharField(max_length=20, choices=SUBLEDGER_TYPE_CHOICES)
    subledger_id = models.CharField(max_length=64)

    debit_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    credit_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    balance = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    transaction_count = models.PositiveIntegerField(default=0)
    last_entry_date = models.DateField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Subledger Balance"
        verbose_name_plural = "Subledger Balances"
        ordering = ["account_id", "subledger_type", "subledger_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["account", "subledger_type", "subledger_id"],
                name="uniq_subledger_balance_party",
            ),
        ]

    def __str__(self):
        return f"{self.account_id} {self.subledger_type}:{self.subledger_id} = {self.balance}"

    @property
    def subledger(self):
        return subledger_ref(self.subledger_type, self.subledger_id)


class AccountPeriodBalance(models.Model):
    """
    Per account per fiscal month.

    closing_balance = opening_balance + normal-side (period_debit, period_credit)
    opening_balance = closing of the latest earlier row (or the account's
    opening balance when there is none)
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="period_balances",
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="period_balances",
    )
    fiscal_year = models.CharField(max_length=7)
    period_month = models.PositiveSmallIntegerField()
    period_start = models.DateField(help_text="First calendar day of the period")

    opening_balance = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    period_debit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    period_credit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    closing_balance = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    transaction_count = models.PositiveIntegerField(default=0)

    last_computed_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Account Period Balance"
        verbose_name_plural = "Account Period Balances"
        ordering = ["account_id", "period_start"]
        indexes = [
            models.Index(fields=["company", "fiscal_year", "period_month"]),
            models.Index(fields=["account", "period_start"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["account", "fiscal_year", "period_month"],
                name="uniq_account_period_balance",
            ),
            models.CheckConstraint(
                condition=Q(period_month__gte=1) & Q(period_month__lte=12),
                name="chk_account_period_month_range",
            ),
        ]

    def __str__(self):
        return f"{self.account_id} {self.fiscal_year}/{self.period_month:02d} = {self.closing_balance}"
