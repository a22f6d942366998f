# accounting/models/period_close.py

"""
======================================================
PATH: accounting/models/period_close.py
======================================================
PERIOD CLOSE (LOCK + CLOSING SNAPSHOT)

One row per closed date range of a company. While it exists:
- no entry (rule posting, reversal, manual) may be dated inside the range
- the range's income/expense balances live in the retained earnings account,
  moved there by `journal_entry` (null when nothing moved)

The totals are the figures the close computed, kept so the lock explains
itself without re-running the income statement.

Rows are write-once: never edited, never deleted.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from accounting.models.account import Account
from accounting.models.company import Company
from accounting.models.journal import JournalEntry


class PeriodClose(models.Model):
    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="period_closes",
    )

    start_date = models.DateField()
    end_date = models.DateField()

    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="period_closes",
        null=True,
        blank=True,
        help_text="Closing entry; null when the range had no income/expense movement.",
    )
    retained_earnings_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="period_closes",
        null=True,
        blank=True,
    )

    total_income = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_expenses = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    net_profit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-end_date", "-created_at"]
        indexes = [
            models.Index(fields=["company", "start_date", "end_date"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "start_date", "end_date"],
                name="uniq_period_close_company_range",
            ),
            models.CheckConstraint(
                condition=Q(end_date__gte=F("start_date")),
                name="chk_period_close_range_order",
            ),
        ]
        verbose_name = "Period Close"
        verbose_name_plural = "Period Closes"

    def __str__(self):
        return f"{self.company_id}: closed {self.start_date} → {self.end_date}"

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "end_date must be >= start_date"})

        if self.journal_entry_id:
            if not self.journal_entry.is_in_ledger:
                raise ValidationError({"journal_entry": "The closing entry must be posted"})
            if self.journal_entry.company_id != self.company_id:
                raise ValidationError({"journal_entry": "The closing entry belongs to another company"})

        if self.net_profit != (self.total_income or 0) - (self.total_expenses or 0):
            raise ValidationError({"net_profit": "net_profit must equal total_income - total_expenses"})

        if self.retained_earnings_account_id:
            account = self.retained_earnings_account
            if account.company_id != self.company_id or account.account_type != Account.EQUITY:
                raise ValidationError(
                    {"retained_earnings_account": "Must be an equity account of the same company"}
                )

        if self.company_id and self.start_date and self.end_date:
            overlapping = PeriodClose.objects.filter(
                company_id=self.company_id,
                start_date__lte=self.end_date,
                end_date__gte=self.start_date,
            ).exclude(pk=self.pk)
            if overlapping.exists():
                raise ValidationError("This range overlaps a period already closed for this company.")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Period closes are write-once")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Period closes cannot be deleted; they lock posted history")
