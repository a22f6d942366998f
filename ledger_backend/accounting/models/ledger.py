# accounting/models/ledger.py

"""
======================================================
PATH: accounting/models/ledger.py
======================================================
JOURNAL LINE MODEL

One debit or credit row of a journal entry.

Guarantees:
- Immutable once created (no updates, no deletes)
- Exactly one of debit_amount / credit_amount is > 0, the other is 0
- Amounts are in the company's base currency; the event currency, rate and
  foreign amount are carried for external forex reconciliation
- subledger_type / subledger_id are set together or both empty
- A line on a control account always names a party of a permitted kind
- Reporting uses journal_entry.entry_date as the accounting timeline
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.subledger import (
    SUBLEDGER_TYPE_CHOICES,
    SubledgerError,
    SubledgerRef,
    accepts_kind,
    subledger_ref,
)


class JournalLine(models.Model):
    DEBIT = "debit"
    CREDIT = "credit"

    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="lines",
    )
    line_number = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )
    account_code = models.CharField(max_length=20, blank=True, default="", help_text="Account code at posting time")

    debit_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    credit_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    currency = models.CharField(max_length=3)
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("1"))
    foreign_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Amount in the event currency when it differs from the base currency",
    )

    subledger_type = models.CharField(
        max_length=20,
        choices=SUBLEDGER_TYPE_CHOICES,
        blank=True,
        default="",
    )
    subledger_id = models.CharField(max_length=64, blank=True, default="")

    description = models.CharField(max_length=500, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Journal Line"
        verbose_name_plural = "Journal Lines"
        ordering = ["journal_entry_id", "line_number"]
        indexes = [
            models.Index(fields=["account"]),
            models.Index(fields=["journal_entry"]),
            models.Index(fields=["account", "subledger_type", "subledger_id"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["journal_entry", "line_number"],
                name="uniq_journal_line_number",
            ),
            models.CheckConstraint(
                condition=(Q(debit_amount__gt=0) & Q(credit_amount=0))
                | (Q(credit_amount__gt=0) & Q(debit_amount=0)),
                name="chk_journal_line_one_side",
            ),
            models.CheckConstraint(
                condition=(Q(subledger_type="") & Q(subledger_id=""))
                | (~Q(subledger_type="") & ~Q(subledger_id="")),
                name="chk_journal_line_subledger_pair",
            ),
        ]

    def __str__(self):
        return f"{self.side} {self.amount} → {self.account_code}"

    @property
    def side(self) -> str:
        return self.DEBIT if self.debit_amount > 0 else self.CREDIT

    @property
    def amount(self) -> Decimal:
        return self.debit_amount if self.debit_amount > 0 else self.credit_amount

    @property
    def subledger(self) -> SubledgerRef | None:
        return subledger_ref(self.subledger_type, self.subledger_id)

    def clean(self):
        debit = self.debit_amount or Decimal("0")
        credit = self.credit_amount or Decimal("0")
        if debit < 0 or credit < 0:
            raise ValidationError("Line amounts cannot be negative")
        if (debit > 0) == (credit > 0):
            raise ValidationError("Exactly one of debit_amount / credit_amount must be > 0")

        try:
            ref = subledger_ref(self.subledger_type, self.subledger_id)
        except SubledgerError as e:
            raise ValidationError({"subledger_type": str(e)}) from e

        if self.account_id:
            account = self.account
            if account.is_control_account:
                if ref is None:
                    raise ValidationError(
                        {"subledger_type": f"Control account {account.code} requires a subledger tag"}
                    )
                if not accepts_kind(account.control_account_type, ref.kind):
                    raise ValidationError(
                        {"subledger_type": f"Control account {account.code} does not accept {ref.kind} parties"}
                    )
            if not self.account_code:
                self.account_code = account.code

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalLine records are immutable and cannot be modified")

        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalLine records are immutable and cannot be deleted")
