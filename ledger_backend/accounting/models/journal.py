# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Represents a single accounting transaction (journal header).

Guarantees:
- Idempotency via (company, source_type, source_id, trigger_event) uniqueness
- Entry numbers are unique per company (JV-<fiscal year>-<sequence>)
- Posted entries are immutable; the only permitted change is the
  posted -> reversed transition that links the compensating entry
- Posted entries balance (total_debit == total_credit)
- entry_date is the accounting effective date (used for period locks and reports)
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from accounting.models.company import Company


class JournalEntry(models.Model):
    # Status
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    POSTED = "posted"
    REVERSED = "reversed"

    STATUS_CHOICES = [
        (DRAFT, "Draft"),
        (PENDING_APPROVAL, "Pending approval"),
        (POSTED, "Posted"),
        (REVERSED, "Reversed"),
    ]

    # Statuses whose lines belong to the ledger
    LEDGER_STATUSES = (POSTED, REVERSED)

    # Entry types
    MANUAL = "manual"
    AUTO_POST = "auto_post"
    REVERSAL = "reversal"
    OPENING = "opening"
    CLOSING = "closing"
    ADJUSTMENT = "adjustment"

    ENTRY_TYPES = [
        (MANUAL, "Manual"),
        (AUTO_POST, "Auto posted"),
        (REVERSAL, "Reversal"),
        (OPENING, "Opening"),
        (CLOSING, "Closing"),
        (ADJUSTMENT, "Adjustment"),
    ]

    # Fields a posted entry may still change (reversal linkage only)
    REVERSAL_FIELDS = frozenset({"status", "is_reversed", "reversed_by", "updated_at"})

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="journal_entries",
    )

    entry_number = models.CharField(max_length=32)
    entry_date = models.DateField(help_text="Accounting effective date")
    fiscal_year = models.CharField(max_length=7)
    period_month = models.PositiveSmallIntegerField()

    entry_type = models.CharField(max_length=20, choices=ENTRY_TYPES, default=AUTO_POST)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=DRAFT)

    # Triggering business document
    source_type = models.CharField(max_length=50)
    source_id = models.CharField(max_length=64)
    source_number = models.CharField(max_length=100, blank=True, default="")
    trigger_event = models.CharField(max_length=50)

    description = models.TextField(help_text="Narrative description of the journal entry")

    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, help_text="Ledger (base) currency of the amounts")

    posting_rule = models.ForeignKey(
        "accounting.PostingRule",
        on_delete=models.PROTECT,
        related_name="journal_entries",
        null=True,
        blank=True,
    )
    rule_pack_version = models.CharField(max_length=32, blank=True, default="")

    reversal_of = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="reversals",
        null=True,
        blank=True,
    )
    reversed_by = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="+",
        null=True,
        blank=True,
    )
    is_reversed = models.BooleanField(default=False)
    reversal_reason = models.TextField(blank=True, default="")

    posted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-entry_date", "-created_at"]
        indexes = [
            models.Index(fields=["company", "entry_date"]),
            models.Index(fields=["company", "fiscal_year", "period_month"]),
            models.Index(fields=["company", "status"]),
            models.Index(fields=["source_type", "source_id"]),
            models.Index(fields=["created_at"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "source_type", "source_id", "trigger_event"],
                name="uniq_journal_idempotency_key",
            ),
            models.UniqueConstraint(
                fields=["company", "entry_number"],
                name="uniq_journal_company_entry_number",
            ),
            models.CheckConstraint(
                condition=~Q(status__in=["posted", "reversed"])
                | (
                    Q(total_debit__lte=F("total_credit") + Decimal("0.01"))
                    & Q(total_debit__gte=F("total_credit") - Decimal("0.01"))
                ),
                name="chk_journal_posted_balanced",
            ),
            models.CheckConstraint(
                condition=Q(is_reversed=False) | Q(reversed_by__isnull=False),
                name="chk_journal_reversed_has_link",
            ),
            models.CheckConstraint(
                condition=Q(period_month__gte=1) & Q(period_month__lte=12),
                name="chk_journal_period_month_range",
            ),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"{self.entry_number} – {self.entry_date}"

    @property
    def is_in_ledger(self) -> bool:
        return self.status in self.LEDGER_STATUSES

    def clean(self):
        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        self.source_type = (self.source_type or "").strip()
        self.source_id = str(self.source_id or "").strip()
        self.trigger_event = (self.trigger_event or "").strip()
        if not (self.source_type and self.source_id and self.trigger_event):
            raise ValidationError("source_type, source_id and trigger_event are required")

        if self.is_reversed and not self.reversed_by_id:
            raise ValidationError({"reversed_by": "A reversed entry must link its reversal entry"})

        if self.status == self.REVERSED and not self.is_reversed:
            raise ValidationError({"status": "status=reversed requires is_reversed"})

        if self.posted_at and timezone.is_naive(self.posted_at):
            self.posted_at = timezone.make_aware(self.posted_at, timezone.get_current_timezone())

    def _check_posted_update(self, update_fields) -> None:
        stored_status = (
            JournalEntry.objects.filter(pk=self.pk).values_list("status", flat=True).first()
        )
        if stored_status not in self.LEDGER_STATUSES:
            return

        fields = set(update_fields or ())
        if not fields or not fields <= self.REVERSAL_FIELDS:
            raise ValidationError("Posted journal entries are immutable; post a reversal instead")
        if "status" in fields and self.status != self.REVERSED:
            raise ValidationError("A posted journal entry can only move to reversed")

    def save(self, *args, **kwargs):
        if self.pk:
            self._check_posted_update(kwargs.get("update_fields"))

        # Uniqueness is left to the database so a concurrent insert of the
        # same idempotency key surfaces as IntegrityError.
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
