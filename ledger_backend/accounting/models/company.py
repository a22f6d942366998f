# accounting/models/company.py

from __future__ import annotations

from datetime import date

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from accounting import fiscal


def _default_base_currency() -> str:
    return getattr(settings, "ACCOUNTING_BASE_CURRENCY", "INR")


def _default_fiscal_year_start_month() -> int:
    return int(getattr(settings, "ACCOUNTING_FISCAL_YEAR_START_MONTH", 4))


class Company(models.Model):
    """
    A tenant of the ledger.

    Every account, journal entry, balance row and company-specific posting rule
    belongs to exactly one company. Global posting rules and global template
    accounts carry no company.

    Guarantees:
    - Stable code (used by API callers, management commands and seeders)
    - Base currency is an ISO-4217 code; all ledger amounts are in it
    - Fiscal calendar is explicit per company (defaults to April start)
    """

    code = models.SlugField(
        max_length=64,
        unique=True,
        help_text="Stable company key used by API callers and seeders. Do not change after go-live.",
    )
    name = models.CharField(max_length=200)

    base_currency = models.CharField(max_length=3, default=_default_base_currency)
    fiscal_year_start_month = models.PositiveSmallIntegerField(
        default=_default_fiscal_year_start_month,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Company"
        verbose_name_plural = "Companies"
        ordering = ["code"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_company_code_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(fiscal_year_start_month__gte=1) & Q(fiscal_year_start_month__lte=12),
                name="chk_company_fy_start_month_range",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    def clean(self):
        self.code = (self.code or "").strip().lower()
        self.name = (self.name or "").strip()
        self.base_currency = (self.base_currency or "").strip().upper()

        if not self.code:
            raise ValidationError({"code": "code is required"})
        if not self.name:
            raise ValidationError({"name": "name is required"})
        if len(self.base_currency) != 3 or not self.base_currency.isalpha():
            raise ValidationError({"base_currency": "base_currency must be a 3-letter ISO code"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    # -------------------------
    # Fiscal calendar
    # -------------------------
    def fiscal_year_for(self, on_date: date) -> str:
        return fiscal.fiscal_year_for(on_date, self.fiscal_year_start_month)

    def period_month_for(self, on_date: date) -> int:
        return fiscal.period_month_for(on_date, self.fiscal_year_start_month)

    def fiscal_year_bounds(self, label: str):
        return fiscal.fiscal_year_bounds(label, self.fiscal_year_start_month)

    def period_bounds(self, label: str, period_month: int):
        return fiscal.period_bounds(label, period_month, self.fiscal_year_start_month)


class CompanySequence(models.Model):
    """
    Named per-company counter (journal numbers per fiscal year).

    Values are only ever allocated under a row lock inside the posting
    transaction; a rolled-back posting releases its number with it.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=64)
    next_value = models.PositiveBigIntegerField(default=1)

    class Meta:
        verbose_name = "Company Sequence"
        verbose_name_plural = "Company Sequences"
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                name="uniq_company_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.name} -> {self.next_value}"
