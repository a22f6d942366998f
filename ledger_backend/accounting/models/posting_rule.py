# accounting/models/posting_rule.py

"""
======================================================
PATH: accounting/models/posting_rule.py
======================================================
POSTING RULE + RULE USAGE LOG

A posting rule maps a business event (source_type + trigger_event) to a
template of balanced journal lines, optionally guarded by conditions.

Scope:
- company = NULL -> global default rule; a company rule with a matching
  event always wins over a global one
- fiscal_year = "" -> any fiscal year
- effective_from / effective_to -> versioning window (to = NULL is open ended)

Save-time validation (clean):
- conditions + template parse, and only reference fields the source type sends
- a fallback rule has no conditions
- no two active rules in the same scope share a priority in overlapping windows
- at most one active fallback per scope in overlapping windows

Versioning:
- once an entry has been posted under a rule, only effective_to / is_active
  (and cosmetic name/description) may change; anything else is a new version
  (see accounting.services.rule_repository.supersede_rule)
"""

from __future__ import annotations

from datetime import date

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from accounting import conditions as rule_conditions
from accounting import posting_templates
from accounting.event_schema import (
    INTERNAL_SOURCE_TYPES,
    RuleDefinitionError,
    permitted_fields,
)
from accounting.fiscal import FiscalCalendarError, parse_fiscal_year
from accounting.models.company import Company
from accounting.models.journal import JournalEntry

DEFAULT_RULE_PACK_VERSION = "default"


class PostingRule(models.Model):
    # Fields that define what a rule posts; frozen once the rule has been used
    VERSIONED_FIELDS = (
        "company_id",
        "rule_code",
        "source_type",
        "trigger_event",
        "priority",
        "conditions",
        "template",
        "effective_from",
        "fiscal_year",
        "is_fallback",
    )

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="posting_rules",
        null=True,
        blank=True,
        help_text="Null = global default rule",
    )

    rule_code = models.CharField(max_length=50)
    rule_name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")

    source_type = models.CharField(max_length=50)
    trigger_event = models.CharField(max_length=50)

    priority = models.PositiveIntegerField(default=100, help_text="Lower = tried first")
    is_active = models.BooleanField(default=True)
    is_fallback = models.BooleanField(
        default=False,
        help_text="Catch-all rule for its source type / trigger event (no conditions)",
    )

    conditions = models.JSONField(default=dict, blank=True)
    template = models.JSONField()

    effective_from = models.DateField(default=date(2000, 1, 1))
    effective_to = models.DateField(null=True, blank=True)
    fiscal_year = models.CharField(max_length=7, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["source_type", "trigger_event", "priority", "rule_code"]
        verbose_name = "Posting Rule"
        verbose_name_plural = "Posting Rules"
        indexes = [
            models.Index(fields=["source_type", "trigger_event", "is_active"]),
            models.Index(fields=["company", "source_type", "trigger_event"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "rule_code", "fiscal_year", "effective_from"],
                condition=Q(company__isnull=False),
                name="uniq_posting_rule_company_code_version",
            ),
            models.UniqueConstraint(
                fields=["rule_code", "fiscal_year", "effective_from"],
                condition=Q(company__isnull=True),
                name="uniq_posting_rule_global_code_version",
            ),
            models.CheckConstraint(
                condition=Q(effective_to__isnull=True) | Q(effective_to__gte=F("effective_from")),
                name="chk_posting_rule_window_order",
            ),
            models.CheckConstraint(
                condition=~Q(rule_code=""),
                name="chk_posting_rule_code_not_blank",
            ),
        ]

    def __str__(self):
        scope = self.company.code if self.company_id else "global"
        return f"{self.rule_code} [{scope}] {self.source_type}/{self.trigger_event} p{self.priority}"

    # -------------------------
    # Parsed views
    # -------------------------
    def parsed_conditions(self):
        return rule_conditions.parse_conditions(self.conditions)

    def parsed_template(self):
        return posting_templates.parse_template(self.template)

    @property
    def rule_pack_version(self) -> str:
        return self.fiscal_year or DEFAULT_RULE_PACK_VERSION

    def is_effective_on(self, on_date: date) -> bool:
        if on_date < self.effective_from:
            return False
        return self.effective_to is None or on_date <= self.effective_to

    def snapshot(self) -> dict:
        """Everything needed to reproduce a posting made under this rule."""
        return {
            "id": self.pk,
            "company_id": self.company_id,
            "rule_code": self.rule_code,
            "rule_name": self.rule_name,
            "source_type": self.source_type,
            "trigger_event": self.trigger_event,
            "priority": self.priority,
            "is_fallback": self.is_fallback,
            "conditions": self.conditions or {},
            "template": self.template,
            "effective_from": self.effective_from.isoformat() if self.effective_from else None,
            "effective_to": self.effective_to.isoformat() if self.effective_to else None,
            "fiscal_year": self.fiscal_year,
            "rule_pack_version": self.rule_pack_version,
        }

    # -------------------------
    # Validation
    # -------------------------
    def _overlapping_scope(self):
        qs = PostingRule.objects.filter(
            company_id=self.company_id,
            source_type=self.source_type,
            trigger_event=self.trigger_event,
            is_active=True,
            effective_from__lte=self.effective_to or date.max,
        ).filter(Q(effective_to__isnull=True) | Q(effective_to__gte=self.effective_from))

        if self.fiscal_year:
            qs = qs.filter(Q(fiscal_year="") | Q(fiscal_year=self.fiscal_year))
        if self.pk:
            qs = qs.exclude(pk=self.pk)
        return qs

    def _validate_definition(self) -> None:
        if self.source_type in INTERNAL_SOURCE_TYPES:
            raise ValidationError({"source_type": f"{self.source_type} entries are not rule driven"})

        try:
            allowed = permitted_fields(
                self.source_type,
                extra=getattr(settings, "ACCOUNTING_EVENT_FIELDS", None),
            )
        except RuleDefinitionError as e:
            raise ValidationError({"source_type": str(e)}) from e

        try:
            conds = self.parsed_conditions()
        except RuleDefinitionError as e:
            raise ValidationError({"conditions": str(e)}) from e

        unknown = sorted(rule_conditions.condition_fields(conds) - allowed)
        if unknown:
            raise ValidationError(
                {"conditions": f"Unknown fields for {self.source_type}: {', '.join(unknown)}"}
            )

        try:
            tpl = self.parsed_template()
        except RuleDefinitionError as e:
            raise ValidationError({"template": str(e)}) from e

        unknown = sorted(posting_templates.template_fields(tpl) - allowed)
        if unknown:
            raise ValidationError(
                {"template": f"Unknown fields for {self.source_type}: {', '.join(unknown)}"}
            )

        if self.is_fallback and conds:
            raise ValidationError({"is_fallback": "A fallback rule cannot have conditions"})

    def clean(self):
        self.rule_code = (self.rule_code or "").strip().upper()
        self.rule_name = (self.rule_name or "").strip() or self.rule_code
        self.source_type = (self.source_type or "").strip().lower()
        self.trigger_event = (self.trigger_event or "").strip().lower()
        self.fiscal_year = (self.fiscal_year or "").strip()
        if self.conditions is None:
            self.conditions = {}

        if not self.rule_code:
            raise ValidationError({"rule_code": "rule_code is required"})
        if not self.trigger_event:
            raise ValidationError({"trigger_event": "trigger_event is required"})

        if self.fiscal_year:
            try:
                parse_fiscal_year(self.fiscal_year)
            except FiscalCalendarError as e:
                raise ValidationError({"fiscal_year": str(e)}) from e

        if self.effective_to and self.effective_from and self.effective_to < self.effective_from:
            raise ValidationError({"effective_to": "effective_to must be >= effective_from"})

        self._validate_definition()

        if not self.is_active:
            return

        clash = self._overlapping_scope().filter(priority=self.priority).first()
        if clash is not None:
            raise ValidationError(
                {"priority": f"Priority {self.priority} is already used by {clash.rule_code} in an overlapping window"}
            )

        if self.is_fallback:
            other = self._overlapping_scope().filter(is_fallback=True).first()
            if other is not None:
                raise ValidationError(
                    {"is_fallback": f"{other.rule_code} is already the fallback for this source type / trigger event"}
                )

    # -------------------------
    # Versioning / immutability
    # -------------------------
    @property
    def has_postings(self) -> bool:
        return bool(self.pk) and JournalEntry.objects.filter(posting_rule_id=self.pk).exists()

    def _check_versioned_update(self) -> None:
        stored = PostingRule.objects.filter(pk=self.pk).values(*self.VERSIONED_FIELDS).first()
        if stored is None or not self.has_postings:
            return

        changed = [name for name in self.VERSIONED_FIELDS if stored[name] != getattr(self, name)]
        if changed:
            raise ValidationError(
                f"Rule {self.rule_code} has postings; {', '.join(changed)} cannot change. "
                "Close its window and create a new version instead."
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        if self.pk:
            self._check_versioned_update()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.has_postings:
            raise ValidationError("Posting rules with postings cannot be deleted; deactivate them instead")
        return super().delete(*args, **kwargs)


class PostingRuleUsageLog(models.Model):
    """
    Immutable audit row per rule application.

    rule_snapshot holds the rule exactly as applied, so historical postings stay
    explainable after the rule is superseded. Failed applications (a rule was
    selected but rendering or persistence failed) carry success=False, no
    journal entry and the error message.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="rule_usage_logs",
    )
    posting_rule = models.ForeignKey(
        PostingRule,
        on_delete=models.PROTECT,
        related_name="usage_logs",
    )
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="rule_usage_logs",
        null=True,
        blank=True,
    )

    source_type = models.CharField(max_length=50)
    source_id = models.CharField(max_length=64)
    trigger_event = models.CharField(max_length=50)

    rule_snapshot = models.JSONField()
    success = models.BooleanField(default=True)
    error_message = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Posting Rule Usage Log"
        verbose_name_plural = "Posting Rule Usage Logs"
        indexes = [
            models.Index(fields=["posting_rule", "created_at"]),
            models.Index(fields=["source_type", "source_id"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(success=False) | Q(journal_entry__isnull=False),
                name="chk_rule_usage_success_has_entry",
            ),
        ]

    def __str__(self):
        outcome = "ok" if self.success else "failed"
        return f"{self.posting_rule_id} → {self.journal_entry_id or '-'} ({outcome})"

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Rule usage logs are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Rule usage logs are immutable and cannot be deleted")
