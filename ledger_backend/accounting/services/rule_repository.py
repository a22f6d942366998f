# accounting/services/rule_repository.py

"""
======================================================
PATH: accounting/services/rule_repository.py
======================================================
RULE REPOSITORY

Read side:
- candidate_rules(): active, effective rules for one event, in match order
  (company-specific before global, then priority ascending, then id)
- visible_rules(): every rule a company can use (its own + global)

Write side (versioning):
- supersede_rule(): close a used rule's effective window and create the next
  version. Rules with postings are never edited in place.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from django.db import transaction
from django.db.models import Case, IntegerField, Q, QuerySet, Value, When

from accounting.models.company import Company
from accounting.models.posting_rule import PostingRule

logger = logging.getLogger(__name__)


def visible_rules(company: Company | None) -> QuerySet:
    if company is None:
        return PostingRule.objects.filter(company__isnull=True)
    return PostingRule.objects.filter(Q(company=company) | Q(company__isnull=True))


def candidate_rules(
    *,
    company: Company,
    source_type: str,
    trigger_event: str,
    on_date: date,
    fiscal_year: str = "",
) -> list[PostingRule]:
    qs = (
        visible_rules(company)
        .filter(
            source_type=source_type,
            trigger_event=trigger_event,
            is_active=True,
            effective_from__lte=on_date,
        )
        .filter(Q(effective_to__isnull=True) | Q(effective_to__gte=on_date))
    )

    if fiscal_year:
        qs = qs.filter(Q(fiscal_year="") | Q(fiscal_year=fiscal_year))
    else:
        qs = qs.filter(fiscal_year="")

    qs = qs.annotate(
        scope_rank=Case(
            When(company__isnull=True, then=Value(1)),
            default=Value(0),
            output_field=IntegerField(),
        )
    ).order_by("scope_rank", "priority", "id")

    return list(qs.select_related("company"))


@transaction.atomic
def supersede_rule(rule: PostingRule, *, effective_from: date, **changes) -> PostingRule:
    """
    Close `rule` the day before `effective_from` and create the next version.

    `changes` overrides fields on the new version (conditions, template,
    priority, rule_name, ...). The new version inherits the old window end.
    """
    rule = PostingRule.objects.select_for_update().get(pk=rule.pk)

    if effective_from <= rule.effective_from:
        raise ValueError("A new version must start after the current version's effective_from")
    if rule.effective_to is not None and effective_from > rule.effective_to + timedelta(days=1):
        raise ValueError("A new version must start within (or right after) the current window")

    inherited_end = rule.effective_to
    rule.effective_to = effective_from - timedelta(days=1)
    rule.save(update_fields=["effective_to", "updated_at"])

    fields = {
        "company": rule.company,
        "rule_code": rule.rule_code,
        "rule_name": rule.rule_name,
        "description": rule.description,
        "source_type": rule.source_type,
        "trigger_event": rule.trigger_event,
        "priority": rule.priority,
        "is_active": rule.is_active,
        "is_fallback": rule.is_fallback,
        "conditions": rule.conditions,
        "template": rule.template,
        "fiscal_year": rule.fiscal_year,
        "effective_to": inherited_end,
    }
    fields.update(changes)
    fields["effective_from"] = effective_from

    new_rule = PostingRule(**fields)
    new_rule.save()

    logger.info(
        "Superseded rule %s (id=%s) with id=%s from %s",
        rule.rule_code,
        rule.pk,
        new_rule.pk,
        effective_from,
    )
    return new_rule
