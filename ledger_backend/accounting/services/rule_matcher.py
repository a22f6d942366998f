# accounting/services/rule_matcher.py

"""
======================================================
PATH: accounting/services/rule_matcher.py
======================================================
RULE MATCHER

select_rule(company, source_type, trigger_event, event_date, event_fields)
returns the first candidate whose conditions all hold:

1. company-specific rules before global rules
2. priority ascending within each scope
3. id ascending (only reachable through bad data; save-time validation keeps
   priorities unique per scope and window)

Conditions are evaluated against the event fields only. A rule with no
conditions always matches, so a correctly configured company has a fallback
for every (source_type, trigger_event) it receives.

No match is a configuration gap (NoMatchingRuleError), never a silent no-op.
Pure reads: no locks, no writes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping

from accounting.conditions import ConditionEvaluationError, evaluate
from accounting.event_schema import RuleDefinitionError
from accounting.models.company import Company
from accounting.models.posting_rule import PostingRule
from accounting.services.exceptions import (
    FieldResolutionError,
    InvalidRuleError,
    NoMatchingRuleError,
)
from accounting.services.rule_repository import candidate_rules

logger = logging.getLogger(__name__)


def rule_matches(rule: PostingRule, event_fields: Mapping[str, Any]) -> bool:
    try:
        conditions = rule.parsed_conditions()
    except RuleDefinitionError as exc:
        raise InvalidRuleError(
            f"Stored conditions do not parse: {exc}",
            rule_id=rule.pk,
            rule_code=rule.rule_code,
        ) from exc

    try:
        return evaluate(conditions, event_fields)
    except ConditionEvaluationError as exc:
        raise FieldResolutionError(str(exc), rule_id=rule.pk, rule_code=rule.rule_code) from exc


def select_rule(
    *,
    company: Company,
    source_type: str,
    trigger_event: str,
    event_date: date,
    event_fields: Mapping[str, Any],
    fiscal_year: str | None = None,
) -> PostingRule:
    if fiscal_year is None:
        fiscal_year = company.fiscal_year_for(event_date)

    candidates = candidate_rules(
        company=company,
        source_type=source_type,
        trigger_event=trigger_event,
        on_date=event_date,
        fiscal_year=fiscal_year,
    )

    for rule in candidates:
        if rule_matches(rule, event_fields):
            logger.debug(
                "Rule %s (id=%s) selected for %s/%s company=%s",
                rule.rule_code,
                rule.pk,
                source_type,
                trigger_event,
                company.code,
            )
            return rule

    raise NoMatchingRuleError(
        "No posting rule matched; add a fallback rule for this source type and trigger event",
        company=company.code,
        source_type=source_type,
        trigger_event=trigger_event,
        event_date=event_date,
        candidates=len(candidates),
    )
