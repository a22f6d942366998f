# accounting/services/rule_validation.py

"""
RULE VALIDATION PASS

Static checks over the rules a company can use, as of a date. Catches the
configuration errors that would otherwise surface mid-posting:

- conditions / template that no longer parse (ERROR)
- literal or fallback account codes missing or inactive in the chart (ERROR)
- template lines posting to a control account without a subledger spec (ERROR)
- (source_type, trigger_event) pairs with rules but no fallback (ERROR)
- a fallback ordered ahead of other rules, making them unreachable (WARNING)

Save-time validation (PostingRule.clean) covers a single rule; this pass
covers the rule set against the chart.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date

from django.db.models import Q
from django.utils import timezone

from accounting.event_schema import RuleDefinitionError
from accounting.models.account import Account
from accounting.models.company import Company
from accounting.posting_templates import LiteralAccount, template_account_codes
from accounting.services.rule_repository import visible_rules

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class RuleIssue:
    level: str
    rule_code: str
    message: str
    source_type: str = ""
    trigger_event: str = ""

    def as_dict(self) -> dict:
        return asdict(self)


def _issue(level: str, rule, message: str) -> RuleIssue:
    return RuleIssue(level, rule.rule_code, message, rule.source_type, rule.trigger_event)


def _match_order(rule) -> tuple:
    return (0 if rule.company_id else 1, rule.priority, rule.pk)


def _check_accounts(rule, template, accounts: dict[str, Account]) -> list[RuleIssue]:
    issues = []
    for code in sorted(template_account_codes(template)):
        account = accounts.get(code)
        if account is None:
            issues.append(_issue(ERROR, rule, f"Account {code} is not in the chart of accounts"))
        elif not account.is_active:
            issues.append(_issue(ERROR, rule, f"Account {code} is inactive"))

    for index, line in enumerate(template.lines, start=1):
        if not isinstance(line.account, LiteralAccount) or line.subledger is not None:
            continue
        account = accounts.get(line.account.code)
        if account is not None and account.is_control_account:
            issues.append(
                _issue(
                    ERROR,
                    rule,
                    f"Line {index} posts to control account {account.code} without a subledger spec",
                )
            )
    return issues


def validate_rules(company: Company | None, as_of: date | None = None) -> list[RuleIssue]:
    """
    Validate every active rule visible to `company` that is effective on
    `as_of` (default: today). `company=None` checks the global rule pack
    against the global template chart.
    """
    as_of = as_of or timezone.localdate()

    rules = list(
        visible_rules(company)
        .filter(is_active=True, effective_from__lte=as_of)
        .filter(Q(effective_to__isnull=True) | Q(effective_to__gte=as_of))
        .select_related("company")
    )
    if company is None:
        accounts = {a.code: a for a in Account.objects.filter(company__isnull=True)}
    else:
        accounts = {a.code: a for a in Account.objects.filter(company=company)}

    issues: list[RuleIssue] = []
    by_pair: dict[tuple, list] = defaultdict(list)

    for rule in rules:
        by_pair[(rule.source_type, rule.trigger_event, rule.fiscal_year)].append(rule)

        try:
            rule.parsed_conditions()
        except RuleDefinitionError as exc:
            issues.append(_issue(ERROR, rule, f"Conditions do not parse: {exc}"))

        try:
            template = rule.parsed_template()
        except RuleDefinitionError as exc:
            issues.append(_issue(ERROR, rule, f"Template does not parse: {exc}"))
            continue

        issues.extend(_check_accounts(rule, template, accounts))

    for (source_type, trigger_event, fiscal_year), pair_rules in sorted(by_pair.items()):
        pair_rules.sort(key=_match_order)
        scope = f"{source_type}/{trigger_event}" + (f" ({fiscal_year})" if fiscal_year else "")

        fallbacks = [r for r in pair_rules if r.is_fallback]
        if not fallbacks and not fiscal_year:
            issues.append(
                RuleIssue(
                    ERROR,
                    "",
                    f"No fallback rule for {scope}; unmatched events will fail to post",
                    source_type,
                    trigger_event,
                )
            )

        for fallback in fallbacks:
            position = pair_rules.index(fallback)
            shadowed = [r.rule_code for r in pair_rules[position + 1:] if not r.is_fallback]
            if shadowed:
                issues.append(
                    RuleIssue(
                        WARNING,
                        fallback.rule_code,
                        f"Fallback for {scope} is matched before {', '.join(shadowed)}; they are unreachable",
                        source_type,
                        trigger_event,
                    )
                )

    logger.info(
        "Validated %s rules for %s: %s errors, %s warnings",
        len(rules),
        company.code if company else "global",
        sum(1 for i in issues if i.level == ERROR),
        sum(1 for i in issues if i.level == WARNING),
    )
    return issues


def has_errors(issues: list[RuleIssue]) -> bool:
    return any(i.level == ERROR for i in issues)
