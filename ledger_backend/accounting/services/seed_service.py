# accounting/services/seed_service.py

"""
PATH: accounting/services/seed_service.py

SEEDERS (idempotent)

- seed_chart(): upsert the default chart (global templates when company is
  None, else straight into the company's chart)
- seed_rules(): upsert the default posting rule pack (global by default)

Resolved by STABLE keys (account code, rule code) so re-running a seed fixes
drift without duplicating rows. Rules that already carry postings are never
rewritten in place; they are reported as skipped.
"""

from __future__ import annotations

import logging

from django.db import transaction

from accounting.models.account import Account
from accounting.models.company import Company
from accounting.models.posting_rule import PostingRule
from accounting.seed_data import CHART, RULES

logger = logging.getLogger(__name__)


@transaction.atomic
def seed_chart(company: Company | None = None) -> dict:
    created = updated = 0
    by_code: dict[str, Account] = {}

    for code, name, account_type, parent_code, control_type in CHART:
        parent = by_code.get(parent_code) if parent_code else None
        defaults = {
            "name": name,
            "account_type": account_type,
            "parent": parent,
            "is_control_account": bool(control_type),
            "control_account_type": control_type,
        }

        account = Account.objects.filter(company=company, code=code).first()
        if account is None:
            account = Account.objects.create(company=company, code=code, **defaults)
            created += 1
        else:
            changed = [k for k, v in defaults.items() if getattr(account, k) != v]
            if changed:
                for k in changed:
                    setattr(account, k, defaults[k])
                account.save()
                updated += 1

        by_code[code] = account

    scope = company.code if company else "global"
    logger.info("Seeded chart for %s: %s created, %s updated", scope, created, updated)
    return {"scope": scope, "created": created, "updated": updated}


@transaction.atomic
def seed_rules(company: Company | None = None) -> dict:
    created = updated = 0
    skipped: list[str] = []

    for definition in RULES:
        fields = {
            "rule_name": definition["rule_name"],
            "source_type": definition["source_type"],
            "trigger_event": definition["trigger_event"],
            "priority": definition["priority"],
            "is_fallback": definition.get("is_fallback", False),
            "conditions": definition.get("conditions", {}),
            "template": definition["template"],
            "is_active": True,
        }

        rule = (
            PostingRule.objects.filter(company=company, rule_code=definition["rule_code"], fiscal_year="")
            .order_by("-effective_from")
            .first()
        )
        if rule is None:
            PostingRule.objects.create(company=company, rule_code=definition["rule_code"], **fields)
            created += 1
            continue

        changed = [k for k, v in fields.items() if getattr(rule, k) != v]
        if not changed:
            continue
        if rule.has_postings:
            skipped.append(rule.rule_code)
            continue

        for k in changed:
            setattr(rule, k, fields[k])
        rule.save()
        updated += 1

    scope = company.code if company else "global"
    if skipped:
        logger.warning("Rules with postings left unchanged for %s: %s", scope, ", ".join(skipped))
    logger.info("Seeded posting rules for %s: %s created, %s updated", scope, created, updated)
    return {"scope": scope, "created": created, "updated": updated, "skipped": skipped}
