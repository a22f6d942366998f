# accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which company account does this code mean?"

Design goals:
- deterministic
- tenant-safe: only the company's own accounts are ever returned
- hard-fail on missing setup (so we don't post to wrong accounts)

Global accounts (company = NULL) are a template catalogue. They are never
posted to; provision_chart() copies them into a company.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable

from django.db import transaction

from accounting.models.account import Account
from accounting.models.company import Company
from accounting.services.exceptions import AccountNotFoundError, EventDataError

logger = logging.getLogger(__name__)


def get_company(code_or_id) -> Company:
    """Resolve an active company by code (or primary key)."""
    if isinstance(code_or_id, Company):
        return code_or_id

    key = str(code_or_id or "").strip()
    if not key:
        raise EventDataError("company is required")

    qs = Company.objects.filter(is_active=True)
    company = qs.filter(code=key.lower()).first()
    if company is None and key.isdigit():
        company = qs.filter(pk=int(key)).first()
    if company is None:
        raise EventDataError(f"Unknown or inactive company {key!r}", company=key)
    return company


def get_account(*, company: Company, code: str, rule_id=None) -> Account:
    code = (code or "").strip()
    if not code:
        raise AccountNotFoundError("Account code is required", company=company.code, rule_id=rule_id)

    account = Account.objects.filter(company=company, code=code).first()
    if account is None:
        raise AccountNotFoundError(
            f"Account {code} not found in the chart of accounts. "
            "Run seed_chart_of_accounts (or add the account) before posting.",
            company=company.code,
            account_code=code,
            rule_id=rule_id,
        )
    if not account.is_active:
        raise AccountNotFoundError(
            f"Account {code} is inactive",
            company=company.code,
            account_code=code,
            rule_id=rule_id,
        )
    return account


def resolve_accounts(*, company: Company, codes: Iterable[str], rule_id=None) -> Dict[str, Account]:
    """Resolve many codes in one query; every code must exist and be active."""
    wanted = {(c or "").strip() for c in codes}
    found = {
        a.code: a
        for a in Account.objects.filter(company=company, code__in=wanted)
    }

    for code in sorted(wanted):
        account = found.get(code)
        if account is None or not account.is_active:
            # Re-run the single lookup for its precise error message
            get_account(company=company, code=code, rule_id=rule_id)
    return found


@transaction.atomic
def provision_chart(company: Company) -> int:
    """
    Copy global template accounts into the company's chart (idempotent).

    Parents are copied before children; existing company codes are left alone.
    Returns the number of accounts created.
    """
    templates = list(Account.objects.filter(company__isnull=True).select_related("parent"))
    by_code = {a.code: a for a in Account.objects.filter(company=company)}

    created = 0
    pending = sorted(templates, key=lambda a: (len(a.code), a.code))
    while pending:
        progressed = False
        remaining = []
        for template in pending:
            if template.code in by_code:
                progressed = True
                continue

            parent_code = template.parent.code if template.parent_id else None
            if parent_code and parent_code not in by_code:
                remaining.append(template)
                continue

            by_code[template.code] = Account.objects.create(
                company=company,
                code=template.code,
                name=template.name,
                account_type=template.account_type,
                normal_balance=template.normal_balance,
                parent=by_code.get(parent_code) if parent_code else None,
                is_control_account=template.is_control_account,
                control_account_type=template.control_account_type,
                is_active=template.is_active,
            )
            created += 1
            progressed = True

        if not progressed:
            missing = ", ".join(sorted(t.code for t in remaining))
            raise AccountNotFoundError(f"Template accounts with unresolvable parents: {missing}")
        pending = remaining

    logger.info("Provisioned %s accounts for company %s", created, company.code)
    return created
