# accounting/services/subledger_service.py

"""
SUBLEDGER BALANCES

Party-level balances under one control account and their reconciliation:
the parties' balances must sum to the control account's balance.

- as_of omitted: read the SubledgerBalance cache (kept by the posting engine)
- as_of given: aggregate posted lines up to that date
"""

from __future__ import annotations

from django.db.models import Count, Max, Sum
from django.db.models.functions import Coalesce

from accounting.models.balances import SubledgerBalance
from accounting.services.account_resolver import get_account
from accounting.services.balance_service import get_account_balance, ledger_lines
from accounting.services.exceptions import AccountingReportError
from accounting.services.reporting import (
    ZERO,
    _q2,
    _to_minor_int,
    amount_fields,
    parse_report_date,
)


def _party_rows_from_lines(*, company, account, as_of, subledger_type):
    qs = ledger_lines(company=company, account=account, date_to=as_of).exclude(subledger_type="")
    if subledger_type:
        qs = qs.filter(subledger_type=subledger_type)

    for r in qs.values("subledger_type", "subledger_id").annotate(
        debit=Coalesce(Sum("debit_amount"), ZERO),
        credit=Coalesce(Sum("credit_amount"), ZERO),
        count=Count("id"),
        last_date=Max("journal_entry__entry_date"),
    ):
        debit, credit = _q2(r["debit"]), _q2(r["credit"])
        yield {
            "subledger_type": r["subledger_type"],
            "subledger_id": r["subledger_id"],
            "debit_total": debit,
            "credit_total": credit,
            "balance": account.signed_movement(debit, credit),
            "transaction_count": r["count"],
            "last_entry_date": r["last_date"],
        }


def _party_rows_from_cache(*, account, subledger_type):
    qs = SubledgerBalance.objects.filter(account=account)
    if subledger_type:
        qs = qs.filter(subledger_type=subledger_type)

    for row in qs:
        yield {
            "subledger_type": row.subledger_type,
            "subledger_id": row.subledger_id,
            "debit_total": row.debit_total,
            "credit_total": row.credit_total,
            "balance": row.balance,
            "transaction_count": row.transaction_count,
            "last_entry_date": row.last_entry_date,
        }


def generate_subledger_balances(*, company, account_code: str, as_of=None, subledger_type=None) -> dict:
    account = get_account(company=company, code=account_code)
    if not account.is_control_account:
        raise AccountingReportError(
            f"Account {account.code} is not a control account",
            company=company.code,
            account_code=account.code,
        )

    as_of = parse_report_date(as_of, "as_of")
    subledger_type = (subledger_type or "").strip().lower() or None

    if as_of is None:
        parties = list(_party_rows_from_cache(account=account, subledger_type=subledger_type))
    else:
        parties = list(
            _party_rows_from_lines(company=company, account=account, as_of=as_of, subledger_type=subledger_type)
        )
    parties.sort(key=lambda p: (p["subledger_type"], p["subledger_id"]))

    total = _q2(sum((p["balance"] for p in parties), ZERO))
    control_balance = get_account_balance(account, as_of=as_of)

    rows = [
        {
            "subledger_type": p["subledger_type"],
            "subledger_id": p["subledger_id"],
            **amount_fields("debit_total", p["debit_total"]),
            **amount_fields("credit_total", p["credit_total"]),
            **amount_fields("balance", p["balance"]),
            "transaction_count": p["transaction_count"],
            "last_entry_date": p["last_entry_date"].isoformat() if p["last_entry_date"] else None,
        }
        for p in parties
    ]

    return {
        "company": company.code,
        "account_code": account.code,
        "account_name": account.name,
        "control_account_type": account.control_account_type,
        "as_of": as_of.isoformat() if as_of else None,
        "subledger_type": subledger_type,
        "parties": rows,
        **amount_fields("total", total),
        **amount_fields("control_balance", control_balance),
        # Filtered by party kind -> partial sum, reconciliation not meaningful
        "reconciled": None if subledger_type else _to_minor_int(total) == _to_minor_int(control_balance),
    }
