# accounting/services/account_ledger_service.py

"""
ACCOUNT LEDGER (GENERAL LEDGER FOR ONE ACCOUNT)

Read-only. Opening balance as of date_from, then every posted line in
entry_date order with a running balance on the account's normal side.
"""

from __future__ import annotations

from accounting.services.account_resolver import get_account
from accounting.services.balance_service import ledger_lines
from accounting.services.reporting import (
    ZERO,
    _q2,
    amount_fields,
    opening_movements,
    resolve_window,
)


def generate_account_ledger(
    *,
    company,
    account_code: str,
    date_from=None,
    date_to=None,
    fiscal_year=None,
    period_month=None,
) -> dict:
    account = get_account(company=company, code=account_code)
    window = resolve_window(
        company,
        date_from=date_from,
        date_to=date_to,
        fiscal_year=fiscal_year,
        period_month=period_month,
    )

    pre_debit, pre_credit = opening_movements(
        company, before=window.date_from, accounts=[account]
    ).get(account.id, (ZERO, ZERO))
    opening = _q2(account.opening_balance + account.signed_movement(pre_debit, pre_credit))

    lines = (
        ledger_lines(company=company, account=account, date_from=window.date_from, date_to=window.date_to)
        .select_related("journal_entry")
        .order_by("journal_entry__entry_date", "journal_entry_id", "line_number")
    )

    running = opening
    total_debit = ZERO
    total_credit = ZERO
    rows = []

    for line in lines:
        entry = line.journal_entry
        running = _q2(running + account.signed_movement(line.debit_amount, line.credit_amount))
        total_debit += line.debit_amount
        total_credit += line.credit_amount

        rows.append(
            {
                "entry_id": entry.id,
                "entry_number": entry.entry_number,
                "entry_date": entry.entry_date.isoformat(),
                "entry_type": entry.entry_type,
                "source_type": entry.source_type,
                "source_number": entry.source_number,
                "description": line.description or entry.description,
                "subledger_type": line.subledger_type or None,
                "subledger_id": line.subledger_id or None,
                **amount_fields("debit", line.debit_amount),
                **amount_fields("credit", line.credit_amount),
                **amount_fields("running_balance", running),
            }
        )

    return {
        "company": company.code,
        "account_code": account.code,
        "account_name": account.name,
        "normal_balance": account.normal_balance,
        **window.as_dict(),
        **amount_fields("opening_balance", opening),
        "lines": rows,
        **amount_fields("total_debit", total_debit),
        **amount_fields("total_credit", total_credit),
        **amount_fields("closing_balance", running),
    }
