# accounting/services/profit_and_loss_service.py

"""
PROFIT & LOSS SERVICE (INCOME STATEMENT)

Read-only aggregation over immutable journal lines.

Contract-locked numbers:
{
  "income": float,
  "expenses": float,
  "net_profit": float,
  "income_minor": int,
  "expenses_minor": int,
  "net_profit_minor": int
}

Key rules:
- Uses JournalEntry.entry_date as the accounting effective date
- Closing entries are excluded (they move the period's result into
  retained earnings; the statement shows the result itself)
- Income/expense opening balances are ignored (a statement covers a window)
"""

from __future__ import annotations

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.reporting import ZERO, _q2, amount_fields, debit_net, movements, resolve_window


def generate_profit_and_loss(
    *,
    company,
    date_from=None,
    date_to=None,
    fiscal_year=None,
    period_month=None,
    as_of=None,
) -> dict:
    window = resolve_window(
        company,
        as_of=as_of,
        date_from=date_from,
        date_to=date_to,
        fiscal_year=fiscal_year,
        period_month=period_month,
    )

    accounts = list(
        Account.objects.filter(company=company, account_type__in=[Account.INCOME, Account.EXPENSE]).order_by("code")
    )
    totals = movements(
        company,
        date_from=window.date_from,
        date_to=window.date_to,
        accounts=accounts,
        exclude_entry_types=[JournalEntry.CLOSING],
    )

    sections = {"income": [], "expenses": []}
    income = ZERO
    expenses = ZERO

    for acc in accounts:
        debit, credit = totals.get(acc.id, (ZERO, ZERO))
        net = debit_net(acc, debit, credit, include_opening=False)
        if net == ZERO:
            continue

        if acc.account_type == Account.INCOME:
            amount = -net
            income += amount
            key = "income"
        else:
            amount = net
            expenses += amount
            key = "expenses"

        sections[key].append({"code": acc.code, "name": acc.name, **amount_fields("amount", amount)})

    net_profit = _q2(income - expenses)

    return {
        "company": company.code,
        **window.as_dict(),
        "sections": sections,
        **amount_fields("income", income),
        **amount_fields("expenses", expenses),
        **amount_fields("net_profit", net_profit),
    }
