# accounting/services/balance_sheet_service.py

"""
BALANCE SHEET SERVICE

Pure accounting read service.

Responsibilities:
- Compute balances per account as at a given date (opening balances included)
- Classify balances into Assets, Liabilities, Equity
- Enforce accounting correctness (Assets = Liabilities + Equity)

Important:
- Income/Expense activity (if not closed) is represented as
  "Current Period Earnings" in Equity to keep the balance sheet correct.

Contract:
- API emits numeric JSON values (not strings)
- Provide both major-unit numbers (floats, 2dp) and minor-unit ints (exact)
- Provide liabilities_plus_equity in totals for frontend convenience
"""

from __future__ import annotations

from accounting.models.account import Account
from accounting.services.exceptions import AccountingReportError
from accounting.services.reporting import (
    ZERO,
    _q2,
    _to_minor_int,
    amount_fields,
    debit_net,
    movements,
    parse_report_date,
)


def generate_balance_sheet(*, company, as_of=None) -> dict:
    """
    Args:
        company: Company to report on.
        as_of: Optional date / YYYY-MM-DD string (inclusive). Omitted = all posted lines.

    Raises:
        AccountingReportError when Assets != Liabilities + Equity.
    """
    as_of = parse_report_date(as_of, "as_of")

    accounts = list(Account.objects.filter(company=company))
    # Deterministic ordering for UI
    accounts.sort(key=lambda a: (a.account_type, a.code))

    totals_by_account = movements(company, date_to=as_of)

    sections = {"assets": [], "liabilities": [], "equity": []}
    totals = {"assets": ZERO, "liabilities": ZERO, "equity": ZERO}
    earnings = ZERO

    for acc in accounts:
        debit, credit = totals_by_account.get(acc.id, (ZERO, ZERO))
        net = debit_net(acc, debit, credit)
        if net == ZERO:
            continue

        if acc.account_type in (Account.INCOME, Account.EXPENSE):
            earnings -= net
            continue

        if acc.account_type == Account.ASSET:
            key, bal = "assets", net
        elif acc.account_type == Account.LIABILITY:
            key, bal = "liabilities", -net
        else:
            key, bal = "equity", -net

        sections[key].append({"code": acc.code, "name": acc.name, **amount_fields("balance", bal)})
        totals[key] += bal

    earnings = _q2(earnings)
    if earnings != ZERO:
        sections["equity"].append(
            {"code": "E-CURR", "name": "Current Period Earnings", **amount_fields("balance", earnings)}
        )
        totals["equity"] += earnings

    assets_q = _q2(totals["assets"])
    liabilities_plus_equity_q = _q2(totals["liabilities"] + totals["equity"])

    balanced = _to_minor_int(assets_q) == _to_minor_int(liabilities_plus_equity_q)
    if not balanced:
        raise AccountingReportError(
            "Balance Sheet is unbalanced",
            company=company.code,
            assets=assets_q,
            liabilities_plus_equity=liabilities_plus_equity_q,
        )

    return {
        "company": company.code,
        "as_of": as_of.isoformat() if as_of else None,
        **sections,
        "totals": {
            **amount_fields("assets", totals["assets"]),
            **amount_fields("liabilities", totals["liabilities"]),
            **amount_fields("equity", totals["equity"]),
            **amount_fields("current_period_earnings", earnings),
            **amount_fields("liabilities_plus_equity", liabilities_plus_equity_q),
            "balanced": balanced,
        },
    }
