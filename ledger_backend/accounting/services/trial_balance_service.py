# accounting/services/trial_balance_service.py

from __future__ import annotations

from accounting.models.account import Account
from accounting.services.reporting import (
    ZERO,
    _q2,
    _to_minor_int,
    amount_fields,
    debit_net,
    movements,
    opening_movements,
    resolve_window,
)


class TrialBalanceService:
    """
    Trial Balance computation service.

    Guarantees:
    - Scopes to ONE company's accounts
    - Uses JournalEntry.entry_date as accounting timeline
    - Columns per account: opening, period debit/credit, closing debit/credit
      (opening includes the account's opening balance)
    - Avoids N+1 queries by aggregating in bulk
    - Returns JSON-safe numeric values (no Decimals)
    """

    def __init__(self, account_model=Account):
        self.Account = account_model

    def generate(
        self,
        *,
        company,
        as_of=None,
        date_from=None,
        date_to=None,
        fiscal_year=None,
        period_month=None,
    ) -> dict:
        window = resolve_window(
            company,
            as_of=as_of,
            date_from=date_from,
            date_to=date_to,
            fiscal_year=fiscal_year,
            period_month=period_month,
        )

        accounts = list(self.Account.objects.filter(company=company).order_by("code"))

        before = opening_movements(company, before=window.date_from)
        during = movements(company, date_from=window.date_from, date_to=window.date_to)

        rows = []
        totals = {
            "opening_debit": ZERO,
            "opening_credit": ZERO,
            "debit": ZERO,
            "credit": ZERO,
            "closing_debit": ZERO,
            "closing_credit": ZERO,
        }

        for acc in accounts:
            pre_debit, pre_credit = before.get(acc.id, (ZERO, ZERO))
            debit, credit = during.get(acc.id, (ZERO, ZERO))

            opening = debit_net(acc, pre_debit, pre_credit)
            closing = _q2(opening + debit - credit)

            if opening == ZERO and debit == ZERO and credit == ZERO:
                continue

            columns = {
                "opening_debit": max(opening, ZERO),
                "opening_credit": max(-opening, ZERO),
                "debit": debit,
                "credit": credit,
                "closing_debit": max(closing, ZERO),
                "closing_credit": max(-closing, ZERO),
            }
            for key, value in columns.items():
                totals[key] += value

            row = {
                "account_id": acc.id,
                "account_code": acc.code,
                "account_name": acc.name,
                "account_type": acc.account_type,
            }
            for key, value in columns.items():
                row.update(amount_fields(key, value))
            rows.append(row)

        totals_output: dict = {}
        for key, value in totals.items():
            totals_output.update(amount_fields(key, value))

        balanced = (
            _to_minor_int(totals["closing_debit"]) == _to_minor_int(totals["closing_credit"])
            and _to_minor_int(totals["debit"]) == _to_minor_int(totals["credit"])
        )
        totals_output["balanced"] = balanced

        return {
            "company": company.code,
            **window.as_dict(),
            "accounts": rows,
            "totals": totals_output,
        }


def generate_trial_balance(*, company, **filters) -> dict:
    return TrialBalanceService().generate(company=company, **filters)


__all__ = ["TrialBalanceService", "generate_trial_balance"]
