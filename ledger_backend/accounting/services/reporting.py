# accounting/services/reporting.py

"""
REPORTING PRIMITIVES (shared by the report services)

Contract:
- Reports emit numeric JSON values (not strings)
- Every amount is emitted twice: major-unit number (float, 2dp) and
  minor-unit int (exact), e.g. {"debit": 118.0, "debit_minor": 11800}
- Accounting timeline is JournalEntry.entry_date
- Only ledger statuses count (posted, reversed)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.db.models import Sum
from django.db.models.functions import Coalesce

from accounting.fiscal import FiscalCalendarError
from accounting.models.account import Account
from accounting.models.company import Company
from accounting.services.balance_service import ledger_lines
from accounting.services.exceptions import AccountingReportError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _q2(amount) -> Decimal:
    return Decimal(str(amount or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_major_number(amount: Decimal) -> float:
    return float(_q2(amount))


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def amount_fields(name: str, amount: Decimal) -> dict:
    return {name: _to_major_number(amount), f"{name}_minor": _to_minor_int(amount)}


def parse_report_date(value, field: str = "date") -> date | None:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise AccountingReportError(f"Invalid {field} format (YYYY-MM-DD)", value=value) from exc


@dataclass(frozen=True)
class ReportWindow:
    date_from: date | None
    date_to: date | None
    fiscal_year: str = ""
    period_month: int | None = None

    def as_dict(self) -> dict:
        return {
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
            "fiscal_year": self.fiscal_year or None,
            "period_month": self.period_month,
        }


def resolve_window(
    company: Company,
    *,
    as_of=None,
    date_from=None,
    date_to=None,
    fiscal_year: str | None = None,
    period_month=None,
) -> ReportWindow:
    """
    Turn report filters into an inclusive date range.

    Precedence: fiscal_year (+ period_month) > explicit date_from/date_to >
    as_of (fiscal year to date).
    """
    try:
        if fiscal_year:
            if period_month not in (None, ""):
                start, end = company.period_bounds(fiscal_year, int(period_month))
                return ReportWindow(start, end, fiscal_year, int(period_month))
            start, end = company.fiscal_year_bounds(fiscal_year)
            return ReportWindow(start, end, fiscal_year)
    except (FiscalCalendarError, ValueError) as exc:
        raise AccountingReportError(str(exc), fiscal_year=fiscal_year, period_month=period_month) from exc

    date_from = parse_report_date(date_from, "date_from")
    date_to = parse_report_date(date_to, "date_to")
    as_of = parse_report_date(as_of, "as_of")

    if date_from or date_to:
        if date_from and date_to and date_from > date_to:
            raise AccountingReportError("date_from cannot be after date_to")
        return ReportWindow(date_from, date_to)

    if as_of is not None:
        label = company.fiscal_year_for(as_of)
        start, _ = company.fiscal_year_bounds(label)
        return ReportWindow(start, as_of, label)

    return ReportWindow(None, None)


def movements(
    company: Company,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    accounts: Iterable[Account] | None = None,
    exclude_entry_types: Iterable[str] = (),
) -> dict[int, tuple[Decimal, Decimal]]:
    """account_id -> (debit total, credit total) over the window."""
    qs = ledger_lines(company=company, date_from=date_from, date_to=date_to)
    if accounts is not None:
        qs = qs.filter(account__in=list(accounts))
    exclude_entry_types = list(exclude_entry_types)
    if exclude_entry_types:
        qs = qs.exclude(journal_entry__entry_type__in=exclude_entry_types)

    rows = qs.values("account_id").annotate(
        debit=Coalesce(Sum("debit_amount"), ZERO),
        credit=Coalesce(Sum("credit_amount"), ZERO),
    )
    return {r["account_id"]: (_q2(r["debit"]), _q2(r["credit"])) for r in rows}


def opening_movements(company: Company, *, before: date | None, **kwargs) -> dict[int, tuple[Decimal, Decimal]]:
    if before is None:
        return {}
    return movements(company, date_to=before - timedelta(days=1), **kwargs)


def debit_net(account: Account, debit: Decimal, credit: Decimal, *, include_opening: bool = True) -> Decimal:
    """Debit-positive balance (opening balance is stored on the normal side)."""
    opening = ZERO
    if include_opening:
        opening = account.opening_balance if account.is_debit_normal else -account.opening_balance
    return _q2(opening + debit - credit)
