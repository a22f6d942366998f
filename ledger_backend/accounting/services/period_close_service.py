# PATH: accounting/services/period_close_service.py

"""
PERIOD CLOSE SERVICE

Closes an accounting period by zeroing out:
- Income accounts
- Expense accounts

…into a Retained Earnings (Equity) account, by creating ONE closing entry,
then locking the range (PeriodClose) against further postings.

Guarantees:
- Atomic: closing entry + PeriodClose record created together
- Idempotent key: source_type="period_close", source_id="<start>:<end>",
  trigger_event="on_close"
- Prevents overlapping closes for the company
- Closing entry is dated end_date (inside the period it closes)
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from accounting.event_schema import ON_CLOSE, PERIOD_CLOSE
from accounting.models.account import Account
from accounting.models.company import Company
from accounting.models.journal import JournalEntry
from accounting.models.period_close import PeriodClose
from accounting.services.account_resolver import get_account
from accounting.services.balance_service import ledger_lines
from accounting.services.exceptions import PeriodLockedError
from accounting.services.journal_entry_service import PostingLine, create_journal_entry

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_RETAINED_EARNINGS_CODE = "3100"


class PeriodCloseError(ValueError):
    pass


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _validate_period_dates(*, start_date: date, end_date: date) -> None:
    if not start_date or not end_date:
        raise PeriodCloseError("start_date and end_date are required")
    if start_date > end_date:
        raise PeriodCloseError("start_date cannot be after end_date")

    today = timezone.localdate()
    if end_date > today:
        raise PeriodCloseError(f"Cannot close a future period. end_date={end_date} today={today}")


def _ensure_no_overlap(*, company: Company, start_date: date, end_date: date) -> None:
    overlapping = PeriodClose.objects.filter(
        company=company,
        start_date__lte=end_date,
        end_date__gte=start_date,
    ).first()
    if overlapping is not None:
        raise PeriodLockedError(
            "This period overlaps an already-closed period",
            company=company.code,
            closed_from=overlapping.start_date,
            closed_to=overlapping.end_date,
        )


def _closing_lines(*, company: Company, start_date: date, end_date: date, retained: Account):
    rows = (
        ledger_lines(company=company, date_from=start_date, date_to=end_date)
        .filter(account__account_type__in=[Account.INCOME, Account.EXPENSE])
        .values("account_id")
        .annotate(
            debit=Coalesce(Sum("debit_amount"), ZERO),
            credit=Coalesce(Sum("credit_amount"), ZERO),
        )
        .order_by("account_id")
    )
    accounts = {
        a.pk: a
        for a in Account.objects.filter(company=company, pk__in=[r["account_id"] for r in rows])
    }

    lines: list[PostingLine] = []
    total_income = ZERO
    total_expense = ZERO

    for row in rows:
        account = accounts[row["account_id"]]
        net = _money(row["debit"]) - _money(row["credit"])
        if net == ZERO:
            continue

        # Debit balance -> credit it away; credit balance -> debit it away
        if net > 0:
            lines.append(PostingLine(account=account, credit=net, description="Period close"))
        else:
            lines.append(PostingLine(account=account, debit=-net, description="Period close"))

        if account.account_type == Account.INCOME:
            total_income -= net
        else:
            total_expense += net

    net_profit = _money(total_income - total_expense)
    if net_profit > ZERO:
        lines.append(PostingLine(account=retained, credit=net_profit, description="Net profit for the period"))
    elif net_profit < ZERO:
        lines.append(PostingLine(account=retained, debit=-net_profit, description="Net loss for the period"))

    return lines, _money(total_income), _money(total_expense), net_profit


@transaction.atomic
def close_period(
    *,
    company: Company,
    start_date: date,
    end_date: date,
    retained_earnings_code: str | None = None,
) -> dict:
    """
    CLOSE PERIOD (Income/Expense -> Retained Earnings), then lock it.

    Returns:
        {"period_close", "journal_entry", "total_income", "total_expenses", "net_profit"}
    """
    _validate_period_dates(start_date=start_date, end_date=end_date)
    _ensure_no_overlap(company=company, start_date=start_date, end_date=end_date)

    retained = get_account(
        company=company,
        code=retained_earnings_code or DEFAULT_RETAINED_EARNINGS_CODE,
    )
    if retained.account_type != Account.EQUITY:
        raise PeriodCloseError(f"Retained earnings account {retained.code} must be an equity account")

    lines, total_income, total_expenses, net_profit = _closing_lines(
        company=company,
        start_date=start_date,
        end_date=end_date,
        retained=retained,
    )

    journal_entry = None
    if lines:
        journal_entry = create_journal_entry(
            company=company,
            entry_date=end_date,
            description=f"Period close {start_date.isoformat()} → {end_date.isoformat()}",
            lines=lines,
            source_type=PERIOD_CLOSE,
            source_id=f"{start_date.isoformat()}:{end_date.isoformat()}",
            trigger_event=ON_CLOSE,
            entry_type=JournalEntry.CLOSING,
        )

    try:
        period_close = PeriodClose.objects.create(
            company=company,
            start_date=start_date,
            end_date=end_date,
            journal_entry=journal_entry,
            retained_earnings_account=retained,
            total_income=total_income,
            total_expenses=total_expenses,
            net_profit=net_profit,
        )
    except ValidationError as exc:
        raise PeriodCloseError(f"Failed to record the period close: {exc}") from exc

    logger.info(
        "Closed %s..%s for %s (income=%s expenses=%s net=%s entry=%s)",
        start_date,
        end_date,
        company.code,
        total_income,
        total_expenses,
        net_profit,
        journal_entry.entry_number if journal_entry else None,
    )
    return {
        "period_close": period_close,
        "journal_entry": journal_entry,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_profit": net_profit,
    }
