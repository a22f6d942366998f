# accounting/services/period_lock.py

"""
PERIOD LOCK

A date is locked for a company when it falls inside one of the company's
PeriodClose ranges. journal_entry_service checks every entry (rule postings,
reversals, closing entries) here before anything is written, so a lock
cannot be bypassed by a caller that skips the rules engine.
"""

from __future__ import annotations

from datetime import date, datetime

from accounting.models.company import Company
from accounting.models.period_close import PeriodClose
from accounting.services.exceptions import EventDataError, PeriodLockedError


def closed_period_for(company: Company, on_date: date) -> PeriodClose | None:
    return (
        PeriodClose.objects.filter(company=company, start_date__lte=on_date, end_date__gte=on_date)
        .order_by("start_date")
        .first()
    )


def assert_period_open(*, company: Company, on_date: date) -> None:
    """Raises PeriodLockedError when `on_date` sits inside a closed period."""
    # Entry dates are calendar dates; a datetime here is a caller bug
    if isinstance(on_date, datetime) or not isinstance(on_date, date):
        raise EventDataError(f"Entry date must be a date, got {on_date!r}", company=company.code)

    closed = closed_period_for(company, on_date)
    if closed is None:
        return

    raise PeriodLockedError(
        f"{on_date.isoformat()} is inside a closed period; post into an open period instead",
        company=company.code,
        closed_from=closed.start_date,
        closed_to=closed.end_date,
    )
