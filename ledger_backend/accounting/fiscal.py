# accounting/fiscal.py

"""
PATH: accounting/fiscal.py

FISCAL CALENDAR (FRAMEWORK-AGNOSTIC)

Purpose:
- Map calendar dates onto fiscal years and fiscal period months.
- Shared by models (entry numbering, period balance buckets) and reports
  (fiscal-year / period filters).

Conventions:
- A fiscal year is labelled "<start year>-<last two digits of end year>",
  e.g. "2025-26" for 2025-04-01 .. 2026-03-31 with an April start.
- Period months are 1..12 counted from the start month
  (April = 1 ... March = 12 for an April start).
- A January start gives single-year spans, still labelled "2025-26" style
  so labels sort lexically in calendar order.
"""

from __future__ import annotations

import calendar
import re
from datetime import date
from typing import Tuple

_LABEL_RE = re.compile(r"^(\d{4})-(\d{2})$")


class FiscalCalendarError(ValueError):
    """Raised for malformed fiscal year labels or period months."""


def _check_start_month(start_month: int) -> int:
    month = int(start_month)
    if month < 1 or month > 12:
        raise FiscalCalendarError(f"Invalid fiscal year start month: {start_month!r}")
    return month


def fiscal_year_start(on_date: date, start_month: int = 4) -> int:
    """Calendar year in which the fiscal year containing on_date begins."""
    start_month = _check_start_month(start_month)
    return on_date.year if on_date.month >= start_month else on_date.year - 1


def fiscal_year_for(on_date: date, start_month: int = 4) -> str:
    start_year = fiscal_year_start(on_date, start_month)
    return f"{start_year}-{(start_year + 1) % 100:02d}"


def period_month_for(on_date: date, start_month: int = 4) -> int:
    start_month = _check_start_month(start_month)
    return (on_date.month - start_month) % 12 + 1


def parse_fiscal_year(label: str) -> int:
    """Return the start year for a "YYYY-YY" label."""
    match = _LABEL_RE.match((label or "").strip())
    if not match:
        raise FiscalCalendarError(f"Invalid fiscal year label: {label!r} (expected YYYY-YY)")

    start_year = int(match.group(1))
    if (start_year + 1) % 100 != int(match.group(2)):
        raise FiscalCalendarError(f"Invalid fiscal year label: {label!r} (years not consecutive)")
    return start_year


def fiscal_year_bounds(label: str, start_month: int = 4) -> Tuple[date, date]:
    start_month = _check_start_month(start_month)
    start_year = parse_fiscal_year(label)
    start = date(start_year, start_month, 1)

    end_month = (start_month - 2) % 12 + 1
    end_year = start_year if end_month >= start_month else start_year + 1
    end = date(end_year, end_month, calendar.monthrange(end_year, end_month)[1])
    return start, end


def period_bounds(label: str, period_month: int, start_month: int = 4) -> Tuple[date, date]:
    start_month = _check_start_month(start_month)
    period_month = int(period_month)
    if period_month < 1 or period_month > 12:
        raise FiscalCalendarError(f"Invalid period month: {period_month!r}")

    start_year = parse_fiscal_year(label)
    month = (start_month - 1 + period_month - 1) % 12 + 1
    year = start_year if month >= start_month else start_year + 1
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def period_start_for(on_date: date) -> date:
    return on_date.replace(day=1)


def entry_number_prefix(label: str) -> str:
    """"2025-26" -> "202526" (used in JV-202526-000001)."""
    parse_fiscal_year(label)
    return label.replace("-", "")
