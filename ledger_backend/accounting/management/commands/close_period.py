# accounting/management/commands/close_period.py

from __future__ import annotations

from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from accounting.services.account_resolver import get_company
from accounting.services.exceptions import AccountingServiceError
from accounting.services.period_close_service import PeriodCloseError, close_period


def _parse_date(value: str, label: str):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise CommandError(f"Invalid {label} date. Use YYYY-MM-DD") from e


class Command(BaseCommand):
    help = "Close an accounting period (posts the closing entry and locks the range)"

    def add_arguments(self, parser):
        parser.add_argument("--company", required=True, help="Company code")
        parser.add_argument("--from", dest="start_date", required=True, help="Start date YYYY-MM-DD")
        parser.add_argument("--to", dest="end_date", required=True, help="End date YYYY-MM-DD")
        parser.add_argument("--retained-earnings", dest="retained_earnings", help="Equity account code")

    def handle(self, *args, **options):
        start = _parse_date(options["start_date"], "--from")
        end = _parse_date(options["end_date"], "--to")

        try:
            result = close_period(
                company=get_company(options["company"]),
                start_date=start,
                end_date=end,
                retained_earnings_code=options.get("retained_earnings"),
            )
        except (PeriodCloseError, AccountingServiceError) as e:
            raise CommandError(str(e)) from e

        entry = result["journal_entry"]
        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Closed {start} → {end}: net profit {result['net_profit']} "
                f"({entry.entry_number if entry else 'no closing entry'})"
            )
        )
