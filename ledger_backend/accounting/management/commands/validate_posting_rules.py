# accounting/management/commands/validate_posting_rules.py

from __future__ import annotations

from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from accounting.services.account_resolver import get_company
from accounting.services.exceptions import EventDataError
from accounting.services.rule_validation import ERROR, has_errors, validate_rules


class Command(BaseCommand):
    help = "Validate the posting rule catalogue a company sees (fallbacks, shadowing, accounts)."

    def add_arguments(self, parser):
        parser.add_argument("--company", required=True, help="Company code")
        parser.add_argument(
            "--as-of",
            dest="as_of",
            help="Only check rules effective on this date (YYYY-MM-DD)",
        )

    def handle(self, *args, **options):
        try:
            company = get_company(options["company"])
        except EventDataError as e:
            raise CommandError(str(e)) from e

        as_of = None
        if options.get("as_of"):
            try:
                as_of = datetime.strptime(options["as_of"], "%Y-%m-%d").date()
            except ValueError as e:
                raise CommandError("Invalid --as-of date. Use YYYY-MM-DD") from e

        issues = validate_rules(company, as_of=as_of)

        for issue in issues:
            style = self.style.ERROR if issue.level == ERROR else self.style.WARNING
            where = f"{issue.source_type}/{issue.trigger_event}" if issue.source_type else "-"
            self.stdout.write(style(f"[{issue.level}] {issue.rule_code or '-'} ({where}): {issue.message}"))

        if has_errors(issues):
            raise CommandError(f"Posting rules for {company.code} have errors")

        self.stdout.write(self.style.SUCCESS(f"✔ Posting rules OK for {company.code} ({len(issues)} warnings)"))
