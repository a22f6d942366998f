# accounting/management/commands/seed_posting_rules.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounting.services.account_resolver import get_company
from accounting.services.exceptions import EventDataError
from accounting.services.seed_service import seed_rules


class Command(BaseCommand):
    help = "Seed the default posting rule pack (global unless --company is given)"

    def add_arguments(self, parser):
        parser.add_argument("--company", help="Company code for company-specific copies of the rules")

    @transaction.atomic
    def handle(self, *args, **options):
        company = None
        if options.get("company"):
            try:
                company = get_company(options["company"])
            except EventDataError as e:
                raise CommandError(str(e)) from e

        self.stdout.write(f"Seeding posting rules ({company.code if company else 'global'})...")
        result = seed_rules(company)

        for rule_code in result["skipped"]:
            self.stdout.write(
                self.style.WARNING(f"{rule_code} has postings; left unchanged (supersede it instead)")
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Posting rules seeded ({result['created']} new, {result['updated']} updated)."
            )
        )
