# accounting/management/commands/seed_chart_of_accounts.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounting.models.company import Company
from accounting.services.account_resolver import provision_chart
from accounting.services.seed_service import seed_chart


class Command(BaseCommand):
    help = "Seed the default (Indian) chart of accounts, globally or for one company"

    def add_arguments(self, parser):
        parser.add_argument(
            "--company",
            help="Company code. Omit to seed the global template chart.",
        )
        parser.add_argument(
            "--name",
            help="Company name (creates the company when it does not exist yet)",
        )
        parser.add_argument(
            "--from-template",
            action="store_true",
            help="Copy the global template accounts into the company instead of the built-in chart",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        code = (options.get("company") or "").strip().lower()
        company = None

        if code:
            company = Company.objects.filter(code=code).first()
            if company is None:
                name = (options.get("name") or "").strip()
                if not name:
                    raise CommandError(f"Company {code!r} does not exist; pass --name to create it")
                company = Company.objects.create(code=code, name=name)
                self.stdout.write(f"Created company {company.code}")

        if options.get("from_template"):
            if company is None:
                raise CommandError("--from-template needs --company")
            created = provision_chart(company)
            self.stdout.write(self.style.SUCCESS(f"✔ Chart provisioned from template ({created} new accounts)."))
            return

        self.stdout.write(f"Seeding chart of accounts ({company.code if company else 'global'})...")
        result = seed_chart(company)

        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Chart seeded ({result['created']} new accounts, {result['updated']} updated)."
            )
        )
