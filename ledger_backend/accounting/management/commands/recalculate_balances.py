# accounting/management/commands/recalculate_balances.py

from django.core.management.base import BaseCommand, CommandError

from accounting.models.company import Company
from accounting.services.account_resolver import get_company
from accounting.services.balance_service import recalculate_balances
from accounting.services.exceptions import EventDataError


class Command(BaseCommand):
    help = "Rebuild cached account, subledger and period balances from posted journal lines"

    def add_arguments(self, parser):
        parser.add_argument("--company", help="Company code (default: every active company)")

    def handle(self, *args, **options):
        if options.get("company"):
            try:
                companies = [get_company(options["company"])]
            except EventDataError as e:
                raise CommandError(str(e)) from e
        else:
            companies = list(Company.objects.filter(is_active=True))

        for company in companies:
            result = recalculate_balances(company)
            self.stdout.write(
                self.style.SUCCESS(
                    f"✔ {company.code}: {result['accounts']} accounts, "
                    f"{result['subledger_balances']} subledger rows, "
                    f"{result['period_balances']} period rows"
                )
            )
