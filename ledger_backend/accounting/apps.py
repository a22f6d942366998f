# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Posting rules engine + double-entry ledger:
- Chart of accounts per company
- Rule-driven posting of business events
- Balances, period close and reports
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting"
