# accounting/api/views/__init__.py

"""
accounting.api.views package

Expose public API views cleanly without making routing/imports fragile.

Important:
- Do NOT import accounting.api.urls from here to avoid circular imports.
"""

# ViewSets
from accounting.api.views.accounts import AccountViewSet
from accounting.api.views.journal_entries import JournalEntryViewSet
from accounting.api.views.posting_rules import PostingRuleViewSet

# Posting actions
from accounting.api.views.balances import RecalculateBalancesView
from accounting.api.views.close_period import ClosePeriodView
from accounting.api.views.postings import PostingView

# Read-only reports
from accounting.api.views.account_ledger import AccountLedgerView
from accounting.api.views.balance_sheet import BalanceSheetView
from accounting.api.views.profit_and_loss import IncomeStatementView
from accounting.api.views.subledger_balances import SubledgerBalancesView
from accounting.api.views.trial_balance import TrialBalanceView

__all__ = [
    "AccountViewSet",
    "JournalEntryViewSet",
    "PostingRuleViewSet",
    "RecalculateBalancesView",
    "ClosePeriodView",
    "PostingView",
    "AccountLedgerView",
    "BalanceSheetView",
    "IncomeStatementView",
    "SubledgerBalancesView",
    "TrialBalanceView",
]
