# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views import (
    AccountLedgerView,
    AccountViewSet,
    BalanceSheetView,
    ClosePeriodView,
    IncomeStatementView,
    JournalEntryViewSet,
    PostingRuleViewSet,
    PostingView,
    RecalculateBalancesView,
    SubledgerBalancesView,
    TrialBalanceView,
)

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")
router.register("accounts", AccountViewSet, basename="account")
router.register("posting-rules", PostingRuleViewSet, basename="posting-rule")

urlpatterns = [
    # Router endpoints
    path("", include(router.urls)),
    # Posting actions
    path("postings/", PostingView.as_view(), name="postings"),
    path("close-period/", ClosePeriodView.as_view(), name="close-period"),
    path("balances/recalculate/", RecalculateBalancesView.as_view(), name="balances-recalculate"),
    # Reports
    path("reports/trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("reports/account-ledger/", AccountLedgerView.as_view(), name="account-ledger"),
    path("reports/subledger-balances/", SubledgerBalancesView.as_view(), name="subledger-balances"),
    path("reports/income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("reports/balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
]
