"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE API VIEW (READ-ONLY)

GET /api/accounting/reports/trial-balance/?company=<code>
    &as_of=YYYY-MM-DD               (fiscal year to date)
    | &fiscal_year=2025-26[&period_month=1..12]
    | &date_from=...&date_to=...
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema

from accounting.api.views.base import ReportView, window_params
from accounting.services.trial_balance_service import TrialBalanceService


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="company", type=str, required=True, description="Company code"),
        OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD (fiscal year to date)"),
        OpenApiParameter(name="fiscal_year", type=str, required=False, description="e.g. 2025-26"),
        OpenApiParameter(name="period_month", type=int, required=False, description="1..12 within fiscal_year"),
        OpenApiParameter(name="date_from", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="date_to", type=str, required=False, description="YYYY-MM-DD"),
    ],
    responses={200: dict},
)
class TrialBalanceView(ReportView):
    report_name = "trial balance"

    def build(self, request, company) -> dict:
        return TrialBalanceService().generate(company=company, **window_params(request))
