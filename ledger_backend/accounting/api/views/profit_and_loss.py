"""
PATH: accounting/api/views/profit_and_loss.py

INCOME STATEMENT API VIEW (READ-ONLY)

GET /api/accounting/reports/income-statement/?company=<code>
    [&date_from=...&date_to=... | &fiscal_year=...[&period_month=...] | &as_of=...]
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema

from accounting.api.views.base import ReportView, window_params
from accounting.services.profit_and_loss_service import generate_profit_and_loss


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="company", type=str, required=True, description="Company code"),
        OpenApiParameter(name="date_from", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="date_to", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="fiscal_year", type=str, required=False, description="e.g. 2025-26"),
        OpenApiParameter(name="period_month", type=int, required=False, description="1..12 within fiscal_year"),
        OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD (fiscal year to date)"),
    ],
    responses={200: dict},
)
class IncomeStatementView(ReportView):
    report_name = "the income statement"

    def build(self, request, company) -> dict:
        return generate_profit_and_loss(company=company, **window_params(request))
