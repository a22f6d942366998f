"""
PATH: accounting/api/views/balance_sheet.py

BALANCE SHEET API VIEW (READ-ONLY)

GET /api/accounting/reports/balance-sheet/?company=<code>[&as_of=YYYY-MM-DD]

An unbalanced ledger is reported as 400 (AccountingReportError), never
silently rendered.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema

from accounting.api.views.base import ReportView
from accounting.services.balance_sheet_service import generate_balance_sheet


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="company", type=str, required=True, description="Company code"),
        OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD (inclusive)"),
    ],
    responses={200: dict, 400: dict},
)
class BalanceSheetView(ReportView):
    report_name = "the balance sheet"

    def build(self, request, company) -> dict:
        return generate_balance_sheet(company=company, as_of=request.query_params.get("as_of"))
