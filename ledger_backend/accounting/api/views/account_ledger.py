"""
PATH: accounting/api/views/account_ledger.py

ACCOUNT LEDGER API VIEW (READ-ONLY)

GET /api/accounting/reports/account-ledger/?company=<code>&account_code=1120
    [&date_from=...&date_to=... | &fiscal_year=...[&period_month=...]]
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema

from accounting.api.views.base import ReportView
from accounting.services.account_ledger_service import generate_account_ledger


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="company", type=str, required=True, description="Company code"),
        OpenApiParameter(name="account_code", type=str, required=True, description="Account code"),
        OpenApiParameter(name="date_from", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="date_to", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="fiscal_year", type=str, required=False, description="e.g. 2025-26"),
        OpenApiParameter(name="period_month", type=int, required=False, description="1..12 within fiscal_year"),
    ],
    responses={200: dict},
)
class AccountLedgerView(ReportView):
    report_name = "the account ledger"

    def build(self, request, company) -> dict:
        qp = request.query_params
        return generate_account_ledger(
            company=company,
            account_code=qp.get("account_code", ""),
            date_from=qp.get("date_from"),
            date_to=qp.get("date_to"),
            fiscal_year=qp.get("fiscal_year"),
            period_month=qp.get("period_month"),
        )
