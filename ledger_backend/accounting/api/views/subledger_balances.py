"""
PATH: accounting/api/views/subledger_balances.py

SUBLEDGER BALANCES API VIEW (READ-ONLY)

GET /api/accounting/reports/subledger-balances/?company=<code>&account_code=1120
    [&as_of=YYYY-MM-DD][&subledger_type=customer]

Party balances under a control account + reconciliation flag.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema

from accounting.api.views.base import ReportView
from accounting.services.subledger_service import generate_subledger_balances


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="company", type=str, required=True, description="Company code"),
        OpenApiParameter(name="account_code", type=str, required=True, description="Control account code"),
        OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="subledger_type", type=str, required=False, description="customer, vendor, ..."),
    ],
    responses={200: dict},
)
class SubledgerBalancesView(ReportView):
    report_name = "subledger balances"

    def build(self, request, company) -> dict:
        qp = request.query_params
        return generate_subledger_balances(
            company=company,
            account_code=qp.get("account_code", ""),
            as_of=qp.get("as_of"),
            subledger_type=qp.get("subledger_type"),
        )
