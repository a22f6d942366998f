# accounting/api/views/base.py

"""
PATH: accounting/api/views/base.py

READ-ONLY REPORT VIEW BASE

- Permission-gated: requires accounting.view_journalline
- Company isolation: every report is scoped to the `company` query param
- Report errors map to 400 (see accounting.api.errors)
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.errors import ServiceErrorMixin
from accounting.api.scoping import company_from_request, permission_denied

REPORT_PERMISSION = "accounting.view_journalline"


class ReportView(ServiceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]
    report_name = "reports"

    def build(self, request, company) -> dict:
        raise NotImplementedError

    def get(self, request):
        denied = permission_denied(request, REPORT_PERMISSION, f"view {self.report_name}")
        if denied is not None:
            return denied

        company = company_from_request(request)
        return Response(self.build(request, company), status=status.HTTP_200_OK)


def window_params(request) -> dict:
    qp = request.query_params
    return {
        "as_of": qp.get("as_of"),
        "date_from": qp.get("date_from"),
        "date_to": qp.get("date_to"),
        "fiscal_year": qp.get("fiscal_year"),
        "period_month": qp.get("period_month"),
    }
