# PATH: accounting/api/views/close_period.py

"""
PATH: accounting/api/views/close_period.py

PERIOD CLOSE API

GET  /api/accounting/close-period/?company=<code>
     Closed ranges of the company, newest first.
POST /api/accounting/close-period/
     {"company", "start_date", "end_date", "retained_earnings_account_code"?}
     Posts the closing entry (income/expense -> retained earnings) and locks
     the range against further postings.

Security:
- Authenticated
- GET requires accounting.view_periodclose
- POST requires accounting.add_periodclose
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.errors import ServiceErrorMixin
from accounting.api.scoping import company_from_request, permission_denied
from accounting.api.serializers import ClosePeriodSerializer, PeriodCloseSerializer
from accounting.models.period_close import PeriodClose
from accounting.services.account_resolver import get_company
from accounting.services.period_close_service import PeriodCloseError, close_period


class ClosePeriodView(ServiceErrorMixin, GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ClosePeriodSerializer

    def get_queryset(self):
        return PeriodClose.objects.select_related("company", "journal_entry", "retained_earnings_account")

    @extend_schema(
        tags=["accounting"],
        parameters=[OpenApiParameter(name="company", type=str, required=True, description="Company code")],
        responses={200: PeriodCloseSerializer(many=True)},
    )
    def get(self, request, *args, **kwargs):
        denied = permission_denied(request, "accounting.view_periodclose", "view period closes")
        if denied is not None:
            return denied

        company = company_from_request(request)
        closes = self.get_queryset().filter(company=company).order_by("-end_date")

        page = self.paginate_queryset(closes)
        if page is not None:
            return self.get_paginated_response(PeriodCloseSerializer(page, many=True).data)
        return Response(PeriodCloseSerializer(closes, many=True).data)

    @extend_schema(
        tags=["accounting"],
        request=ClosePeriodSerializer,
        responses={201: PeriodCloseSerializer, 400: dict, 403: dict, 409: dict},
    )
    def post(self, request, *args, **kwargs):
        denied = permission_denied(request, "accounting.add_periodclose", "close accounting periods")
        if denied is not None:
            return denied

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = close_period(
                company=get_company(data["company"]),
                start_date=data["start_date"],
                end_date=data["end_date"],
                retained_earnings_code=data.get("retained_earnings_account_code"),
            )
        except PeriodCloseError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PeriodCloseSerializer(result["period_close"]).data, status=status.HTTP_201_CREATED)
