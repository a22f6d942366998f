# accounting/api/views/balances.py

"""
PATH: accounting/api/views/balances.py

POST /api/accounting/balances/recalculate/   {"company": "<code>"}

Rebuilds running balances, subledger aggregates and period balances from
posted lines. Requires accounting.change_account.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.errors import ServiceErrorMixin
from accounting.api.scoping import company_from_request, permission_denied
from accounting.services.balance_service import recalculate_balances


class RecalculateBalancesView(ServiceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], request=dict, responses={200: dict})
    def post(self, request, *args, **kwargs):
        denied = permission_denied(request, "accounting.change_account", "recalculate balances")
        if denied is not None:
            return denied

        company = company_from_request(request)
        return Response(recalculate_balances(company), status=status.HTTP_200_OK)
