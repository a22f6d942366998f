# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API (READ-ONLY)

GET /api/accounting/accounts/?company=<code>
Returns the company's own accounts (never global templates), read-only.
Filters: account_type, is_control_account, control_account_type, is_active,
code_prefix.

Requires accounting.view_account.
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.errors import ServiceErrorMixin
from accounting.api.filters import AccountFilter
from accounting.api.scoping import company_from_request
from accounting.api.serializers import AccountSerializer
from accounting.models.account import Account


@extend_schema(
    tags=["accounting"],
    parameters=[OpenApiParameter(name="company", type=str, required=True, description="Company code")],
)
class AccountViewSet(ServiceErrorMixin, ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountSerializer
    filterset_class = AccountFilter
    queryset = Account.objects.select_related("company", "parent")

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_account"):
            raise PermissionDenied("You do not have permission to view accounts.")

        company = company_from_request(self.request)
        return super().get_queryset().filter(company=company).order_by("code")
