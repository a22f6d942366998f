# accounting/api/views/posting_rules.py

"""
PATH: accounting/api/views/posting_rules.py

POSTING RULES API (READ-ONLY)

GET /api/accounting/posting-rules/?company=<code>
    Rules the company can use (its own + global), in match order.
GET /api/accounting/posting-rules/validate/?company=<code>&as_of=YYYY-MM-DD
    Runs the rule validation pass.

Rules are maintained through the admin / seed commands; versioning goes
through supersede_rule().
"""

from django.db.models import Case, IntegerField, Value, When
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.errors import ServiceErrorMixin
from accounting.api.filters import PostingRuleFilter
from accounting.api.scoping import company_from_request
from accounting.api.serializers import PostingRuleSerializer
from accounting.services.reporting import parse_report_date
from accounting.services.rule_repository import visible_rules
from accounting.services.rule_validation import has_errors, validate_rules


@extend_schema(
    tags=["accounting"],
    parameters=[OpenApiParameter(name="company", type=str, required=False, description="Company code")],
)
class PostingRuleViewSet(ServiceErrorMixin, ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = PostingRuleSerializer
    filterset_class = PostingRuleFilter

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_postingrule"):
            raise PermissionDenied("You do not have permission to view posting rules.")

        company = company_from_request(self.request, required=False)
        return (
            visible_rules(company)
            .select_related("company")
            .annotate(
                scope_rank=Case(
                    When(company__isnull=True, then=Value(1)),
                    default=Value(0),
                    output_field=IntegerField(),
                )
            )
            .order_by("source_type", "trigger_event", "scope_rank", "priority", "id")
        )

    @extend_schema(
        parameters=[OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD")],
        responses={200: dict},
    )
    @action(detail=False, methods=["get"])
    def validate(self, request):
        if not request.user.has_perm("accounting.view_postingrule"):
            raise PermissionDenied("You do not have permission to view posting rules.")

        company = company_from_request(request, required=False)
        issues = validate_rules(company, as_of=parse_report_date(request.query_params.get("as_of"), "as_of"))

        return Response(
            {
                "company": company.code if company else None,
                "valid": not has_errors(issues),
                "issues": [i.as_dict() for i in issues],
            },
            status=status.HTTP_200_OK,
        )
