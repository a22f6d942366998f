# accounting/api/views/journal_entries.py

"""
PATH: accounting/api/views/journal_entries.py

JOURNAL ENTRIES API (READ-ONLY + REVERSE)

GET  /api/accounting/journal-entries/?company=<code>
     filters: source_type, status, fiscal_year, period_month, entry_type,
              trigger_event, source_id, date_from, date_to
GET  /api/accounting/journal-entries/<id>/
POST /api/accounting/journal-entries/<id>/reverse/

Posted entries are never edited; the only write is the compensating
reversal entry.

Security:
- List/retrieve require accounting.view_journalentry
- Reverse requires accounting.change_journalentry
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.errors import ServiceErrorMixin
from accounting.api.filters import JournalEntryFilter
from accounting.api.scoping import company_from_request, permission_denied
from accounting.api.serializers import JournalEntrySerializer, ReverseEntrySerializer
from accounting.models.journal import JournalEntry
from accounting.services.posting import POSTED, reverse as reverse_entry

REVERSE_PERMISSION = "accounting.change_journalentry"


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="company",
            type=str,
            required=False,
            description="Company code. Required for listing.",
        ),
    ],
)
class JournalEntryViewSet(ServiceErrorMixin, ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    filterset_class = JournalEntryFilter
    # ScopedRateThrottle skips views without a scope; reverse sets its own.
    throttle_scope = None

    queryset = JournalEntry.objects.select_related(
        "company", "posting_rule", "reversal_of", "reversed_by"
    ).prefetch_related("lines__account")

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_journalentry"):
            raise PermissionDenied("You do not have permission to view journal entries.")

        qs = super().get_queryset()
        company = company_from_request(self.request, required=self.action == "list")
        if company is not None:
            qs = qs.filter(company=company)
        return qs.order_by("-entry_date", "-id")

    @extend_schema(request=ReverseEntrySerializer, responses={201: JournalEntrySerializer, 200: JournalEntrySerializer})
    @action(detail=True, methods=["post"], throttle_scope="posting")
    def reverse(self, request, pk=None):
        denied = permission_denied(request, REVERSE_PERMISSION, "reverse journal entries")
        if denied is not None:
            return denied

        serializer = ReverseEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        company = company_from_request(request, required=False)
        result = reverse_entry(
            pk,
            serializer.validated_data["reason"],
            company=company,
            reversal_date=serializer.validated_data.get("reversal_date"),
        )

        return Response(
            {"status": result.status, "journal_entry": JournalEntrySerializer(result.entry).data},
            status=status.HTTP_201_CREATED if result.status == POSTED else status.HTTP_200_OK,
        )
