# accounting/api/views/postings.py

"""
PATH: accounting/api/views/postings.py

POSTING API

POST /api/accounting/postings/

Accepts one business event and posts it through the rules engine.

Responses:
- 201: entry created
- 200: event already posted (idempotent replay) or nothing to post
- 400: malformed event / ledger invariant / locked period is 409
- 422: rule catalogue or chart cannot serve the event
- 503: ledger database unavailable

Security:
- Authenticated
- Requires accounting.add_journalentry
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.errors import ServiceErrorMixin
from accounting.api.scoping import permission_denied
from accounting.api.serializers import JournalEntrySerializer, PostingRequestSerializer
from accounting.services.account_resolver import get_company
from accounting.services.posting import NOTHING_TO_POST, POSTED, post

POSTING_PERMISSION = "accounting.add_journalentry"


class PostingView(ServiceErrorMixin, GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PostingRequestSerializer
    throttle_scope = "posting"

    @extend_schema(
        tags=["accounting"],
        request=PostingRequestSerializer,
        responses={201: JournalEntrySerializer, 200: JournalEntrySerializer, 400: dict, 409: dict, 422: dict},
    )
    def post(self, request, *args, **kwargs):
        denied = permission_denied(request, POSTING_PERMISSION, "post journal entries")
        if denied is not None:
            return denied

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        company = get_company(serializer.validated_data["company"])
        result = post(serializer.to_request(company))

        if result.status == NOTHING_TO_POST:
            return Response(
                {
                    "status": result.status,
                    "posting_rule": result.rule.rule_code if result.rule else None,
                    "journal_entry": None,
                },
                status=status.HTTP_200_OK,
            )

        return Response(
            {
                "status": result.status,
                "posting_rule": result.rule.rule_code if result.rule else None,
                "journal_entry": JournalEntrySerializer(result.entry).data,
            },
            status=status.HTTP_201_CREATED if result.status == POSTED else status.HTTP_200_OK,
        )
