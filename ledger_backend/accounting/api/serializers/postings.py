# accounting/api/serializers/postings.py

"""
======================================================
PATH: accounting/api/serializers/postings.py
======================================================
POSTING REQUEST SERIALIZER

Shape check only. Company lookup, rule selection and every accounting
rule happen in accounting.services.posting.
"""

from rest_framework import serializers

from accounting.models.company import Company
from accounting.services.posting import PostingRequest


class PostingRequestSerializer(serializers.Serializer):
    company = serializers.CharField(max_length=32)
    source_type = serializers.CharField(max_length=40)
    source_id = serializers.CharField(max_length=64)
    trigger_event = serializers.CharField(max_length=40)
    event_date = serializers.DateField()
    source_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    event_fields = serializers.DictField(required=False, default=dict)

    def to_request(self, company: Company) -> PostingRequest:
        data = self.validated_data
        return PostingRequest(
            company=company,
            source_type=data["source_type"],
            source_id=data["source_id"],
            trigger_event=data["trigger_event"],
            event_date=data["event_date"],
            event_fields=data.get("event_fields") or {},
            source_number=data.get("source_number") or "",
        )
