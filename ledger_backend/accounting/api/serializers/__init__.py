# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountSerializer
from accounting.api.serializers.close_period import ClosePeriodSerializer, PeriodCloseSerializer
from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    JournalLineSerializer,
    ReverseEntrySerializer,
)
from accounting.api.serializers.posting_rules import PostingRuleSerializer
from accounting.api.serializers.postings import PostingRequestSerializer

__all__ = [
    "AccountSerializer",
    "ClosePeriodSerializer",
    "PeriodCloseSerializer",
    "JournalEntrySerializer",
    "JournalLineSerializer",
    "ReverseEntrySerializer",
    "PostingRuleSerializer",
    "PostingRequestSerializer",
]
