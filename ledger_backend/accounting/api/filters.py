# accounting/api/filters.py

from django_filters import rest_framework as filters

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.posting_rule import PostingRule


class JournalEntryFilter(filters.FilterSet):
    date_from = filters.DateFilter(field_name="entry_date", lookup_expr="gte")
    date_to = filters.DateFilter(field_name="entry_date", lookup_expr="lte")
    source_id = filters.CharFilter(field_name="source_id")

    class Meta:
        model = JournalEntry
        fields = ["source_type", "status", "fiscal_year", "period_month", "entry_type", "trigger_event"]


class AccountFilter(filters.FilterSet):
    code_prefix = filters.CharFilter(field_name="code", lookup_expr="startswith")

    class Meta:
        model = Account
        fields = ["account_type", "is_control_account", "control_account_type", "is_active"]


class PostingRuleFilter(filters.FilterSet):
    effective_on = filters.DateFilter(method="filter_effective_on")

    class Meta:
        model = PostingRule
        fields = ["source_type", "trigger_event", "is_active", "is_fallback", "fiscal_year"]

    def filter_effective_on(self, queryset, name, value):
        return queryset.filter(effective_from__lte=value).exclude(effective_to__lt=value)
