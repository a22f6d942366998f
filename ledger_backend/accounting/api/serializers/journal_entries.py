# accounting/api/serializers/journal_entries.py

from rest_framework import serializers

from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine


class JournalLineSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source="account.name", read_only=True)
    side = serializers.CharField(read_only=True)
    amount = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta:
        model = JournalLine
        fields = (
            "line_number",
            "account_code",
            "account_name",
            "side",
            "amount",
            "debit_amount",
            "credit_amount",
            "currency",
            "exchange_rate",
            "foreign_amount",
            "subledger_type",
            "subledger_id",
            "description",
        )
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    company = serializers.CharField(source="company.code", read_only=True)
    posting_rule = serializers.CharField(source="posting_rule.rule_code", read_only=True, allow_null=True)
    reversal_of = serializers.CharField(source="reversal_of.entry_number", read_only=True, allow_null=True)
    reversed_by = serializers.CharField(source="reversed_by.entry_number", read_only=True, allow_null=True)
    lines = JournalLineSerializer(many=True, read_only=True)

    class Meta:
        model = JournalEntry
        fields = (
            "id",
            "company",
            "entry_number",
            "entry_date",
            "fiscal_year",
            "period_month",
            "entry_type",
            "status",
            "source_type",
            "source_id",
            "source_number",
            "trigger_event",
            "description",
            "total_debit",
            "total_credit",
            "currency",
            "posting_rule",
            "rule_pack_version",
            "reversal_of",
            "reversed_by",
            "is_reversed",
            "reversal_reason",
            "posted_at",
            "lines",
        )
        read_only_fields = fields


class ReverseEntrySerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)
    reversal_date = serializers.DateField(required=False, allow_null=True)

    def validate_reason(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("reason is required")
        return value
