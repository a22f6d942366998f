# accounting/api/serializers/close_period.py

"""
PATH: accounting/api/serializers/close_period.py

PERIOD CLOSE SERIALIZERS

ClosePeriodSerializer: request shape for POST /close-period/
- start_date <= end_date (future dates and overlaps are the service's call)
- retained_earnings_account_code optional; blank means the default (3100)

PeriodCloseSerializer: the recorded lock + closing totals
"""

from rest_framework import serializers

from accounting.models.period_close import PeriodClose
from accounting.services.reporting import amount_fields


class ClosePeriodSerializer(serializers.Serializer):
    company = serializers.CharField(max_length=32)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    retained_earnings_account_code = serializers.CharField(
        max_length=20, required=False, allow_blank=True, allow_null=True
    )

    def validate_retained_earnings_account_code(self, value):
        return (value or "").strip() or None

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be >= start_date"})
        return attrs


class PeriodCloseSerializer(serializers.ModelSerializer):
    company = serializers.CharField(source="company.code", read_only=True)
    retained_earnings_account = serializers.CharField(
        source="retained_earnings_account.code", read_only=True, allow_null=True
    )
    journal_entry = serializers.SerializerMethodField()
    summary = serializers.SerializerMethodField()

    class Meta:
        model = PeriodClose
        fields = (
            "id",
            "company",
            "start_date",
            "end_date",
            "retained_earnings_account",
            "journal_entry",
            "summary",
            "created_at",
        )
        read_only_fields = fields

    def get_journal_entry(self, obj):
        je = obj.journal_entry
        if je is None:
            return None
        return {
            "id": je.id,
            "entry_number": je.entry_number,
            "entry_date": je.entry_date.isoformat(),
            "description": je.description,
        }

    def get_summary(self, obj):
        return {
            **amount_fields("total_income", obj.total_income),
            **amount_fields("total_expenses", obj.total_expenses),
            **amount_fields("net_profit", obj.net_profit),
        }
