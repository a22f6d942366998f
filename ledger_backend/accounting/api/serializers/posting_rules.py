# accounting/api/serializers/posting_rules.py

from rest_framework import serializers

from accounting.models.posting_rule import PostingRule


class PostingRuleSerializer(serializers.ModelSerializer):
    company = serializers.CharField(source="company.code", read_only=True, allow_null=True)

    class Meta:
        model = PostingRule
        fields = (
            "id",
            "company",
            "rule_code",
            "rule_name",
            "description",
            "source_type",
            "trigger_event",
            "priority",
            "is_active",
            "is_fallback",
            "conditions",
            "template",
            "effective_from",
            "effective_to",
            "fiscal_year",
            "rule_pack_version",
        )
        read_only_fields = fields
