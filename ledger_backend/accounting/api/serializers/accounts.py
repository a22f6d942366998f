# accounting/api/serializers/accounts.py

from rest_framework import serializers

from accounting.models.account import Account


class AccountSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for a company's chart of accounts.
    """

    company = serializers.CharField(source="company.code", read_only=True, allow_null=True)
    parent_code = serializers.CharField(source="parent.code", read_only=True, allow_null=True)

    class Meta:
        model = Account
        fields = (
            "id",
            "company",
            "code",
            "name",
            "account_type",
            "normal_balance",
            "parent_code",
            "is_control_account",
            "control_account_type",
            "opening_balance",
            "current_balance",
            "is_active",
        )
        read_only_fields = fields
