# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.balances import AccountPeriodBalance, SubledgerBalance
from accounting.models.company import Company, CompanySequence
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.models.period_close import PeriodClose
from accounting.models.posting_rule import PostingRule, PostingRuleUsageLog


class ReadOnlyAdmin(admin.ModelAdmin):
    """Ledger rows are written by the posting engine only."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# COMPANY
# ============================================================


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "base_currency", "fiscal_year_start_month", "is_active")
    list_filter = ("is_active", "base_currency")
    search_fields = ("code", "name")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("code",)


@admin.register(CompanySequence)
class CompanySequenceAdmin(ReadOnlyAdmin):
    list_display = ("company", "name", "next_value")
    list_filter = ("company",)


# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "company",
        "is_control_account",
        "current_balance",
        "is_active",
    )
    list_filter = ("account_type", "is_control_account", "is_active", "company")
    search_fields = ("code", "name")
    ordering = ("company", "code")
    readonly_fields = ("current_balance", "created_at", "updated_at")

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("company", "code", "name", "account_type", "normal_balance", "parent"),
            },
        ),
        (
            "Control Account",
            {
                "fields": ("is_control_account", "control_account_type"),
            },
        ),
        (
            "Balances",
            {
                "fields": ("opening_balance", "current_balance"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_active",),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# POSTING RULES
# ============================================================


@admin.register(PostingRule)
class PostingRuleAdmin(admin.ModelAdmin):
    list_display = (
        "rule_code",
        "company",
        "source_type",
        "trigger_event",
        "priority",
        "is_fallback",
        "is_active",
        "effective_from",
        "effective_to",
        "fiscal_year",
    )
    list_filter = ("source_type", "trigger_event", "is_active", "is_fallback", "company")
    search_fields = ("rule_code", "rule_name")
    ordering = ("source_type", "trigger_event", "priority")
    readonly_fields = ("created_at", "updated_at")


@admin.register(PostingRuleUsageLog)
class PostingRuleUsageLogAdmin(ReadOnlyAdmin):
    list_display = ("id", "posting_rule", "source_type", "source_id", "trigger_event", "success", "created_at")
    list_filter = ("success", "source_type", "trigger_event")
    search_fields = ("source_id", "posting_rule__rule_code")
    ordering = ("-created_at",)


# ============================================================
# JOURNAL (STRICTLY IMMUTABLE)
# ============================================================


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    can_delete = False
    fields = (
        "line_number",
        "account",
        "debit_amount",
        "credit_amount",
        "subledger_type",
        "subledger_id",
        "description",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyAdmin):
    list_display = (
        "entry_number",
        "company",
        "entry_date",
        "entry_type",
        "status",
        "source_type",
        "source_number",
        "total_debit",
        "total_credit",
    )
    list_filter = ("status", "entry_type", "source_type", "fiscal_year", "company")
    search_fields = ("entry_number", "source_id", "source_number", "description")
    ordering = ("-entry_date", "-id")
    inlines = [JournalLineInline]


@admin.register(JournalLine)
class JournalLineAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "journal_entry",
        "account",
        "debit_amount",
        "credit_amount",
        "subledger_type",
        "subledger_id",
    )
    list_filter = ("subledger_type", "account")
    search_fields = ("journal_entry__entry_number", "account__code", "subledger_id")
    ordering = ("journal_entry", "line_number")


# ============================================================
# BALANCES / PERIOD CLOSE
# ============================================================


@admin.register(SubledgerBalance)
class SubledgerBalanceAdmin(ReadOnlyAdmin):
    list_display = ("account", "subledger_type", "subledger_id", "balance", "transaction_count", "last_entry_date")
    list_filter = ("subledger_type", "company")
    search_fields = ("subledger_id", "account__code")


@admin.register(AccountPeriodBalance)
class AccountPeriodBalanceAdmin(ReadOnlyAdmin):
    list_display = (
        "account",
        "fiscal_year",
        "period_month",
        "opening_balance",
        "period_debit",
        "period_credit",
        "closing_balance",
    )
    list_filter = ("fiscal_year", "company")
    search_fields = ("account__code",)


@admin.register(PeriodClose)
class PeriodCloseAdmin(ReadOnlyAdmin):
    list_display = ("company", "start_date", "end_date", "net_profit", "journal_entry", "created_at")
    list_filter = ("company",)
    ordering = ("-end_date",)
