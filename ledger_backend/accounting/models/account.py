# accounting/models/account.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.company import Company


class Account(models.Model):
    """
    A ledger account within a company's chart of accounts.

    Guarantees:
    - Account codes are unique per company (and unique among global templates)
    - Code + name are normalized (trimmed)
    - A child account always has the same type as its parent
    - Normal balance defaults from the account type
    - Control accounts carry a control type and start at a zero opening balance
      (party-level openings are posted as tagged lines so subledgers reconcile)
    - Opening balance and control flags are frozen once lines are posted

    Balances:
    - opening_balance and current_balance are signed on the normal side
      (positive = balance on the account's normal side)
    - current_balance = opening_balance + posted movement; it is maintained by
      the posting engine only
    """

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (INCOME, "Income"),
        (EXPENSE, "Expense"),
    ]

    DEBIT = "debit"
    CREDIT = "credit"

    NORMAL_BALANCES = [
        (DEBIT, "Debit"),
        (CREDIT, "Credit"),
    ]

    DEBIT_NORMAL_TYPES = (ASSET, EXPENSE)

    # Control account types
    PAYABLES = "payables"
    RECEIVABLES = "receivables"
    BANK = "bank"
    TDS_PAYABLE = "tds_payable"
    TDS_RECEIVABLE = "tds_receivable"
    GST_INPUT = "gst_input"
    GST_OUTPUT = "gst_output"
    LOANS = "loans"

    CONTROL_ACCOUNT_TYPES = [
        (PAYABLES, "Payables"),
        (RECEIVABLES, "Receivables"),
        (BANK, "Bank"),
        (TDS_PAYABLE, "TDS Payable"),
        (TDS_RECEIVABLE, "TDS Receivable"),
        (GST_INPUT, "GST Input"),
        (GST_OUTPUT, "GST Output"),
        (LOANS, "Loans"),
    ]

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="accounts",
        null=True,
        blank=True,
        help_text="Null marks a global template account (copied into companies on provisioning).",
    )

    code = models.CharField(max_length=20)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )
    normal_balance = models.CharField(
        max_length=6,
        choices=NORMAL_BALANCES,
        blank=True,
        default="",
    )

    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="children",
        null=True,
        blank=True,
    )

    is_control_account = models.BooleanField(default=False)
    control_account_type = models.CharField(
        max_length=20,
        choices=CONTROL_ACCOUNT_TYPES,
        blank=True,
        default="",
    )

    opening_balance = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    current_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        editable=False,
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["company", "code"]),
            models.Index(fields=["company", "account_type"]),
            models.Index(fields=["is_active"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                condition=Q(company__isnull=False),
                name="uniq_account_company_code",
            ),
            models.UniqueConstraint(
                fields=["code"],
                condition=Q(company__isnull=True),
                name="uniq_account_global_code",
            ),
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(is_control_account=False) | ~Q(control_account_type=""),
                name="chk_account_control_type_required",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @classmethod
    def default_normal_balance(cls, account_type: str) -> str:
        return cls.DEBIT if account_type in cls.DEBIT_NORMAL_TYPES else cls.CREDIT

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == self.DEBIT

    def signed_movement(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Net effect of a debit/credit pair on this account's normal-side balance."""
        if self.is_debit_normal:
            return debit - credit
        return credit - debit

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

        if not self.normal_balance:
            self.normal_balance = self.default_normal_balance(self.account_type)

        if self.parent_id:
            parent = self.parent
            if parent.pk == self.pk:
                raise ValidationError({"parent": "An account cannot be its own parent"})
            if parent.company_id != self.company_id:
                raise ValidationError({"parent": "Parent account must belong to the same company"})
            if parent.account_type != self.account_type:
                raise ValidationError(
                    {"parent": f"Account type {self.account_type} does not match parent type {parent.account_type}"}
                )

        if self.is_control_account:
            if not self.control_account_type:
                raise ValidationError({"control_account_type": "Control accounts require a control account type"})
            if self.opening_balance:
                raise ValidationError(
                    {"opening_balance": "Control accounts start at zero; post party openings as tagged lines"}
                )
        else:
            self.control_account_type = ""

    def save(self, *args, **kwargs):
        self.full_clean()
        if self._state.adding:
            self.current_balance = self.opening_balance
        else:
            previous = (
                Account.objects.filter(pk=self.pk)
                .values("opening_balance", "is_control_account", "control_account_type")
                .first()
            )
            if previous is not None:
                frozen = [
                    field
                    for field, value in previous.items()
                    if field != "opening_balance" and getattr(self, field) != value
                ]
                if frozen and self.journal_lines.exists():
                    # Subledger rows only reconcile if the control flag held for every posted line.
                    raise ValidationError(
                        {field: "Cannot change once lines are posted to the account" for field in frozen}
                    )

                if previous["opening_balance"] != self.opening_balance:
                    if self.journal_lines.exists():
                        raise ValidationError(
                            {"opening_balance": "Opening balance cannot change once lines are posted to the account"}
                        )
                    self.current_balance = self.opening_balance
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Accounts are never deleted; set is_active=False instead")
