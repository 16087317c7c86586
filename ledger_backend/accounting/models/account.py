# accounting/models/account.py

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.chart import ChartOfAccounts


class AccountRole(models.TextChoices):
    """
    Closed vocabulary of tenant-independent account roles.

    Postings name a role (or a stable code), never a database id; each business
    maps a role to one concrete account in its own chart.
    """

    CASH = "CASH", "Cash on Hand"
    BANK = "BANK", "Bank Accounts"
    ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE", "Accounts Receivable"
    INVENTORY_ASSET = "INVENTORY_ASSET", "Inventory Asset"
    INPUT_TAX_CREDIT = "INPUT_TAX_CREDIT", "Input Tax Credit"
    ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE", "Accounts Payable"
    SALES_TAX_PAYABLE = "SALES_TAX_PAYABLE", "Sales Tax Payable"
    OWNER_EQUITY = "OWNER_EQUITY", "Owner Equity"
    RETAINED_EARNINGS = "RETAINED_EARNINGS", "Retained Earnings"
    SALES_REVENUE = "SALES_REVENUE", "Sales Revenue"
    SERVICE_REVENUE = "SERVICE_REVENUE", "Service Revenue"
    OTHER_INCOME = "OTHER_INCOME", "Other Income"
    COGS = "COGS", "Cost of Goods Sold"
    MANUFACTURING_COST = "MANUFACTURING_COST", "Manufacturing Cost"
    RENT_EXPENSE = "RENT_EXPENSE", "Rent Expense"
    UTILITIES_EXPENSE = "UTILITIES_EXPENSE", "Utilities"
    SALARIES_EXPENSE = "SALARIES_EXPENSE", "Salaries"
    OPERATING_EXPENSE = "OPERATING_EXPENSE", "Operating Expenses"


class Account(models.Model):
    """
    Represents a single GL account within a business's Chart of Accounts.

    Guarantees:
    - Account codes are unique per chart (= per business)
    - A role maps to at most one account per chart
    - Code + name are normalized (trimmed)
    - account_type fixes the normal-balance side used by every report
    """

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (INCOME, "Income"),
        (EXPENSE, "Expense"),
    ]

    DEBIT_NORMAL_TYPES = (ASSET, EXPENSE)

    chart = models.ForeignKey(
        ChartOfAccounts,
        on_delete=models.PROTECT,
        related_name="accounts",
    )

    code = models.CharField(max_length=10)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )

    role = models.CharField(
        max_length=32,
        choices=AccountRole.choices,
        null=True,
        blank=True,
        default=None,
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["chart", "code"]),
            models.Index(fields=["chart", "account_type"]),
            models.Index(fields=["chart", "role"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["chart", "code"],
                name="uniq_account_chart_code",
            ),
            models.UniqueConstraint(
                fields=["chart", "role"],
                condition=Q(role__isnull=False),
                name="uniq_account_chart_role",
            ),
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def business_id(self) -> str:
        return self.chart.business_id

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in self.DEBIT_NORMAL_TYPES

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
