# accounting/models/expense.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from accounting.models.account import Account


class Expense(models.Model):
    """
    Expense transaction (business event), posted to the ledger by the expense service.

    Rule:
    - Created and posted in the same unit of work (EXPENSE:<id> journal)
    - total_amount == net_amount + tax_amount
    - Credit expenses must name a vendor (the payable is tagged to it)
    - Never edited; deleting goes through delete_expense (reverses the journal first)
    """

    PAYMENT_CASH = "cash"
    PAYMENT_BANK = "bank"
    PAYMENT_CREDIT = "credit"

    PAYMENT_METHODS = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_BANK, "Bank"),
        (PAYMENT_CREDIT, "Credit (Payables)"),
    ]

    business_id = models.CharField(max_length=64, db_index=True)
    expense_number = models.CharField(max_length=20)

    expense_date = models.DateField(default=timezone.localdate)

    expense_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="expenses",
    )

    net_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)

    payment_method = models.CharField(
        max_length=10,
        choices=PAYMENT_METHODS,
        default=PAYMENT_CASH,
    )

    vendor = models.ForeignKey(
        "parties.Vendor",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="expenses",
    )

    narration = models.CharField(max_length=255, blank=True, default="")
    created_by = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-expense_date", "-created_at"]
        verbose_name = "Expense"
        verbose_name_plural = "Expenses"
        indexes = [
            models.Index(fields=["business_id", "expense_date"]),
            models.Index(fields=["created_at"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "expense_number"],
                name="uniq_expense_business_number",
            ),
            models.CheckConstraint(
                condition=Q(tax_amount__gte=0),
                name="chk_expense_tax_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.expense_number} - {self.total_amount} ({self.expense_date})"

    @property
    def is_credit(self) -> bool:
        return self.payment_method == self.PAYMENT_CREDIT

    def clean(self):
        if self.expense_account_id and self.expense_account.account_type != Account.EXPENSE:
            raise ValidationError({"expense_account": "expense_account must be an EXPENSE account"})

        if self.expense_account_id and self.expense_account.business_id != self.business_id:
            raise ValidationError({"expense_account": "expense_account belongs to another business"})

        if self.net_amount is not None and self.tax_amount is not None and self.total_amount is not None:
            if self.total_amount != self.net_amount + self.tax_amount:
                raise ValidationError({"total_amount": "total_amount must equal net_amount + tax_amount"})

        if self.is_credit and not self.vendor_id:
            raise ValidationError({"vendor": "Credit expenses require a vendor"})

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Expense records are immutable once posted")

        self.full_clean()
        return super().save(*args, **kwargs)
