# sales/models/pos_sale.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class PosSale(models.Model):
    """
    Represents a completed point-of-sale transaction.

    GUARANTEES:
    - Created COMPLETED by the checkout service (stock + ledger in one unit of work)
    - Paid in full by one or more PosPayment legs (Σ legs == total_amount)
    - VOIDED is terminal; voiding reverses the POS_SALE:<id> journal and restores lots
    """

    STATUS_COMPLETED = "COMPLETED"
    STATUS_VOIDED = "VOIDED"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_VOIDED, "Voided"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business_id = models.CharField(max_length=64, db_index=True)

    receipt_no = models.CharField(max_length=64, blank=True)

    warehouse = models.ForeignKey(
        "products.Warehouse",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="pos_sales",
    )

    sale_date = models.DateField(default=timezone.localdate)

    subtotal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    cogs_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Total Cost of Goods Sold for this sale (FIFO-derived).",
    )

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_COMPLETED)

    created_by = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    voided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["business_id", "sale_date"]),
            models.Index(fields=["business_id", "status"]),
        ]

    @property
    def gross_profit_amount(self) -> Decimal:
        return Decimal(self.subtotal_amount) - Decimal(self.discount_amount) - Decimal(self.cogs_amount)

    def save(self, *args, **kwargs):
        if not self.receipt_no:
            prefix = timezone.now().strftime("POS%Y%m%d")
            self.receipt_no = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.receipt_no} | {self.total_amount}"


class PosSaleItem(models.Model):
    """Immutable snapshot of a sold line item (price + FIFO cost)."""

    sale = models.ForeignKey(PosSale, on_delete=models.CASCADE, related_name="items")

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="pos_sale_items",
    )

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0.0000"))
    cost_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product} x {self.quantity}"


class PosPayment(models.Model):
    """
    One payment leg of a POS sale.

    card settles into BANK like bank transfers; cash into CASH.
    """

    METHOD_CASH = "cash"
    METHOD_CARD = "card"
    METHOD_BANK = "bank"

    METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CARD, "Card"),
        (METHOD_BANK, "Bank Transfer"),
    ]

    sale = models.ForeignKey(PosSale, on_delete=models.CASCADE, related_name="payments")

    method = models.CharField(max_length=8, choices=METHOD_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    reference = models.CharField(max_length=128, blank=True, default="")

    class Meta:
        ordering = ["id"]

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError({"amount": "amount must be greater than zero"})

    def __str__(self):
        return f"{self.method}: {self.amount}"
