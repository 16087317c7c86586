# purchases/models.py

from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class PurchaseOrder(models.Model):
    """
    Vendor purchase order header.

    Receiving is performed by services:
    - creates one stock lot per item (at the item's unit cost)
    - posts PURCHASE:<id> (Dr inventory + input tax, Cr payable)
    - raises the vendor payable
    - marks the order RECEIVED (exactly once, under row lock)
    """

    STATUS_DRAFT = "DRAFT"
    STATUS_RECEIVED = "RECEIVED"
    STATUS_PAID = "PAID"
    STATUS_CANCELLED = "CANCELLED"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_RECEIVED, "Received"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    business_id = models.CharField(max_length=64, db_index=True)

    vendor = models.ForeignKey(
        "parties.Vendor",
        on_delete=models.PROTECT,
        related_name="purchase_orders",
    )

    warehouse = models.ForeignKey(
        "products.Warehouse",
        on_delete=models.PROTECT,
        related_name="purchase_orders",
        null=True,
        blank=True,
    )

    po_number = models.CharField(max_length=20)
    order_date = models.DateField(default=timezone.localdate)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    subtotal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    received_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "po_number"],
                name="uniq_purchase_order_business_number",
            ),
            models.CheckConstraint(
                condition=models.Q(subtotal_amount__gte=Decimal("0.00")),
                name="purchase_order_subtotal_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0.00")),
                name="purchase_order_total_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["business_id", "status"]),
            models.Index(fields=["vendor", "created_at"]),
        ]

    @property
    def balance_due(self) -> Decimal:
        return _money(self.total_amount) - _money(self.amount_paid)

    def clean(self):
        if not (self.po_number or "").strip():
            raise ValidationError({"po_number": "po_number is required"})

        if self.vendor_id and self.vendor.business_id != self.business_id:
            raise ValidationError({"vendor": "Vendor belongs to another business"})

        if self.status in (self.STATUS_RECEIVED, self.STATUS_PAID) and not self.received_at:
            raise ValidationError(
                {"received_at": "received_at is required once the order is received"}
            )

        if self.amount_paid is not None and self.amount_paid < Decimal("0.00"):
            raise ValidationError({"amount_paid": "amount_paid cannot be negative"})

    def save(self, *args, **kwargs):
        if self.po_number is not None:
            self.po_number = self.po_number.strip()

        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.po_number} ({self.vendor.name})"


class PurchaseOrderItem(models.Model):
    """
    Purchase order line. Each received line becomes one stock lot.
    """

    order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="purchase_order_items",
    )

    batch_number = models.CharField(max_length=128, blank=True, default="")
    expiry_date = models.DateField(null=True, blank=True)

    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0.0000"))
    tax_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="purchase_order_item_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=Decimal("0.00")),
                name="purchase_order_item_unit_cost_nonnegative",
            ),
        ]

    @property
    def line_subtotal(self) -> Decimal:
        return _money(Decimal(str(self.quantity)) * Decimal(str(self.unit_cost)))

    @property
    def line_tax(self) -> Decimal:
        return _money(self.line_subtotal * Decimal(str(self.tax_percent)) / Decimal("100"))

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} x {self.quantity}"
