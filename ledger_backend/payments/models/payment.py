# payments/models/payment.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Payment(models.Model):
    """
    Cash movement against a receivable or a payable.

    - RECEIPT: money in from a customer (optionally against an invoice)
    - PAYMENT: money out to a vendor (optionally against a purchase order)

    Ledger posting (PAYMENT:<id>) and the party counter move are performed by
    payments.services.payment_service in the same unit of work.
    """

    DIRECTION_RECEIPT = "RECEIPT"
    DIRECTION_PAYMENT = "PAYMENT"

    DIRECTIONS = [
        (DIRECTION_RECEIPT, "Receipt (from customer)"),
        (DIRECTION_PAYMENT, "Payment (to vendor)"),
    ]

    METHOD_CASH = "cash"
    METHOD_BANK = "bank"

    METHODS = [
        (METHOD_CASH, "Cash"),
        (METHOD_BANK, "Bank"),
    ]

    business_id = models.CharField(max_length=64, db_index=True)

    payment_number = models.CharField(max_length=20)
    direction = models.CharField(max_length=10, choices=DIRECTIONS)

    customer = models.ForeignKey(
        "parties.Customer",
        on_delete=models.PROTECT,
        related_name="payments",
        null=True,
        blank=True,
    )
    vendor = models.ForeignKey(
        "parties.Vendor",
        on_delete=models.PROTECT,
        related_name="payments",
        null=True,
        blank=True,
    )

    invoice = models.ForeignKey(
        "sales.Invoice",
        on_delete=models.PROTECT,
        related_name="payments",
        null=True,
        blank=True,
        help_text="Optional: receipt for a specific invoice",
    )
    purchase_order = models.ForeignKey(
        "purchases.PurchaseOrder",
        on_delete=models.PROTECT,
        related_name="payments",
        null=True,
        blank=True,
        help_text="Optional: payment for a specific purchase order",
    )

    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(max_digits=14, decimal_places=2)

    payment_method = models.CharField(max_length=20, choices=METHODS, default=METHOD_CASH)
    narration = models.CharField(max_length=255, blank=True, default="")

    created_by = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "payment_number"],
                name="uniq_payment_business_number",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="payment_amount_gt_zero",
            ),
        ]
        indexes = [
            models.Index(fields=["business_id", "payment_date"]),
            models.Index(fields=["customer", "created_at"]),
            models.Index(fields=["vendor", "created_at"]),
        ]

    @property
    def party(self):
        return self.customer if self.direction == self.DIRECTION_RECEIPT else self.vendor

    def clean(self):
        if self.payment_method not in {self.METHOD_CASH, self.METHOD_BANK}:
            raise ValidationError({"payment_method": "Invalid payment_method"})

        if self.amount is not None and self.amount <= Decimal("0.00"):
            raise ValidationError({"amount": "amount must be > 0"})

        if self.direction == self.DIRECTION_RECEIPT:
            if not self.customer_id or self.vendor_id or self.purchase_order_id:
                raise ValidationError("A receipt is made by a customer")
        elif self.direction == self.DIRECTION_PAYMENT:
            if not self.vendor_id or self.customer_id or self.invoice_id:
                raise ValidationError("A payment is made to a vendor")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Payments are never edited; delete and record again")
        if self.narration is not None:
            self.narration = self.narration.strip()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.payment_number} {self.direction} {self.amount}"
