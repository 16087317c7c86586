# sales/models/invoice.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Invoice(models.Model):
    """
    Sales invoice (credit or paid-on-the-spot).

    LIFECYCLE:
    - DRAFT: editable document, no stock or ledger effect
    - PENDING: posted (stock consumed, INVOICE:<id> journal, receivable raised)
    - PARTIAL / PAID: follows receipts recorded against it
    - CANCELLED: terminal; a posted invoice is reversed on the way here

    Totals (server-side truth, recomputed from items):
    - subtotal = Σ quantity × unit_price
    - grand_total = subtotal - discount_total + tax_total
    """

    STATUS_DRAFT = "DRAFT"
    STATUS_PENDING = "PENDING"
    STATUS_PARTIAL = "PARTIAL"
    STATUS_PAID = "PAID"
    STATUS_CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PENDING, "Pending"),
        (STATUS_PARTIAL, "Partially Paid"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    POSTED_STATUSES = (STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID)

    PAYMENT_CREDIT = "credit"
    PAYMENT_CASH = "cash"
    PAYMENT_BANK = "bank"

    PAYMENT_METHODS = [
        (PAYMENT_CREDIT, "Credit (Receivable)"),
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_BANK, "Bank"),
    ]

    business_id = models.CharField(max_length=64, db_index=True)
    invoice_number = models.CharField(max_length=20)

    customer = models.ForeignKey(
        "parties.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )

    warehouse = models.ForeignKey(
        "products.Warehouse",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )

    invoice_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHODS, default=PAYMENT_CREDIT)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    grand_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    cogs_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="FIFO-derived cost of goods sold, set on posting.",
    )

    notes = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    posted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-invoice_date", "-created_at"]
        indexes = [
            models.Index(fields=["business_id", "status"]),
            models.Index(fields=["business_id", "invoice_date"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "invoice_number"],
                name="uniq_invoice_business_number",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_number} | {self.grand_total} | {self.status}"

    @property
    def balance_due(self) -> Decimal:
        return Decimal(self.grand_total) - Decimal(self.amount_paid)

    @property
    def is_posted(self) -> bool:
        return self.status in self.POSTED_STATUSES

    def clean(self):
        if self.customer_id and self.customer.business_id != self.business_id:
            raise ValidationError({"customer": "Customer belongs to another business"})
        if self.warehouse_id and self.warehouse.business_id != self.business_id:
            raise ValidationError({"warehouse": "Warehouse belongs to another business"})
        if self.amount_paid is not None and self.amount_paid < 0:
            raise ValidationError({"amount_paid": "amount_paid cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class InvoiceItem(models.Model):
    """
    One invoice line.

    Pricing snapshot:
    - line_subtotal = quantity × unit_price
    - tax_amount = (line_subtotal - discount_amount) × tax_percent / 100
    - line_total = line_subtotal - discount_amount + tax_amount

    Cost snapshot (written once, when the invoice is posted):
    - unit_cost / cost_amount from the costing engine
    """

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="invoice_items",
    )

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    # Explicit lots (batch ids) to consume instead of FIFO
    lot_refs = models.JSONField(default=list, blank=True)

    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0.0000"))
    cost_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product} x {self.quantity}"

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError({"quantity": "quantity must be at least 1"})
        if self.unit_price is None or self.unit_price < 0:
            raise ValidationError({"unit_price": "unit_price cannot be negative"})
        if self.discount_amount is not None and self.discount_amount < 0:
            raise ValidationError({"discount_amount": "discount_amount cannot be negative"})
        if self.tax_percent is not None and not (Decimal("0") <= self.tax_percent <= Decimal("100")):
            raise ValidationError({"tax_percent": "tax_percent must be between 0 and 100"})
