# products/models/stock_movement.py

"""
CANONICAL INVENTORY LEDGER

Immutable inventory ledger entry.

GUARANTEES:
- Append-only (no updates, no deletes)
- Movement direction validated against reason
- (reference_type, reference_id) names the document that moved the stock,
  which is how consumption is restored lot-for-lot on reversal
- unit_cost_snapshot is the lot's cost at movement time
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .product import Product
from .stock_batch import StockBatch


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        RECEIPT = "RECEIPT", "Stock Receipt"
        PRODUCTION = "PRODUCTION", "Production Output"
        SALE = "SALE", "Sale"
        CONSUMPTION = "CONSUMPTION", "Material Consumption"
        REVERSAL = "REVERSAL", "Reversal"
        ADJUSTMENT = "ADJUSTMENT", "Manual Adjustment"
        TRANSFER = "TRANSFER", "Warehouse Transfer"

    REASON_TO_MOVEMENT = {
        Reason.RECEIPT: MovementType.IN,
        Reason.PRODUCTION: MovementType.IN,
        Reason.SALE: MovementType.OUT,
        Reason.CONSUMPTION: MovementType.OUT,
        Reason.REVERSAL: None,
        Reason.ADJUSTMENT: None,
        Reason.TRANSFER: None,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business_id = models.CharField(max_length=64, db_index=True)

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="stock_movements"
    )
    batch = models.ForeignKey(
        StockBatch, on_delete=models.PROTECT, related_name="stock_movements"
    )

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()

    unit_cost_snapshot = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        help_text="Unit cost snapshot from batch at movement time (immutable).",
    )

    reference_type = models.CharField(max_length=32, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")

    created_by = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["business_id", "reference_type", "reference_id"]),
            models.Index(fields=["product", "created_at"]),
            models.Index(fields=["batch", "created_at"]),
            models.Index(fields=["reason"]),
        ]

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        if self.batch_id and self.product_id and self.batch.product_id != self.product_id:
            raise ValidationError("Batch does not belong to product")

        expected_type = self.REASON_TO_MOVEMENT.get(self.reason)
        if expected_type and self.movement_type != expected_type:
            raise ValidationError(
                f"{self.reason} requires movement_type={expected_type}"
            )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        if self.unit_cost_snapshot is None and self.batch_id:
            self.unit_cost_snapshot = self.batch.unit_cost

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    @property
    def total_cost(self) -> Decimal:
        return Decimal(self.unit_cost_snapshot or 0) * Decimal(int(self.quantity or 0))

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.reason} | {self.quantity}"
