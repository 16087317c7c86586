# products/models/stock_batch.py

"""
STOCK BATCH (INVENTORY LOT)

Represents ONE stock-in event: a purchase receipt, a production output,
or a manual stock add.

CANONICAL MODEL:
- business-scoped, optionally warehouse-scoped
- quantity_received and unit_cost are immutable after creation
- quantity_remaining is mutated ONLY via products.services.costing
  (decreases on consumption, increases on consumption reversal)
- Exhausted lots (quantity_remaining == 0) are kept as history
- Never deleted (FIFO ordering and the audit trail depend on it)

FIFO ORDER:
- manufacturing_date, then created_at, then id
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .product import Product
from .warehouse import Warehouse


class StockBatch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business_id = models.CharField(max_length=64, db_index=True)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="stock_batches",
    )

    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_batches",
    )

    batch_number = models.CharField(
        max_length=128,
        help_text="Supplier / production batch reference",
    )

    manufacturing_date = models.DateField(default=timezone.localdate)
    expiry_date = models.DateField(null=True, blank=True)

    quantity_received = models.PositiveIntegerField(
        help_text="Quantity put into this lot (immutable)"
    )

    quantity_remaining = models.PositiveIntegerField(
        default=0,
        help_text="Remaining quantity (service-managed only)",
    )

    # Cost basis for valuation + COGS (immutable)
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4)

    # Which document created the lot (e.g. PURCHASE:12, PRODUCTION:3)
    source_reference_type = models.CharField(max_length=32, blank=True, default="")
    source_reference_id = models.CharField(max_length=64, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["manufacturing_date", "created_at", "id"]
        indexes = [
            models.Index(fields=["business_id", "product", "manufacturing_date"]),
            models.Index(fields=["business_id", "source_reference_type", "source_reference_id"]),
            models.Index(fields=["product", "warehouse"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_received__gt=0),
                name="chk_stockbatch_qty_received_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__gte=0),
                name="chk_stockbatch_qty_remaining_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__lte=F("quantity_received")),
                name="chk_stockbatch_remaining_lte_received",
            ),
            models.CheckConstraint(
                condition=Q(unit_cost__gte=0),
                name="chk_stockbatch_unit_cost_gte_zero",
            ),
        ]

    # -------------------------------------------------
    # VALIDATION
    # -------------------------------------------------

    def clean(self):
        if self.quantity_received is None or self.quantity_received <= 0:
            raise ValidationError(
                {"quantity_received": "quantity_received must be greater than zero"}
            )

        if self.quantity_remaining is None or self.quantity_remaining < 0:
            raise ValidationError(
                {"quantity_remaining": "quantity_remaining cannot be negative"}
            )

        if self.quantity_remaining > self.quantity_received:
            raise ValidationError(
                {"quantity_remaining": "quantity_remaining cannot exceed quantity_received"}
            )

        if self.unit_cost is None or self.unit_cost < Decimal("0"):
            raise ValidationError({"unit_cost": "unit_cost must be >= 0"})

        if self.product_id and self.product.business_id != self.business_id:
            raise ValidationError({"product": "Product belongs to another business"})

        if self.warehouse_id and self.warehouse.business_id != self.business_id:
            raise ValidationError({"warehouse": "Warehouse belongs to another business"})

        if self.expiry_date and self.manufacturing_date and self.expiry_date < self.manufacturing_date:
            raise ValidationError({"expiry_date": "expiry_date cannot precede manufacturing_date"})

    # -------------------------------------------------
    # IMMUTABILITY
    # -------------------------------------------------

    def save(self, *args, **kwargs):
        if not self._state.adding:
            original = StockBatch.objects.only("quantity_received", "unit_cost").get(pk=self.pk)

            if self.quantity_received != original.quantity_received:
                raise ValidationError({"quantity_received": "quantity_received is immutable"})

            if self.unit_cost != original.unit_cost:
                raise ValidationError({"unit_cost": "unit_cost is immutable"})

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockBatch records are never deleted; exhausted lots stay as history."
        )

    # -------------------------------------------------
    # READ-ONLY HELPERS
    # -------------------------------------------------

    @property
    def is_exhausted(self) -> bool:
        return int(self.quantity_remaining or 0) == 0

    @property
    def total_remaining_value(self) -> Decimal:
        return Decimal(self.unit_cost or 0) * Decimal(int(self.quantity_remaining or 0))

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | Batch {self.batch_number} | {self.quantity_remaining}/{self.quantity_received}"
