# products/models/stock_adjustment.py

"""
MANUAL STOCK DOCUMENTS

StockAdjustment:
- Manual stock add (+N, a new lot at unit_cost) or manual correction (-N,
  drawn from existing lots at their own cost)
- Posted as ADJUSTMENT:<id>
      +N  Dr INVENTORY_ASSET / Cr OTHER_INCOME  (stock gain)
      -N  Dr COGS / Cr INVENTORY_ASSET          (shrinkage)

StockTransfer:
- Moves units of one lot to another warehouse as a new lot carrying the
  source lot's unit cost, manufacturing date and expiry (FIFO age is kept)
- Inventory value is unchanged, so no journal is posted

Both are immutable once created, apart from the realized cost (adjustment)
and the destination lot (transfer) written back by the service.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .product import Product
from .stock_batch import StockBatch
from .warehouse import Warehouse


class StockAdjustment(models.Model):
    business_id = models.CharField(max_length=64, db_index=True)
    adjustment_number = models.CharField(max_length=20)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="stock_adjustments",
    )
    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_adjustments",
    )

    quantity_change = models.IntegerField(help_text="+N adds a lot, -N draws from existing lots")
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0.0000"))
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    adjustment_date = models.DateField(default=timezone.localdate)
    reason = models.CharField(max_length=255, blank=True, default="")

    created_by = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-adjustment_date", "-created_at"]
        indexes = [
            models.Index(fields=["business_id", "adjustment_date"]),
            models.Index(fields=["product", "created_at"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "adjustment_number"],
                name="uniq_stock_adjustment_business_number",
            ),
            models.CheckConstraint(
                condition=~Q(quantity_change=0),
                name="chk_stock_adjustment_quantity_nonzero",
            ),
        ]

    def __str__(self):
        return f"{self.adjustment_number} | {self.product} | {self.quantity_change:+d}"

    @property
    def is_increase(self) -> bool:
        return self.quantity_change > 0

    def clean(self):
        if not self.quantity_change:
            raise ValidationError({"quantity_change": "quantity_change cannot be zero"})
        if self.product_id and self.product.business_id != self.business_id:
            raise ValidationError({"product": "Product belongs to another business"})
        if self.warehouse_id and self.warehouse.business_id != self.business_id:
            raise ValidationError({"warehouse": "Warehouse belongs to another business"})

    def save(self, *args, **kwargs):
        update_fields = kwargs.get("update_fields")
        # Only the realized cost is written back after the lots move
        if not self._state.adding and not (update_fields and set(update_fields) <= {"unit_cost", "amount"}):
            raise ValidationError("StockAdjustment records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)


class StockTransfer(models.Model):
    business_id = models.CharField(max_length=64, db_index=True)
    transfer_number = models.CharField(max_length=20)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="stock_transfers",
    )

    source_batch = models.ForeignKey(
        StockBatch,
        on_delete=models.PROTECT,
        related_name="transfers_out",
    )
    destination_batch = models.ForeignKey(
        StockBatch,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transfers_in",
    )

    from_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transfers_out",
    )
    to_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        related_name="transfers_in",
    )

    quantity = models.PositiveIntegerField()
    transfer_date = models.DateField(default=timezone.localdate)
    notes = models.CharField(max_length=255, blank=True, default="")

    created_by = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-transfer_date", "-created_at"]
        indexes = [
            models.Index(fields=["business_id", "transfer_date"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "transfer_number"],
                name="uniq_stock_transfer_business_number",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_stock_transfer_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=~Q(from_warehouse=F("to_warehouse")),
                name="chk_stock_transfer_distinct_warehouses",
            ),
        ]

    def __str__(self):
        return f"{self.transfer_number} | {self.product} x {self.quantity}"

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError({"quantity": "quantity must be greater than zero"})
        if self.source_batch_id and self.source_batch.product_id != self.product_id:
            raise ValidationError({"source_batch": "Lot does not belong to product"})
        if self.to_warehouse_id and self.to_warehouse.business_id != self.business_id:
            raise ValidationError({"to_warehouse": "Warehouse belongs to another business"})
        if self.to_warehouse_id and self.to_warehouse_id == self.from_warehouse_id:
            raise ValidationError({"to_warehouse": "Source and destination warehouse are the same"})

    def save(self, *args, **kwargs):
        update_fields = kwargs.get("update_fields")
        if not self._state.adding and list(update_fields or ()) != ["destination_batch"]:
            raise ValidationError("StockTransfer records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)
