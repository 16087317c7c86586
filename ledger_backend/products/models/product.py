# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum


class Product(models.Model):
    """
    Represents a stockable product owned by ONE business.

    STOCK MODEL (IMPORTANT):
    - Stock truth lives in StockBatch (quantity_remaining per lot)
    - Product.stock is a running counter cache, mutated ONLY by
      products.services.stock_counter in the same transaction as the lot change
    - Product.stock must always equal Σ StockBatch.quantity_remaining
      (see stock_counter.recompute_stock)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business_id = models.CharField(max_length=64, db_index=True)

    sku = models.CharField(max_length=128, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    # Current/default selling price (documents snapshot their own price)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Counter cache (service-managed only)
    stock = models.IntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["business_id", "sku"]),
            models.Index(fields=["business_id", "name"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "sku"],
                name="uniq_product_business_sku",
            ),
            models.CheckConstraint(
                condition=Q(stock__gte=0),
                name="chk_product_stock_gte_zero",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        self.business_id = (self.business_id or "").strip()
        self.sku = (self.sku or "").strip()
        self.name = (self.name or "").strip()

        if not self.business_id:
            raise ValidationError({"business_id": "business_id is required"})
        if not self.sku:
            raise ValidationError({"sku": "sku is required"})
        if not self.name:
            raise ValidationError({"name": "name is required"})

        if self.unit_price is None or Decimal(self.unit_price) < 0:
            raise ValidationError({"unit_price": "unit_price cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def total_stock_db(self) -> int:
        """Σ quantity_remaining across this product's lots (ledger of record)."""
        return (
            self.stock_batches.aggregate(total=Sum("quantity_remaining")).get("total")
            or 0
        )
