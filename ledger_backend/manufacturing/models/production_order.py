# manufacturing/models/production_order.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class ProductionOrder(models.Model):
    """
    Manufacturing run: quantity × BOM consumed, one finished lot produced.

    LIFECYCLE:
    PLANNED → IN_PROGRESS → COMPLETED
    PLANNED / IN_PROGRESS / COMPLETED → CANCELLED (completed runs are reversed)
    """

    STATUS_PLANNED = "PLANNED"
    STATUS_IN_PROGRESS = "IN_PROGRESS"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_PLANNED, "Planned"),
        (STATUS_IN_PROGRESS, "In Progress"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    business_id = models.CharField(max_length=64, db_index=True)
    order_number = models.CharField(max_length=20)

    bom = models.ForeignKey(
        "manufacturing.BillOfMaterials",
        on_delete=models.PROTECT,
        related_name="production_orders",
    )

    warehouse = models.ForeignKey(
        "products.Warehouse",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="production_orders",
    )

    quantity = models.PositiveIntegerField()
    planned_date = models.DateField(default=timezone.localdate)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PLANNED)

    material_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0.0000"))

    completed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.CharField(max_length=150, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "order_number"],
                name="uniq_production_order_business_number",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="chk_production_order_quantity_gt_zero",
            ),
        ]
        indexes = [
            models.Index(fields=["business_id", "status"]),
        ]

    def __str__(self):
        return f"{self.order_number} | {self.quantity} | {self.status}"

    def clean(self):
        if self.bom_id and self.bom.business_id != self.business_id:
            raise ValidationError({"bom": "Bill of materials belongs to another business"})
        if self.status == self.STATUS_COMPLETED and not self.completed_at:
            raise ValidationError({"completed_at": "completed_at is required when status is COMPLETED"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
