# manufacturing/models/bill_of_materials.py

from django.core.exceptions import ValidationError
from django.db import models


class BillOfMaterials(models.Model):
    """
    Recipe for ONE unit of a finished product.

    Lines list the raw materials (and integer quantities) consumed per unit.
    """

    business_id = models.CharField(max_length=64, db_index=True)

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="bills_of_materials",
    )

    name = models.CharField(max_length=150)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Bill of Materials"
        verbose_name_plural = "Bills of Materials"
        indexes = [
            models.Index(fields=["business_id", "product"]),
        ]

    def __str__(self):
        return f"{self.name} → {self.product}"

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "name is required"})
        if self.product_id and self.product.business_id != self.business_id:
            raise ValidationError({"product": "Product belongs to another business"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class BillOfMaterialsLine(models.Model):
    bom = models.ForeignKey(BillOfMaterials, on_delete=models.CASCADE, related_name="lines")

    material = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="used_in_boms",
    )

    quantity_per_unit = models.PositiveIntegerField()

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["bom", "material"], name="uniq_bom_line_material"),
            models.CheckConstraint(
                condition=models.Q(quantity_per_unit__gt=0),
                name="chk_bom_line_quantity_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.material} x {self.quantity_per_unit}"

    def clean(self):
        if self.material_id and self.bom_id:
            if self.material_id == self.bom.product_id:
                raise ValidationError({"material": "A product cannot consume itself"})
            if self.material.business_id != self.bom.business_id:
                raise ValidationError({"material": "Material belongs to another business"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
