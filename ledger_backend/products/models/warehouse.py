# products/models/warehouse.py

from django.core.exceptions import ValidationError
from django.db import models


class Warehouse(models.Model):
    """Physical stock location. Lots are optionally scoped to one."""

    business_id = models.CharField(max_length=64, db_index=True)
    code = models.CharField(max_length=32)
    name = models.CharField(max_length=150)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["business_id", "code"],
                name="uniq_warehouse_business_code",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()
        if not self.code:
            raise ValidationError({"code": "code is required"})
        if not self.name:
            raise ValidationError({"name": "name is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
