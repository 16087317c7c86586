# accounting/models/chart.py

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models


class ChartOfAccounts(models.Model):
    """
    Represents the Chart of Accounts owned by ONE business (tenant).

    Rules:
    - Exactly one chart per business_id (DB-enforced).
    - Created by the chart registry on first use; never shared across tenants.
    """

    business_id = models.CharField(max_length=64, unique=True, db_index=True)
    name = models.CharField(max_length=100, default="Standard Chart")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Chart of Accounts"
        verbose_name_plural = "Charts of Accounts"
        ordering = ["business_id"]

    def __str__(self):
        return f"{self.name} ({self.business_id})"

    def clean(self):
        self.business_id = (self.business_id or "").strip()
        if not self.business_id:
            raise ValidationError({"business_id": "business_id is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
