# parties/models/customer.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Customer(models.Model):
    """
    A business's customer.

    outstanding_balance is the receivable counter cache:
    - += invoice total when a credit invoice is posted
    - -= receipt amount when a payment is recorded
    Changed ONLY through parties.services.balances.
    """

    business_id = models.CharField(max_length=64, db_index=True)

    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")

    credit_limit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    outstanding_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["business_id", "name"]),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "name is required"})
        if self.credit_limit is not None and self.credit_limit < 0:
            raise ValidationError({"credit_limit": "credit_limit cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
