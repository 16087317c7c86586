# accounting/models/ledger.py

"""
======================================================
PATH: accounting/models/ledger.py
======================================================
LEDGER ENTRY MODEL (GL LINE)

Atomic debit or credit posting to a single account.

Guarantees:
- Separate debit and credit columns, both >= 0, exactly one non-zero
  (never netted into a signed amount, so raw totals stay auditable)
- transaction_date mirrors the journal's entry_date (reports filter on it)
- Never edited; removed only together with its journal by the reversal handler
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.journal import JournalEntry

ZERO = Decimal("0.00")


class LedgerEntry(models.Model):
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    debit = models.DecimalField(max_digits=16, decimal_places=2, default=ZERO)
    credit = models.DecimalField(max_digits=16, decimal_places=2, default=ZERO)

    transaction_date = models.DateField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        ordering = ["transaction_date", "id"]
        indexes = [
            models.Index(fields=["account", "transaction_date"]),
            models.Index(fields=["journal_entry"]),
            models.Index(fields=["transaction_date"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_ledger_entry_non_negative",
            ),
            models.CheckConstraint(
                condition=(Q(debit__gt=0) & Q(credit=0)) | (Q(debit=0) & Q(credit__gt=0)),
                name="chk_ledger_entry_one_side",
            ),
        ]

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit > ZERO else f"Cr {self.credit}"
        return f"{side} → {self.account}"

    def clean(self):
        debit = self.debit if self.debit is not None else ZERO
        credit = self.credit if self.credit is not None else ZERO

        if debit < ZERO or credit < ZERO:
            raise ValidationError("Debit or credit cannot be negative")

        if (debit > ZERO) == (credit > ZERO):
            raise ValidationError("Exactly one of debit/credit must be non-zero")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("LedgerEntry records are never edited")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "LedgerEntry records can only be removed through the reversal handler"
        )
