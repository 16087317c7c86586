# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Represents a single accounting transaction (journal header).

Guarantees:
- Never edited once created (corrections are delete + repost)
- Deleted only by the reversal handler (header + all lines together)
- (reference_type, reference_id) points back at the originating document
- entry_date is the accounting effective date (used for period locks and reports)
- party_type/party_id tag the customer or vendor whose balance the journal moves
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class JournalEntry(models.Model):
    PARTY_CUSTOMER = "customer"
    PARTY_VENDOR = "vendor"

    PARTY_TYPES = [
        (PARTY_CUSTOMER, "Customer"),
        (PARTY_VENDOR, "Vendor"),
    ]

    business_id = models.CharField(max_length=64, db_index=True)

    entry_date = models.DateField(
        default=timezone.localdate,
        help_text="Accounting effective date",
    )

    description = models.TextField(help_text="Narrative description of the journal entry")

    reference_type = models.CharField(max_length=32, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")

    party_type = models.CharField(
        max_length=16,
        choices=PARTY_TYPES,
        blank=True,
        default="",
    )
    party_id = models.CharField(max_length=64, blank=True, default="")

    created_by = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp when the journal entry was created",
    )

    class Meta:
        ordering = ["-entry_date", "-created_at"]
        indexes = [
            models.Index(fields=["business_id", "entry_date"]),
            models.Index(fields=["business_id", "reference_type", "reference_id"]),
            models.Index(fields=["business_id", "party_type", "party_id"]),
            models.Index(fields=["created_at"]),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"JournalEntry #{self.id} – {self.entry_date}"

    @property
    def reference(self) -> str:
        if not self.reference_type:
            return ""
        return f"{self.reference_type}:{self.reference_id}"

    def clean(self):
        self.business_id = (self.business_id or "").strip()
        if not self.business_id:
            raise ValidationError("Journal entry business_id is required")

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        self.reference_type = (self.reference_type or "").strip()
        self.reference_id = str(self.reference_id or "").strip()

        if bool(self.party_type) != bool(self.party_id):
            raise ValidationError("party_type and party_id must be set together")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalEntry records are never edited; reverse and repost instead")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "JournalEntry records can only be removed through the reversal handler"
        )
