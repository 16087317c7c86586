"""
======================================================
PATH: payments/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Payment (customer receipts + vendor payments)
"""

from __future__ import annotations

from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("parties", "0001_initial"),
        ("purchases", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("payment_number", models.CharField(max_length=20)),
                (
                    "direction",
                    models.CharField(
                        choices=[
                            ("RECEIPT", "Receipt (from customer)"),
                            ("PAYMENT", "Payment (to vendor)"),
                        ],
                        max_length=10,
                    ),
                ),
                ("payment_date", models.DateField(default=django.utils.timezone.localdate)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("bank", "Bank")],
                        default="cash",
                        max_length=20,
                    ),
                ),
                ("narration", models.CharField(blank=True, default="", max_length=255)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "customer",
                    models.ForeignKey(
                        to="parties.customer",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        to="parties.vendor",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                    ),
                ),
                (
                    "invoice",
                    models.ForeignKey(
                        to="sales.invoice",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        help_text="Optional: receipt for a specific invoice",
                    ),
                ),
                (
                    "purchase_order",
                    models.ForeignKey(
                        to="purchases.purchaseorder",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        help_text="Optional: payment for a specific purchase order",
                    ),
                ),
            ],
            options={
                "ordering": ["-payment_date", "-created_at"],
            },
        ),
        migrations.AddIndex(
            model_name="payment",
            index=models.Index(fields=["business_id", "payment_date"], name="payments_pa_busines_de4c07_idx"),
        ),
        migrations.AddIndex(
            model_name="payment",
            index=models.Index(fields=["customer", "created_at"], name="payments_pa_custome_c3a6fc_idx"),
        ),
        migrations.AddIndex(
            model_name="payment",
            index=models.Index(fields=["vendor", "created_at"], name="payments_pa_vendor__6d1eb2_idx"),
        ),
        migrations.AddConstraint(
            model_name="payment",
            constraint=models.UniqueConstraint(
                fields=["business_id", "payment_number"],
                name="uniq_payment_business_number",
            ),
        ),
        migrations.AddConstraint(
            model_name="payment",
            constraint=models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="payment_amount_gt_zero",
            ),
        ),
    ]
