"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Product, Warehouse, StockBatch, StockMovement,
StockAdjustment, StockTransfer

Lot invariants are enforced by the database as well:
- 0 <= quantity_remaining <= quantity_received, quantity_received > 0
- unit_cost >= 0
- Product.stock >= 0
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("sku", models.CharField(db_index=True, max_length=128)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("unit_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("stock", models.IntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Warehouse",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("code", models.CharField(max_length=32)),
                ("name", models.CharField(max_length=150)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="StockBatch",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                (
                    "batch_number",
                    models.CharField(
                        help_text="Supplier / production batch reference",
                        max_length=128,
                    ),
                ),
                ("manufacturing_date", models.DateField(default=django.utils.timezone.localdate)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                (
                    "quantity_received",
                    models.PositiveIntegerField(help_text="Quantity put into this lot (immutable)"),
                ),
                (
                    "quantity_remaining",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Remaining quantity (service-managed only)",
                    ),
                ),
                ("unit_cost", models.DecimalField(decimal_places=4, max_digits=14)),
                ("source_reference_type", models.CharField(blank=True, default="", max_length=32)),
                ("source_reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_batches",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="products.warehouse",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_batches",
                    ),
                ),
            ],
            options={
                "ordering": ["manufacturing_date", "created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                (
                    "movement_type",
                    models.CharField(choices=[("IN", "Stock In"), ("OUT", "Stock Out")], max_length=3),
                ),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("RECEIPT", "Stock Receipt"),
                            ("PRODUCTION", "Production Output"),
                            ("SALE", "Sale"),
                            ("CONSUMPTION", "Material Consumption"),
                            ("REVERSAL", "Reversal"),
                            ("ADJUSTMENT", "Manual Adjustment"),
                            ("TRANSFER", "Warehouse Transfer"),
                        ],
                        max_length=20,
                    ),
                ),
                ("quantity", models.PositiveIntegerField()),
                (
                    "unit_cost_snapshot",
                    models.DecimalField(
                        decimal_places=4,
                        help_text="Unit cost snapshot from batch at movement time (immutable).",
                        max_digits=14,
                    ),
                ),
                ("reference_type", models.CharField(blank=True, default="", max_length=32)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "batch",
                    models.ForeignKey(
                        to="products.stockbatch",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="StockAdjustment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("adjustment_number", models.CharField(max_length=20)),
                (
                    "quantity_change",
                    models.IntegerField(help_text="+N adds a lot, -N draws from existing lots"),
                ),
                ("unit_cost", models.DecimalField(decimal_places=4, default=Decimal("0.0000"), max_digits=14)),
                ("amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("adjustment_date", models.DateField(default=django.utils.timezone.localdate)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_adjustments",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="products.warehouse",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_adjustments",
                    ),
                ),
            ],
            options={
                "ordering": ["-adjustment_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="StockTransfer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("transfer_number", models.CharField(max_length=20)),
                ("quantity", models.PositiveIntegerField()),
                ("transfer_date", models.DateField(default=django.utils.timezone.localdate)),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_transfers",
                    ),
                ),
                (
                    "source_batch",
                    models.ForeignKey(
                        to="products.stockbatch",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_out",
                    ),
                ),
                (
                    "destination_batch",
                    models.ForeignKey(
                        to="products.stockbatch",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_in",
                    ),
                ),
                (
                    "from_warehouse",
                    models.ForeignKey(
                        to="products.warehouse",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_out",
                    ),
                ),
                (
                    "to_warehouse",
                    models.ForeignKey(
                        to="products.warehouse",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_in",
                    ),
                ),
            ],
            options={
                "ordering": ["-transfer_date", "-created_at"],
            },
        ),
        # Product
        migrations.AddIndex(
            model_name="product",
            index=models.Index(fields=["business_id", "sku"], name="products_pr_busines_ac437e_idx"),
        ),
        migrations.AddIndex(
            model_name="product",
            index=models.Index(fields=["business_id", "name"], name="products_pr_busines_e01e4a_idx"),
        ),
        migrations.AddConstraint(
            model_name="product",
            constraint=models.UniqueConstraint(fields=["business_id", "sku"], name="uniq_product_business_sku"),
        ),
        migrations.AddConstraint(
            model_name="product",
            constraint=models.CheckConstraint(condition=models.Q(stock__gte=0), name="chk_product_stock_gte_zero"),
        ),
        # Warehouse
        migrations.AddConstraint(
            model_name="warehouse",
            constraint=models.UniqueConstraint(fields=["business_id", "code"], name="uniq_warehouse_business_code"),
        ),
        # StockBatch
        migrations.AddIndex(
            model_name="stockbatch",
            index=models.Index(
                fields=["business_id", "product", "manufacturing_date"],
                name="products_st_busines_a09dc3_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="stockbatch",
            index=models.Index(
                fields=["business_id", "source_reference_type", "source_reference_id"],
                name="products_st_busines_acdbdb_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="stockbatch",
            index=models.Index(fields=["product", "warehouse"], name="products_st_product_9bf667_idx"),
        ),
        migrations.AddConstraint(
            model_name="stockbatch",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity_received__gt=0),
                name="chk_stockbatch_qty_received_gt_zero",
            ),
        ),
        migrations.AddConstraint(
            model_name="stockbatch",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity_remaining__gte=0),
                name="chk_stockbatch_qty_remaining_gte_zero",
            ),
        ),
        migrations.AddConstraint(
            model_name="stockbatch",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity_remaining__lte=models.F("quantity_received")),
                name="chk_stockbatch_remaining_lte_received",
            ),
        ),
        migrations.AddConstraint(
            model_name="stockbatch",
            constraint=models.CheckConstraint(
                condition=models.Q(unit_cost__gte=0),
                name="chk_stockbatch_unit_cost_gte_zero",
            ),
        ),
        # StockMovement
        migrations.AddIndex(
            model_name="stockmovement",
            index=models.Index(
                fields=["business_id", "reference_type", "reference_id"],
                name="products_st_busines_84d72f_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="stockmovement",
            index=models.Index(fields=["product", "created_at"], name="products_st_product_a806c1_idx"),
        ),
        migrations.AddIndex(
            model_name="stockmovement",
            index=models.Index(fields=["batch", "created_at"], name="products_st_batch_i_490652_idx"),
        ),
        migrations.AddIndex(
            model_name="stockmovement",
            index=models.Index(fields=["reason"], name="products_st_reason_f8782e_idx"),
        ),
        # StockAdjustment
        migrations.AddIndex(
            model_name="stockadjustment",
            index=models.Index(fields=["business_id", "adjustment_date"], name="products_st_busines_bf8f57_idx"),
        ),
        migrations.AddIndex(
            model_name="stockadjustment",
            index=models.Index(fields=["product", "created_at"], name="products_st_product_02bcf3_idx"),
        ),
        migrations.AddConstraint(
            model_name="stockadjustment",
            constraint=models.UniqueConstraint(
                fields=["business_id", "adjustment_number"],
                name="uniq_stock_adjustment_business_number",
            ),
        ),
        migrations.AddConstraint(
            model_name="stockadjustment",
            constraint=models.CheckConstraint(
                condition=~models.Q(quantity_change=0),
                name="chk_stock_adjustment_quantity_nonzero",
            ),
        ),
        # StockTransfer
        migrations.AddIndex(
            model_name="stocktransfer",
            index=models.Index(fields=["business_id", "transfer_date"], name="products_st_busines_88308b_idx"),
        ),
        migrations.AddConstraint(
            model_name="stocktransfer",
            constraint=models.UniqueConstraint(
                fields=["business_id", "transfer_number"],
                name="uniq_stock_transfer_business_number",
            ),
        ),
        migrations.AddConstraint(
            model_name="stocktransfer",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="chk_stock_transfer_quantity_gt_zero",
            ),
        ),
        migrations.AddConstraint(
            model_name="stocktransfer",
            constraint=models.CheckConstraint(
                condition=~models.Q(from_warehouse=models.F("to_warehouse")),
                name="chk_stock_transfer_distinct_warehouses",
            ),
        ),
    ]
