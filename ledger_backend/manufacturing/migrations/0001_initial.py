"""
======================================================
PATH: manufacturing/migrations/0001_initial.py
======================================================
MIGRATION: CREATE BillOfMaterials, BillOfMaterialsLine, ProductionOrder
"""

from __future__ import annotations

from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="BillOfMaterials",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("name", models.CharField(max_length=150)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bills_of_materials",
                    ),
                ),
            ],
            options={
                "verbose_name": "Bill of Materials",
                "verbose_name_plural": "Bills of Materials",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="BillOfMaterialsLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity_per_unit", models.PositiveIntegerField()),
                (
                    "bom",
                    models.ForeignKey(
                        to="manufacturing.billofmaterials",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                    ),
                ),
                (
                    "material",
                    models.ForeignKey(
                        to="products.product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="used_in_boms",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="ProductionOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("order_number", models.CharField(max_length=20)),
                ("quantity", models.PositiveIntegerField()),
                ("planned_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PLANNED", "Planned"),
                            ("IN_PROGRESS", "In Progress"),
                            ("COMPLETED", "Completed"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PLANNED",
                        max_length=16,
                    ),
                ),
                ("material_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("unit_cost", models.DecimalField(decimal_places=4, default=Decimal("0.0000"), max_digits=14)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "bom",
                    models.ForeignKey(
                        to="manufacturing.billofmaterials",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_orders",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="products.warehouse",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_orders",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.AddIndex(
            model_name="billofmaterials",
            index=models.Index(fields=["business_id", "product"], name="manufacturi_busines_2e28b4_idx"),
        ),
        migrations.AddConstraint(
            model_name="billofmaterialsline",
            constraint=models.UniqueConstraint(fields=["bom", "material"], name="uniq_bom_line_material"),
        ),
        migrations.AddConstraint(
            model_name="billofmaterialsline",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity_per_unit__gt=0),
                name="chk_bom_line_quantity_gt_zero",
            ),
        ),
        migrations.AddIndex(
            model_name="productionorder",
            index=models.Index(fields=["business_id", "status"], name="manufacturi_busines_7acc43_idx"),
        ),
        migrations.AddConstraint(
            model_name="productionorder",
            constraint=models.UniqueConstraint(
                fields=["business_id", "order_number"],
                name="uniq_production_order_business_number",
            ),
        ),
        migrations.AddConstraint(
            model_name="productionorder",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="chk_production_order_quantity_gt_zero",
            ),
        ),
    ]
