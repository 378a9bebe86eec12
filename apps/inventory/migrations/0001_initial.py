import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("warehouse", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("on_hand", models.IntegerField(default=0)),
                ("reserved", models.IntegerField(default=0)),
                ("safety_stock", models.IntegerField(default=0, help_text="Minimum stock threshold")),
                ("reorder_point", models.IntegerField(default=0, help_text="Reorder trigger level")),
                (
                    "variant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_items",
                        to="catalog.productvariant",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_items",
                        to="warehouse.warehouse",
                    ),
                ),
            ],
            options={
                "verbose_name": "Inventory Item",
                "db_table": "inventory_items",
                "indexes": [
                    models.Index(fields=["warehouse", "variant"], name="inventory_item_wh_variant_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("variant", "warehouse"), name="inventory_item_variant_warehouse_uniq"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("reserved__gte", 0)), name="inventory_item_reserved_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("qty_change", models.IntegerField(help_text="Signed: + entering, - leaving")),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("adjustment", "Adjustment"),
                            ("sale", "Sale"),
                            ("return_in", "Return In"),
                            ("transfer_in", "Transfer In"),
                            ("transfer_out", "Transfer Out"),
                            ("reservation", "Reservation"),
                            ("release", "Release"),
                            ("damaged", "Damaged"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("reference_type", models.CharField(blank=True, max_length=64, null=True)),
                ("reference_id", models.CharField(blank=True, max_length=64, null=True)),
                ("unit_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("reason_code", models.CharField(blank=True, max_length=64, null=True)),
                ("note", models.CharField(blank=True, max_length=500, null=True)),
                ("performed_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_movements",
                        to="catalog.productvariant",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_movements",
                        to="warehouse.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_movements",
                "ordering": ["-performed_at", "-id"],
                "indexes": [
                    models.Index(fields=["variant", "performed_at"], name="inv_movement_variant_at_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="inv_movement_reference_idx"),
                    models.Index(fields=["variant", "warehouse"], name="inv_movement_pair_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryAdjustment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "adjustment_mode",
                    models.CharField(
                        choices=[
                            ("SET_ON_HAND", "Set on hand (absolute)"),
                            ("DELTA_ON_HAND", "Delta on hand (relative)"),
                        ],
                        max_length=20,
                    ),
                ),
                ("qty_before", models.IntegerField()),
                ("qty_change", models.IntegerField()),
                ("qty_after", models.IntegerField()),
                ("unit_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "reason_code",
                    models.CharField(
                        blank=True, help_text="e.g. DAMAGED, LOST, COUNT_CORRECTION", max_length=64, null=True
                    ),
                ),
                ("note", models.TextField(blank=True, null=True)),
                ("performed_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_adjustments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_adjustments",
                        to="catalog.productvariant",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_adjustments",
                        to="warehouse.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_adjustments",
                "ordering": ["-performed_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["variant", "warehouse", "performed_at"], name="inv_adjustment_pair_at_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transfer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("in_transit", "In Transit"),
                            ("received", "Received"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("dispatched_at", models.DateTimeField(blank=True, null=True)),
                ("received_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transfers_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "from_warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_out",
                        to="warehouse.warehouse",
                    ),
                ),
                (
                    "to_warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_in",
                        to="warehouse.warehouse",
                    ),
                ),
            ],
            options={
                "db_table": "transfers",
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("from_warehouse", models.F("to_warehouse")), _negated=True),
                        name="transfer_distinct_warehouses",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TransferItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("qty", models.PositiveIntegerField()),
                (
                    "transfer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="inventory.transfer",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfer_items",
                        to="catalog.productvariant",
                    ),
                ),
            ],
            options={
                "db_table": "transfer_items",
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("qty__gt", 0)), name="transfer_item_qty_positive"),
                ],
            },
        ),
    ]
