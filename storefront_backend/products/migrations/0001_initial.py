import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(db_index=True, max_length=255)),
                ("slug", models.SlugField(max_length=255, unique=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ProductSku",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(db_index=True, max_length=128, unique=True)),
                ("color", models.CharField(blank=True, default="", max_length=64)),
                ("material", models.CharField(blank=True, default="", max_length=64)),
                ("size", models.CharField(blank=True, default="", max_length=32)),
                ("price", models.PositiveIntegerField(help_text="Unit price in minor units (cents).")),
                ("inventory", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="skus",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["product", "sku"],
                "indexes": [
                    models.Index(fields=["sku"], name="products_pr_sku_8f1c2e_idx"),
                    models.Index(fields=["product", "is_active"], name="products_pr_product_3b7d41_idx"),
                ],
            },
        ),
    ]
