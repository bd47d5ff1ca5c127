import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

ORDER_STATUS_CHOICES = [
    ("PENDING", "Pending"),
    ("PROCESSING", "Processing"),
    ("SHIPPED", "Shipped"),
    ("DELIVERED", "Delivered"),
    ("CANCELLED", "Cancelled"),
]
PAYMENT_STATUS_CHOICES = [
    ("PENDING", "Pending"),
    ("PAID", "Paid"),
    ("FAILED", "Failed"),
    ("EXPIRED", "Expired"),
    ("PARTIALLY_REFUNDED", "Partially refunded"),
    ("REFUNDED", "Refunded"),
]
FULFILLMENT_STATUS_CHOICES = [
    ("UNFULFILLED", "Unfulfilled"),
    ("PROCESSING", "Processing"),
    ("SHIPPED", "Shipped"),
    ("DELIVERED", "Delivered"),
    ("RETURNED", "Returned"),
]
REFUND_STATUS_CHOICES = [
    ("REQUESTED", "Requested"),
    ("PROCESSED", "Processed"),
    ("REJECTED", "Rejected"),
    ("CANCELLED", "Cancelled"),
]
REFUND_REASON_CHOICES = [
    ("CUSTOMER_REQUEST", "Customer request"),
    ("DEFECTIVE", "Defective product"),
    ("WRONG_ITEM", "Wrong item shipped"),
    ("LOST_IN_TRANSIT", "Lost in transit"),
    ("FRAUD", "Fraud"),
    ("OTHER", "Other"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "order_number",
                    models.CharField(
                        blank=True,
                        help_text="System-generated public order number",
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("customer_email", models.EmailField(max_length=254)),
                ("customer_name", models.CharField(blank=True, default="", max_length=120)),
                ("subtotal", models.PositiveIntegerField(default=0)),
                ("shipping_cost", models.PositiveIntegerField(default=0)),
                ("total", models.PositiveIntegerField(default=0)),
                ("currency", models.CharField(default="eur", max_length=3)),
                ("status", models.CharField(choices=ORDER_STATUS_CHOICES, default="PENDING", max_length=16)),
                (
                    "payment_status",
                    models.CharField(choices=PAYMENT_STATUS_CHOICES, default="PENDING", max_length=24),
                ),
                (
                    "fulfillment_status",
                    models.CharField(choices=FULFILLMENT_STATUS_CHOICES, default="UNFULFILLED", max_length=16),
                ),
                ("shipping_address_line1", models.CharField(blank=True, default="", max_length=255)),
                ("shipping_address_line2", models.CharField(blank=True, default="", max_length=255)),
                ("shipping_city", models.CharField(blank=True, default="", max_length=120)),
                ("shipping_postal_code", models.CharField(blank=True, default="", max_length=10)),
                ("shipping_country", models.CharField(default="FR", max_length=2)),
                ("shipping_zone", models.CharField(blank=True, default="", max_length=32)),
                ("shipping_department", models.CharField(blank=True, default="", max_length=3)),
                ("carrier", models.CharField(blank=True, default="", max_length=32)),
                ("tracking_number", models.CharField(blank=True, default="", max_length=64)),
                ("tracking_url", models.URLField(blank=True, default="", max_length=500)),
                ("checkout_session_id", models.CharField(blank=True, db_index=True, default="", max_length=255)),
                ("payment_intent_id", models.CharField(blank=True, default="", max_length=255)),
                ("invoice_number", models.CharField(blank=True, default="", max_length=64)),
                ("invoice_status", models.CharField(blank=True, default="", max_length=32)),
                ("invoice_generated_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("returned_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="orders_orde_created_4c1a7e_idx"),
                    models.Index(fields=["status"], name="orders_orde_status_9b2f13_idx"),
                    models.Index(fields=["payment_status"], name="orders_orde_payment_6e8d20_idx"),
                    models.Index(fields=["order_number"], name="orders_orde_order_n_1a5c77_idx"),
                    models.Index(fields=["user", "created_at"], name="orders_orde_user_id_3d9e42_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_title", models.CharField(max_length=255)),
                ("sku_code", models.CharField(blank=True, default="", max_length=128)),
                ("sku_color", models.CharField(blank=True, default="", max_length=64)),
                ("sku_material", models.CharField(blank=True, default="", max_length=64)),
                ("sku_size", models.CharField(blank=True, default="", max_length=32)),
                (
                    "unit_price",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "quantity",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "sku",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_items",
                        to="products.productsku",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["order"], name="orders_orde_order_i_7c3b15_idx"),
                    models.Index(fields=["sku"], name="orders_orde_sku_id_5f0a68_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderHistory",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("note", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("CREATED", "Created"),
                            ("PAYMENT_CONFIRMED", "Payment confirmed"),
                            ("PAYMENT_FAILED", "Payment failed"),
                            ("PAYMENT_EXPIRED", "Payment expired"),
                            ("MARKED_PAID", "Marked as paid"),
                            ("MARKED_PROCESSING", "Marked as processing"),
                            ("MARKED_SHIPPED", "Marked as shipped"),
                            ("MARKED_DELIVERED", "Marked as delivered"),
                            ("REVERTED_TO_PROCESSING", "Reverted to processing"),
                            ("TRACKING_UPDATED", "Tracking updated"),
                            ("CANCELLED", "Cancelled"),
                            ("RETURNED", "Returned"),
                            ("REFUND_APPLIED", "Refund applied"),
                        ],
                        max_length=32,
                    ),
                ),
                ("from_status", models.CharField(blank=True, default="", max_length=16)),
                ("to_status", models.CharField(blank=True, default="", max_length=16)),
                ("from_payment_status", models.CharField(blank=True, default="", max_length=24)),
                ("to_payment_status", models.CharField(blank=True, default="", max_length=24)),
                ("from_fulfillment_status", models.CharField(blank=True, default="", max_length=16)),
                ("to_fulfillment_status", models.CharField(blank=True, default="", max_length=16)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["order", "created_at"], name="orders_orde_order_i_4e6a02_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.PositiveIntegerField(help_text="Refund amount in minor units.")),
                ("currency", models.CharField(default="eur", max_length=3)),
                (
                    "reason",
                    models.CharField(choices=REFUND_REASON_CHOICES, default="CUSTOMER_REQUEST", max_length=32),
                ),
                ("note", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=REFUND_STATUS_CHOICES, default="REQUESTED", max_length=16)),
                (
                    "gateway_refund_id",
                    models.CharField(
                        blank=True,
                        help_text="Gateway refund identifier (set once the gateway accepted the refund).",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "processing_started_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Set when a gateway refund call starts; cleared only if the gateway declined.",
                        null=True,
                    ),
                ),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="refunds",
                        to="orders.order",
                    ),
                ),
                (
                    "requested_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="requested_refunds",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "resolved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resolved_refunds",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order", "status"], name="orders_refu_order_i_8a4e31_idx"),
                    models.Index(fields=["status", "created_at"], name="orders_refu_status_2b7f94_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RefundItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField()),
                ("amount", models.PositiveIntegerField()),
                ("restock", models.BooleanField(default=False)),
                (
                    "order_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_items",
                        to="orders.orderitem",
                    ),
                ),
                (
                    "refund",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.refund",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("refund", "order_item"),
                        name="uniq_refund_item_per_order_item",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RefundHistory",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("note", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("CREATED", "Created"),
                            ("PROCESSED", "Processed"),
                            ("REJECTED", "Rejected"),
                            ("CANCELLED", "Cancelled"),
                            ("GATEWAY_PENDING", "Gateway pending"),
                            ("GATEWAY_FAILED", "Gateway failed"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "refund",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="orders.refund",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["refund", "created_at"], name="orders_refu_refund__9d1c58_idx"),
                ],
            },
        ),
    ]
