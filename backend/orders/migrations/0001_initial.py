import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_number", models.CharField(blank=True, editable=False, max_length=50, unique=True)),
                ("status", models.CharField(choices=[("CREATING", "Creating"), ("PENDING", "Pending"), ("CONFIRMED", "Confirmed"), ("PREPARING", "Preparing"), ("READY", "Ready"), ("COMPLETED", "Completed"), ("HOLD", "Hold"), ("CANCELLED", "Cancelled")], default="CREATING", max_length=20)),
                ("version", models.PositiveIntegerField(default=1, help_text="Bumped on every guarded write (optimistic lock).")),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("customer_name", models.CharField(blank=True, max_length=255, null=True)),
                ("customer_phone", models.CharField(blank=True, max_length=32, null=True)),
                ("customer_table", models.CharField(blank=True, max_length=32, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("label", models.CharField(blank=True, help_text="Customer-facing display name, set by split and merge.", max_length=255, null=True)),
                ("order_creator", models.CharField(choices=[("STAFF", "Staff"), ("CUSTOMER", "Customer")], default="STAFF", max_length=10)),
                ("order_creator_name", models.CharField(blank=True, max_length=255, null=True)),
                ("session_key", models.CharField(blank=True, db_index=True, help_text="Terminal session owning the draft while the order is CREATING.", max_length=255, null=True)),
                ("payment_method", models.CharField(blank=True, choices=[("CASH", "Cash"), ("CARD", "Card"), ("QR", "QR Code")], max_length=10, null=True)),
                ("payment_status", models.CharField(choices=[("PENDING", "Pending"), ("SUCCESS", "Success"), ("FAILED", "Failed")], default="PENDING", max_length=10)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("hold_name", models.CharField(blank=True, max_length=255, null=True)),
                ("held_by_id", models.CharField(blank=True, max_length=64, null=True)),
                ("held_by_name", models.CharField(blank=True, max_length=255, null=True)),
                ("held_at", models.DateTimeField(blank=True, null=True)),
                ("resumed_by_id", models.CharField(blank=True, max_length=64, null=True)),
                ("resumed_by_name", models.CharField(blank=True, max_length=255, null=True)),
                ("resumed_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_by_id", models.CharField(blank=True, max_length=64, null=True)),
                ("confirmed_by_name", models.CharField(blank=True, max_length=255, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.TextField(blank=True, null=True)),
                ("cancel_reason_type", models.CharField(blank=True, choices=[("OUT_OF_STOCK", "Out of Stock"), ("CUSTOMER_REQUEST", "Customer Request"), ("SYSTEM_ERROR", "System Error"), ("OTHER", "Other")], max_length=20, null=True)),
                ("refund_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("refund_method", models.CharField(blank=True, choices=[("CASH", "Cash"), ("CARD", "Card"), ("QR", "QR Code")], max_length=10, null=True)),
                ("cancelled_by_id", models.CharField(blank=True, max_length=64, null=True)),
                ("cancelled_by_name", models.CharField(blank=True, max_length=255, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("merged_into", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="merged_sources", to="orders.order")),
                ("split_from", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="split_orders", to="orders.order")),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at", "order_number"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
                    models.Index(fields=["payment_status", "status"], name="order_pay_status_idx"),
                    models.Index(fields=["order_creator", "order_creator_name"], name="order_creator_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "CREATING"), ("session_key__isnull", False)), fields=("session_key",), name="unique_draft_per_session"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("price", models.DecimalField(decimal_places=2, help_text="Unit price at the time the item was added.", max_digits=10)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                ("selected_size", models.CharField(blank=True, max_length=50, null=True)),
                ("selected_toppings", models.JSONField(blank=True, default=list)),
                ("note", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="order_items", to="products.product")),
            ],
            options={
                "verbose_name": "Order Item",
                "verbose_name_plural": "Order Items",
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["order"], name="item_order_idx")],
            },
        ),
        migrations.CreateModel(
            name="OrderReturn",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("return_type", models.CharField(choices=[("FULL", "Full"), ("PARTIAL", "Partial")], max_length=10)),
                ("return_reason", models.CharField(choices=[("DEFECTIVE", "Defective"), ("WRONG_ITEM", "Wrong Item"), ("CUSTOMER_REQUEST", "Customer Request"), ("OTHER", "Other")], max_length=20)),
                ("refund_method", models.CharField(choices=[("CASH", "Cash"), ("CARD", "Card"), ("QR", "QR Code")], max_length=10)),
                ("notes", models.TextField(blank=True, null=True)),
                ("processed_by_id", models.CharField(blank=True, max_length=64, null=True)),
                ("processed_by_name", models.CharField(blank=True, max_length=255, null=True)),
                ("total_refund_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="returns", to="orders.order")),
            ],
            options={
                "verbose_name": "Order Return",
                "verbose_name_plural": "Order Returns",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OrderReturnItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField()),
                ("refund_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("order_item", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="return_lines", to="orders.orderitem")),
                ("order_return", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.orderreturn")),
            ],
            options={
                "verbose_name": "Order Return Item",
                "verbose_name_plural": "Order Return Items",
                "constraints": [
                    models.UniqueConstraint(fields=("order_return", "order_item"), name="unique_item_per_return"),
                ],
            },
        ),
    ]
