import re
import uuid

from django.db import IntegrityError, models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from products.models import Product

from .conf import engine_settings


class Order(models.Model):
    # --- Status Fields ---
    class OrderStatus(models.TextChoices):
        CREATING = "CREATING", _("Creating")  # Draft cart synced from a terminal
        PENDING = "PENDING", _("Pending")  # Awaiting staff verification
        CONFIRMED = "CONFIRMED", _("Confirmed")
        PREPARING = "PREPARING", _("Preparing")
        READY = "READY", _("Ready")
        COMPLETED = "COMPLETED", _("Completed")
        HOLD = "HOLD", _("Hold")  # Parked, resumes back to PENDING
        CANCELLED = "CANCELLED", _("Cancelled")

    class OrderCreator(models.TextChoices):
        STAFF = "STAFF", _("Staff")
        CUSTOMER = "CUSTOMER", _("Customer")

    class PaymentMethod(models.TextChoices):
        CASH = "CASH", _("Cash")
        CARD = "CARD", _("Card")
        QR = "QR", _("QR Code")

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        SUCCESS = "SUCCESS", _("Success")
        FAILED = "FAILED", _("Failed")

    class CancelReasonType(models.TextChoices):
        OUT_OF_STOCK = "OUT_OF_STOCK", _("Out of Stock")
        CUSTOMER_REQUEST = "CUSTOMER_REQUEST", _("Customer Request")
        SYSTEM_ERROR = "SYSTEM_ERROR", _("System Error")
        OTHER = "OTHER", _("Other")

    class RefundMethod(models.TextChoices):
        CASH = "CASH", _("Cash")
        CARD = "CARD", _("Card")
        QR = "QR", _("QR Code")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(
        max_length=50, unique=True, editable=False, blank=True
    )
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.CREATING
    )
    version = models.PositiveIntegerField(
        default=1, help_text=_("Bumped on every guarded write (optimistic lock).")
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    # --- Customer context ---
    customer_name = models.CharField(max_length=255, blank=True, null=True)
    customer_phone = models.CharField(max_length=32, blank=True, null=True)
    customer_table = models.CharField(max_length=32, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    label = models.CharField(
        max_length=255,
        blank=True,
        null=True,
        help_text=_("Customer-facing display name, set by split and merge."),
    )

    # --- Creator / draft session ---
    order_creator = models.CharField(
        max_length=10, choices=OrderCreator.choices, default=OrderCreator.STAFF
    )
    order_creator_name = models.CharField(max_length=255, blank=True, null=True)
    session_key = models.CharField(
        max_length=255,
        blank=True,
        null=True,
        db_index=True,
        help_text=_("Terminal session owning the draft while the order is CREATING."),
    )

    # --- Payment ---
    payment_method = models.CharField(
        max_length=10, choices=PaymentMethod.choices, blank=True, null=True
    )
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    # --- Hold ---
    hold_name = models.CharField(max_length=255, blank=True, null=True)
    held_by_id = models.CharField(max_length=64, blank=True, null=True)
    held_by_name = models.CharField(max_length=255, blank=True, null=True)
    held_at = models.DateTimeField(null=True, blank=True)
    resumed_by_id = models.CharField(max_length=64, blank=True, null=True)
    resumed_by_name = models.CharField(max_length=255, blank=True, null=True)
    resumed_at = models.DateTimeField(null=True, blank=True)

    # --- Confirmation ---
    confirmed_by_id = models.CharField(max_length=64, blank=True, null=True)
    confirmed_by_name = models.CharField(max_length=255, blank=True, null=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)

    # --- Cancellation ---
    cancel_reason = models.TextField(blank=True, null=True)
    cancel_reason_type = models.CharField(
        max_length=20, choices=CancelReasonType.choices, blank=True, null=True
    )
    refund_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    refund_method = models.CharField(
        max_length=10, choices=RefundMethod.choices, blank=True, null=True
    )
    cancelled_by_id = models.CharField(max_length=64, blank=True, null=True)
    cancelled_by_name = models.CharField(max_length=255, blank=True, null=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    # --- Structural linkage ---
    split_from = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="split_orders",
    )
    merged_into = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="merged_sources",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "order_number"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
            models.Index(fields=["payment_status", "status"], name="order_pay_status_idx"),
            models.Index(fields=["order_creator", "order_creator_name"], name="order_creator_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["session_key"],
                condition=models.Q(status="CREATING", session_key__isnull=False),
                name="unique_draft_per_session",
            ),
        ]

    def __str__(self):
        return f"Order {self.order_number or self.pk} - {self.status}"

    @property
    def state(self):
        """Typed view of the current status carrying only the fields it uses."""
        from .states import state_of

        return state_of(self)

    @property
    def display_name(self):
        return self.label or self.order_number

    @property
    def is_paid(self):
        return self.payment_status == self.PaymentStatus.SUCCESS

    def save(self, *args, **kwargs):
        # Generate order_number only if it's not already set
        if not self.order_number:
            max_retries = 5
            for _attempt in range(max_retries):
                self.order_number = self._generate_sequential_order_number()
                try:
                    with transaction.atomic():
                        super().save(*args, **kwargs)
                    break
                except IntegrityError as e:
                    if "order_number" not in str(e).lower():
                        self.order_number = ""
                        raise
                    # Another process took the number, retry
                    continue
            else:
                self.order_number = ""
                raise IntegrityError(
                    "Failed to generate a unique order number after multiple retries."
                )
        else:
            super().save(*args, **kwargs)

    def _generate_sequential_order_number(self):
        """
        Generates the next sequential order number, e.g. ORD-00001, ORD-00002.

        Numbers come from a per-prefix counter row, so a number stays used
        even after its order (typically an abandoned draft) is deleted.
        """
        prefix = engine_settings.ORDER_NUMBER_PREFIX
        digits = engine_settings.ORDER_NUMBER_DIGITS
        next_number = OrderNumberSequence.next_value(prefix)
        return f"{prefix}{next_number:0{digits}d}"


class OrderNumberSequence(models.Model):
    """Last order number issued for each order number prefix."""

    prefix = models.CharField(max_length=20, primary_key=True)
    last_value = models.PositiveBigIntegerField(default=0)

    class Meta:
        verbose_name = _("Order Number Sequence")
        verbose_name_plural = _("Order Number Sequences")

    def __str__(self):
        return f"{self.prefix}{self.last_value}"

    @classmethod
    def next_value(cls, prefix: str) -> int:
        with transaction.atomic():
            sequence, _created = cls.objects.select_for_update().get_or_create(
                prefix=prefix,
                defaults={"last_value": cls._highest_issued(prefix)},
            )
            sequence.last_value += 1
            sequence.save(update_fields=["last_value"])
        return sequence.last_value

    @staticmethod
    def _highest_issued(prefix: str) -> int:
        # Seeds a new counter from orders numbered before it existed.
        # Compared numerically: ORD-100000 sorts below ORD-99999 as text.
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        highest = 0
        numbers = Order.objects.filter(order_number__startswith=prefix).values_list(
            "order_number", flat=True
        )
        for order_number in numbers.iterator():
            match = pattern.match(order_number)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="order_items"
    )
    quantity = models.PositiveIntegerField(default=1)

    # Price snapshot
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Unit price at the time the item was added."),
    )
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    selected_size = models.CharField(max_length=50, blank=True, null=True)
    selected_toppings = models.JSONField(default=list, blank=True)
    note = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order"], name="item_order_idx"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product.name} in {self.order}"


class OrderReturn(models.Model):
    class ReturnType(models.TextChoices):
        FULL = "FULL", _("Full")
        PARTIAL = "PARTIAL", _("Partial")

    class ReturnReason(models.TextChoices):
        DEFECTIVE = "DEFECTIVE", _("Defective")
        WRONG_ITEM = "WRONG_ITEM", _("Wrong Item")
        CUSTOMER_REQUEST = "CUSTOMER_REQUEST", _("Customer Request")
        OTHER = "OTHER", _("Other")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="returns")
    return_type = models.CharField(max_length=10, choices=ReturnType.choices)
    return_reason = models.CharField(max_length=20, choices=ReturnReason.choices)
    refund_method = models.CharField(max_length=10, choices=Order.RefundMethod.choices)
    notes = models.TextField(blank=True, null=True)
    processed_by_id = models.CharField(max_length=64, blank=True, null=True)
    processed_by_name = models.CharField(max_length=255, blank=True, null=True)
    total_refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = _("Order Return")
        verbose_name_plural = _("Order Returns")

    def __str__(self):
        return f"{self.return_type} return for {self.order}"


class OrderReturnItem(models.Model):
    order_return = models.ForeignKey(
        OrderReturn, on_delete=models.CASCADE, related_name="items"
    )
    order_item = models.ForeignKey(
        OrderItem, on_delete=models.PROTECT, related_name="return_lines"
    )
    quantity = models.PositiveIntegerField()
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    class Meta:
        verbose_name = _("Order Return Item")
        verbose_name_plural = _("Order Return Items")
        constraints = [
            models.UniqueConstraint(
                fields=["order_return", "order_item"],
                name="unique_item_per_return",
            ),
        ]

    def __str__(self):
        return f"{self.quantity} x item {self.order_item_id}"
