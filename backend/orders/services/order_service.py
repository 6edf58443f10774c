from datetime import date, datetime, time, timedelta
from typing import Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from orders.calculators import OrderCalculator
from orders.conf import engine_settings, resolve_display_name
from orders.exceptions import InvalidTransition, NotFound, ValidationError
from orders.models import Order
from orders.services.draft_service import DraftService
from orders.services.item_service import OrderItemService
from orders.services.notification_service import OrderEventKind, publish_order_event
from orders.services.transition_service import OrderTransitionService
from orders.signals import order_completed, order_finalized, send_order_signal

logger = logging.getLogger(__name__)

Status = Order.OrderStatus


class OrderService:
    """Core service for order lifecycle management - finalizing, verifying, progressing orders."""

    # Targets reachable through plain status progression
    PROGRESSION_STATUSES = (
        Status.CONFIRMED,
        Status.PREPARING,
        Status.READY,
        Status.COMPLETED,
    )

    DEFAULT_REJECT_REASON = "Rejected by staff"

    CONTEXT_FIELDS = (
        "customer_name",
        "customer_phone",
        "customer_table",
        "notes",
        "payment_method",
    )

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    @staticmethod
    def get_order(order_id) -> Order:
        try:
            return Order.objects.prefetch_related("items").get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            # Malformed UUIDs surface as Django's ValidationError
            raise NotFound("Order", order_id)

    @staticmethod
    def get_by_order_number(order_number: str) -> Order:
        try:
            return Order.objects.prefetch_related("items").get(order_number=order_number)
        except Order.DoesNotExist:
            raise NotFound("Order", order_number)

    @staticmethod
    def list_orders(
        status=None,
        payment_method=None,
        payment_status=None,
        start_date=None,
        end_date=None,
        order_creator=None,
    ):
        """
        Orders newest first, optionally filtered. Dates are inclusive calendar days.
        """
        queryset = Order.objects.prefetch_related("items")
        if status:
            queryset = queryset.filter(status=status)
        if payment_method:
            queryset = queryset.filter(payment_method=payment_method)
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)
        if order_creator:
            queryset = queryset.filter(order_creator=order_creator)
        if start_date:
            queryset = queryset.filter(created_at__gte=OrderService._day_start(start_date))
        if end_date:
            queryset = queryset.filter(
                created_at__lt=OrderService._day_start(end_date) + timedelta(days=1)
            )
        return queryset.order_by("-created_at")

    @staticmethod
    def get_today_orders():
        """
        Today's orders. Drafts only show while they are fresh, so abandoned
        carts do not clutter the board.
        """
        now = timezone.now()
        day_start = OrderService._day_start(timezone.localdate())
        draft_cutoff = now - timedelta(minutes=engine_settings.DRAFT_MAX_AGE_MINUTES)
        queryset = Order.objects.filter(created_at__gte=day_start).exclude(
            status=Status.CREATING, created_at__lt=draft_cutoff
        )
        return queryset.prefetch_related("items").order_by("-created_at")

    @staticmethod
    def get_orders_by_date(day):
        if isinstance(day, str):
            try:
                day = date.fromisoformat(day)
            except ValueError:
                raise ValidationError(f"'{day}' is not a valid date", {"field": "date"})
        start = OrderService._day_start(day)
        return (
            Order.objects.filter(created_at__gte=start, created_at__lt=start + timedelta(days=1))
            .prefetch_related("items")
            .order_by("-created_at")
        )

    @staticmethod
    def _day_start(day) -> datetime:
        if isinstance(day, datetime):
            day = day.date()
        return timezone.make_aware(datetime.combine(day, time.min))

    # ------------------------------------------------------------------ #
    # Finalize
    # ------------------------------------------------------------------ #

    @staticmethod
    def create_order(data: dict) -> Order:
        """
        Finalize a cart into an order in one step.

        Clears the creator session's drafts first, then creates the order as
        PENDING (customer) or CONFIRMED (staff).
        """
        order_creator = data.get("order_creator")
        if order_creator not in Order.OrderCreator.values:
            raise ValidationError(
                f"'{order_creator}' is not a valid order creator", {"field": "order_creator"}
            )
        items_data = data.get("items") or []
        if not items_data:
            raise ValidationError("An order needs at least one item", {"field": "items"})
        OrderService._validate_payment_fields(data)

        with transaction.atomic():
            DraftService.delete_draft_orders(
                order_creator, data.get("order_creator_name"), data.get("session_key")
            )

            status = OrderTransitionService.finalize_target(order_creator)
            order = Order(
                status=status,
                order_creator=order_creator,
                order_creator_name=data.get("order_creator_name") or None,
                payment_status=data.get("payment_status") or Order.PaymentStatus.PENDING,
            )
            for field in OrderService.CONTEXT_FIELDS:
                setattr(order, field, data.get(field) or None)
            if order.payment_status == Order.PaymentStatus.SUCCESS:
                order.paid_at = timezone.now()
            if status == Status.CONFIRMED:
                OrderService._stamp_confirmation(
                    order, data.get("confirmed_by_id"), data.get("order_creator_name")
                )
            order.save()

            items = OrderItemService.build_items(order, items_data)
            order.total_amount = OrderCalculator.items_total(items)
            order.save(update_fields=["total_amount", "updated_at"])

            send_order_signal(order_finalized, sender=Order, order=order)
            publish_order_event(
                OrderEventKind.ORDER_CREATED, order, total_amount=order.total_amount
            )

        logger.info(f"Created order {order.order_number} as {order.status} ({order.total_amount})")
        return order

    @staticmethod
    def finalize_draft(order_id, data: Optional[dict] = None) -> Order:
        """Move an existing draft out of CREATING through the transition guard."""
        data = data or {}
        OrderService._validate_payment_fields(data)

        with transaction.atomic():
            order = OrderService.get_order(order_id)
            target = OrderTransitionService.finalize_target(order.order_creator)
            if order.status != Status.CREATING:
                raise InvalidTransition(order.status, target)
            if not order.items.exists():
                raise ValidationError("Cannot finalize an empty draft", {"field": "items"})

            fields = {"session_key": None}
            for field in OrderService.CONTEXT_FIELDS:
                if field in data:
                    fields[field] = data[field] or None
            if data.get("payment_status"):
                fields["payment_status"] = data["payment_status"]
                if data["payment_status"] == Order.PaymentStatus.SUCCESS:
                    fields["paid_at"] = timezone.now()
            if target == Status.CONFIRMED:
                fields["confirmed_by_id"] = data.get("confirmed_by_id") or None
                fields["confirmed_by_name"] = resolve_display_name(
                    data.get("confirmed_by_id"), order.order_creator_name
                )
                fields["confirmed_at"] = timezone.now()

            OrderTransitionService.transition(order, target, **fields)

            send_order_signal(order_finalized, sender=Order, order=order)
            publish_order_event(
                OrderEventKind.ORDER_STATUS_CHANGED,
                order,
                previous_status=Status.CREATING,
            )
        return order

    # ------------------------------------------------------------------ #
    # Staff verification
    # ------------------------------------------------------------------ #

    @staticmethod
    def verify_order(order_id, staff_id, staff_name: Optional[str] = None) -> Order:
        """
        Staff confirms a customer-placed order.
        """
        with transaction.atomic():
            order = OrderService.get_order(order_id)
            if order.status != Status.PENDING:
                raise InvalidTransition(order.status, Status.CONFIRMED)
            OrderTransitionService.transition(
                order,
                Status.CONFIRMED,
                confirmed_by_id=str(staff_id),
                confirmed_by_name=resolve_display_name(staff_id, staff_name),
                confirmed_at=timezone.now(),
            )
            publish_order_event(
                OrderEventKind.ORDER_VERIFIED,
                order,
                confirmed_by_id=order.confirmed_by_id,
                confirmed_by_name=order.confirmed_by_name,
            )
        return order

    @staticmethod
    def reject_order(order_id, reason: Optional[str] = None, rejected_by=None) -> Order:
        with transaction.atomic():
            order = OrderService.get_order(order_id)
            if order.status != Status.PENDING:
                raise InvalidTransition(order.status, Status.CANCELLED)
            OrderTransitionService.transition(
                order,
                Status.CANCELLED,
                cancel_reason=reason or OrderService.DEFAULT_REJECT_REASON,
                cancel_reason_type=Order.CancelReasonType.OTHER,
                refund_amount=None,
                refund_method=None,
                cancelled_by_id=str(rejected_by) if rejected_by is not None else None,
                cancelled_by_name=resolve_display_name(rejected_by),
                cancelled_at=timezone.now(),
            )
            publish_order_event(
                OrderEventKind.ORDER_STATUS_CHANGED,
                order,
                previous_status=Status.PENDING,
                reason=order.cancel_reason,
            )
        return order

    # ------------------------------------------------------------------ #
    # Status progression
    # ------------------------------------------------------------------ #

    @staticmethod
    def update_status(order_id, status: str) -> Order:
        """
        Forward progression CONFIRMED -> PREPARING -> READY -> COMPLETED.

        Completing an unpaid order records it as paid, clears the creator's
        leftover drafts and fires the stock hook.
        """
        if status not in OrderService.PROGRESSION_STATUSES:
            raise ValidationError(
                f"'{status}' is not a valid progression status", {"field": "status"}
            )

        with transaction.atomic():
            order = OrderService.get_order(order_id)
            # Drafts only leave CREATING through finalize_draft/create_order
            if order.status == Status.CREATING:
                raise InvalidTransition(order.status, status)
            previous = order.status
            fields = {}
            if status == Status.COMPLETED:
                now = timezone.now()
                fields["completed_at"] = now
                if order.payment_status != Order.PaymentStatus.SUCCESS:
                    fields["payment_status"] = Order.PaymentStatus.SUCCESS
                    fields["paid_at"] = now

            OrderTransitionService.transition(order, status, **fields)

            if status == Status.COMPLETED:
                DraftService.delete_draft_orders(order.order_creator, order.order_creator_name)
                send_order_signal(order_completed, sender=Order, order=order)

            publish_order_event(
                OrderEventKind.ORDER_STATUS_CHANGED, order, previous_status=previous
            )
        return order

    # ------------------------------------------------------------------ #
    # Payment
    # ------------------------------------------------------------------ #

    @staticmethod
    def record_payment_result(order_id, verifier=None) -> Order:
        """
        Ask the payment verifier whether ``order_id`` has been paid and store
        the answer: True -> SUCCESS with ``paid_at``, False -> FAILED.
        """
        verifier = verifier or engine_settings.get_payment_verifier()
        order = OrderService.get_order(order_id)
        paid = bool(verifier(order.pk))
        with transaction.atomic():
            if paid:
                fields = {"payment_status": Order.PaymentStatus.SUCCESS}
                if order.paid_at is None:
                    fields["paid_at"] = timezone.now()
            else:
                fields = {"payment_status": Order.PaymentStatus.FAILED}
            OrderTransitionService.guarded_update(order, **fields)
            publish_order_event(
                OrderEventKind.ORDER_UPDATED, order, payment_status=order.payment_status
            )

        logger.info(f"Payment result for order {order.order_number}: {order.payment_status}")
        return order

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_payment_fields(data: dict):
        payment_method = data.get("payment_method")
        if payment_method and payment_method not in Order.PaymentMethod.values:
            raise ValidationError(
                f"'{payment_method}' is not a valid payment method", {"field": "payment_method"}
            )
        payment_status = data.get("payment_status")
        if payment_status and payment_status not in Order.PaymentStatus.values:
            raise ValidationError(
                f"'{payment_status}' is not a valid payment status", {"field": "payment_status"}
            )

    @staticmethod
    def _stamp_confirmation(order: Order, staff_id, staff_name=None):
        order.confirmed_by_id = str(staff_id) if staff_id is not None else None
        order.confirmed_by_name = resolve_display_name(staff_id, staff_name)
        order.confirmed_at = timezone.now()
