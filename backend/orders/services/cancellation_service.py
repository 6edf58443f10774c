from decimal import Decimal
from typing import Optional, Tuple
import logging

from django.db import transaction
from django.utils import timezone

from orders.calculators import quantize, to_decimal
from orders.conf import resolve_display_name
from orders.exceptions import ValidationError
from orders.models import Order
from orders.services.notification_service import OrderEventKind, publish_order_event
from orders.services.order_service import OrderService
from orders.services.transition_service import OrderTransitionService
from orders.signals import order_cancelled, send_order_signal

logger = logging.getLogger(__name__)


class CancellationService:
    """Cancels orders and decides what, if anything, is refunded."""

    # Payment channel -> refund channel
    REFUND_METHOD_FOR_PAYMENT = {
        Order.PaymentMethod.CASH: Order.RefundMethod.CASH,
        Order.PaymentMethod.CARD: Order.RefundMethod.CARD,
        Order.PaymentMethod.QR: Order.RefundMethod.QR,
    }

    @staticmethod
    def resolve_refund(
        order: Order, refund_amount=None, refund_method: Optional[str] = None
    ) -> Tuple[Optional[Decimal], Optional[str]]:
        """
        Work out the refund owed when ``order`` is cancelled.

        Only paid orders are refunded. The amount defaults to the order total
        and must be positive and no larger than it; the method defaults to the
        channel the customer paid with. Unpaid orders get ``(None, None)``
        whatever was requested.
        """
        if order.payment_status != Order.PaymentStatus.SUCCESS:
            return None, None

        total = quantize(order.total_amount)
        if refund_amount is None or refund_amount == "":
            amount = total
        else:
            amount = quantize(to_decimal(refund_amount, "refund_amount"))
            if amount <= Decimal("0"):
                raise ValidationError(
                    "Refund amount must be greater than zero", {"field": "refund_amount"}
                )
            if amount > total:
                raise ValidationError(
                    f"Refund amount {amount} exceeds order total {total}",
                    {"field": "refund_amount", "maximum": str(total)},
                )

        if refund_method:
            if refund_method not in Order.RefundMethod.values:
                raise ValidationError(
                    f"'{refund_method}' is not a valid refund method", {"field": "refund_method"}
                )
            method = refund_method
        else:
            method = CancellationService.REFUND_METHOD_FOR_PAYMENT.get(
                order.payment_method, Order.RefundMethod.CASH
            )
        return amount, method

    @staticmethod
    def cancel_order(order_id, data: dict, cancelled_by, cancelled_by_name: Optional[str] = None) -> Order:
        """
        Cancel an order with a reason; paid orders record the refund owed.

        ``data``: ``reason``, ``reason_type`` and optional ``refund_amount`` /
        ``refund_method``. Payment status is left as it was.
        """
        reason = (data.get("reason") or "").strip()
        if not reason:
            raise ValidationError("A cancellation reason is required", {"field": "reason"})
        reason_type = data.get("reason_type")
        if reason_type not in Order.CancelReasonType.values:
            raise ValidationError(
                f"'{reason_type}' is not a valid cancellation reason type",
                {"field": "reason_type"},
            )

        with transaction.atomic():
            order = OrderService.get_order(order_id)
            OrderTransitionService.validate(order, Order.OrderStatus.CANCELLED)
            previous = order.status
            refund_amount, refund_method = CancellationService.resolve_refund(
                order, data.get("refund_amount"), data.get("refund_method")
            )
            OrderTransitionService.transition(
                order,
                Order.OrderStatus.CANCELLED,
                cancel_reason=reason,
                cancel_reason_type=reason_type,
                refund_amount=refund_amount,
                refund_method=refund_method,
                cancelled_by_id=str(cancelled_by) if cancelled_by is not None else None,
                cancelled_by_name=resolve_display_name(cancelled_by, cancelled_by_name),
                cancelled_at=timezone.now(),
            )

            send_order_signal(order_cancelled, sender=Order, order=order)
            publish_order_event(
                OrderEventKind.ORDER_STATUS_CHANGED,
                order,
                previous_status=previous,
                reason=reason,
                reason_type=reason_type,
                refund_amount=refund_amount,
                refund_method=refund_method,
            )

        logger.info(
            f"Cancelled order {order.order_number} ({reason_type}); refund {refund_amount} via {refund_method}"
        )
        return order
