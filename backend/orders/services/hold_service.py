from typing import Optional
import logging

from django.db import transaction
from django.utils import timezone

from orders.conf import resolve_display_name
from orders.exceptions import InvalidTransition
from orders.models import Order
from orders.services.notification_service import OrderEventKind, publish_order_event
from orders.services.order_service import OrderService
from orders.services.transition_service import OrderTransitionService

logger = logging.getLogger(__name__)

Status = Order.OrderStatus


class HoldService:
    """Parks in-progress orders and brings them back for re-verification."""

    HOLDABLE_STATUSES = (Status.CONFIRMED, Status.PREPARING, Status.READY)

    @staticmethod
    def hold_order(order_id, held_by, hold_name: Optional[str] = None, held_by_name: Optional[str] = None) -> Order:
        """
        Put an order on hold. Items and totals are left untouched.
        """
        with transaction.atomic():
            order = OrderService.get_order(order_id)
            previous = order.status
            OrderTransitionService.transition(
                order,
                Status.HOLD,
                hold_name=hold_name or None,
                held_by_id=str(held_by) if held_by is not None else None,
                held_by_name=resolve_display_name(held_by, held_by_name),
                held_at=timezone.now(),
            )
            publish_order_event(
                OrderEventKind.ORDER_STATUS_CHANGED,
                order,
                previous_status=previous,
                hold_name=order.hold_name,
            )
        logger.info(f"Order {order.order_number} held by {order.held_by_name}")
        return order

    @staticmethod
    def resume_hold_order(order_id, resumed_by, resumed_by_name: Optional[str] = None) -> Order:
        """
        Resume a held order back to PENDING.

        The hold name and timestamp are cleared; who held it is kept and who
        resumed it is recorded.
        """
        with transaction.atomic():
            order = OrderService.get_order(order_id)
            if order.status != Status.HOLD:
                raise InvalidTransition(order.status, Status.PENDING)
            OrderTransitionService.transition(
                order,
                Status.PENDING,
                hold_name=None,
                held_at=None,
                resumed_by_id=str(resumed_by) if resumed_by is not None else None,
                resumed_by_name=resolve_display_name(resumed_by, resumed_by_name),
                resumed_at=timezone.now(),
            )
            publish_order_event(
                OrderEventKind.ORDER_STATUS_CHANGED, order, previous_status=Status.HOLD
            )
        logger.info(f"Order {order.order_number} resumed by {order.resumed_by_name}")
        return order

    @staticmethod
    def get_hold_orders(order_creator: Optional[str] = None):
        queryset = Order.objects.filter(status=Status.HOLD)
        if order_creator:
            queryset = queryset.filter(order_creator=order_creator)
        return queryset.prefetch_related("items").order_by("held_at", "created_at")
