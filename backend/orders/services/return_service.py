from decimal import Decimal
from typing import Dict, Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Sum

from orders.calculators import OrderCalculator, quantize, to_decimal
from orders.conf import resolve_display_name
from orders.exceptions import (
    InvalidTransition,
    NotFound,
    QuantityExceedsAvailable,
    RefundExceedsItemValue,
    ValidationError,
)
from orders.models import Order, OrderReturn, OrderReturnItem
from orders.services.notification_service import OrderEventKind, publish_order_event
from orders.services.order_service import OrderService
from orders.signals import order_returned, send_order_signal
from orders.utils import normalize_id

logger = logging.getLogger(__name__)


class ReturnService:
    """
    Records full and partial returns against completed orders.

    Returns never change the order's status; they are tracked as separate
    records so the remaining returnable quantity of every line is always
    ``ordered - already returned``.
    """

    @staticmethod
    def returned_quantities(order: Order) -> Dict[str, int]:
        rows = (
            OrderReturnItem.objects.filter(order_item__order=order)
            .values("order_item_id")
            .annotate(returned=Sum("quantity"))
        )
        return {str(row["order_item_id"]): row["returned"] or 0 for row in rows}

    @staticmethod
    def refunded_total(order: Order) -> Decimal:
        total = order.returns.aggregate(total=Sum("total_refund_amount"))["total"]
        return quantize(total or 0)

    @staticmethod
    def get_returnable_quantities(order_id) -> Dict[str, int]:
        """Remaining returnable quantity per order item id."""
        order = OrderService.get_order(order_id)
        returned = ReturnService.returned_quantities(order)
        return {
            str(item.pk): item.quantity - returned.get(str(item.pk), 0)
            for item in order.items.all()
        }

    @staticmethod
    def is_fully_returned(order_id) -> bool:
        remaining = ReturnService.get_returnable_quantities(order_id)
        return bool(remaining) and all(qty == 0 for qty in remaining.values())

    @staticmethod
    def return_order(order_id, data: dict, processed_by, processed_by_name: Optional[str] = None) -> OrderReturn:
        """
        Record a return against a COMPLETED order.

        Lines are checked in this order: each item belongs to the order, the
        quantity is still returnable, a FULL return covers everything left,
        and no refund exceeds the value being returned.

        Raises:
            InvalidTransition: order is not COMPLETED
            NotFound: item not on this order
            QuantityExceedsAvailable: more than the remaining quantity
            ValidationError: malformed payload or incomplete FULL return
            RefundExceedsItemValue: line refund above price x quantity, or
                refunds above the order total
        """
        return_type = data.get("return_type")
        if return_type not in OrderReturn.ReturnType.values:
            raise ValidationError(f"'{return_type}' is not a valid return type", {"field": "return_type"})
        return_reason = data.get("return_reason")
        if return_reason not in OrderReturn.ReturnReason.values:
            raise ValidationError(
                f"'{return_reason}' is not a valid return reason", {"field": "return_reason"}
            )
        refund_method = data.get("refund_method")
        if refund_method not in Order.RefundMethod.values:
            raise ValidationError(
                f"'{refund_method}' is not a valid refund method", {"field": "refund_method"}
            )
        lines = data.get("items") or []
        if not lines:
            raise ValidationError("A return needs at least one item", {"field": "items"})

        with transaction.atomic():
            try:
                order = Order.objects.select_for_update().get(pk=order_id)
            except (Order.DoesNotExist, DjangoValidationError, ValueError):
                raise NotFound("Order", order_id)
            if order.status != Order.OrderStatus.COMPLETED:
                raise InvalidTransition(order.status, "RETURN")

            items = {str(item.pk): item for item in order.items.all()}

            # (1) ownership and duplicates
            seen = set()
            parsed = []
            for index, line in enumerate(lines):
                item_id = normalize_id(line.get("order_item_id"))
                if item_id not in items:
                    raise NotFound("OrderItem", line.get("order_item_id"))
                if item_id in seen:
                    raise ValidationError(
                        f"Item {item_id} appears more than once in the return",
                        {"field": "items", "order_item_id": item_id},
                    )
                seen.add(item_id)
                quantity = line.get("quantity")
                if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                    raise ValidationError(
                        f"Return line {index} quantity must be a positive integer",
                        {"field": "quantity", "index": index},
                    )
                parsed.append((items[item_id], quantity, line.get("refund_amount")))

            # (2) remaining quantity
            returned = ReturnService.returned_quantities(order)
            remaining = {
                item_id: item.quantity - returned.get(item_id, 0) for item_id, item in items.items()
            }
            for item, quantity, _refund in parsed:
                available = remaining[str(item.pk)]
                if quantity > available:
                    raise QuantityExceedsAvailable(item.pk, quantity, available)

            # (3) a full return takes everything that is left
            if return_type == OrderReturn.ReturnType.FULL:
                requested = {str(item.pk): quantity for item, quantity, _refund in parsed}
                uncovered = [
                    item_id
                    for item_id, left in remaining.items()
                    if left > 0 and requested.get(item_id) != left
                ]
                if uncovered:
                    raise ValidationError(
                        "A full return must include every remaining item at its full remaining quantity",
                        {"field": "items", "order_item_ids": sorted(uncovered)},
                    )

            # (4) refund bounds
            refunds = []
            for item, quantity, raw_refund in parsed:
                line_value = OrderCalculator.line_subtotal(item.price, quantity)
                if raw_refund is None or raw_refund == "":
                    refund = line_value
                else:
                    refund = quantize(to_decimal(raw_refund, "refund_amount"))
                if refund < Decimal("0"):
                    raise ValidationError(
                        "Refund amount cannot be negative",
                        {"field": "refund_amount", "order_item_id": str(item.pk)},
                    )
                if refund > line_value:
                    raise RefundExceedsItemValue(refund, line_value, item.pk)
                refunds.append(refund)

            total_refund = OrderCalculator.sum_amounts(refunds)
            refund_room = quantize(order.total_amount) - ReturnService.refunded_total(order)
            if total_refund > refund_room:
                raise RefundExceedsItemValue(total_refund, refund_room)

            order_return = OrderReturn.objects.create(
                order=order,
                return_type=return_type,
                return_reason=return_reason,
                refund_method=refund_method,
                notes=data.get("notes") or None,
                processed_by_id=str(processed_by) if processed_by is not None else None,
                processed_by_name=resolve_display_name(processed_by, processed_by_name),
                total_refund_amount=total_refund,
            )
            OrderReturnItem.objects.bulk_create(
                [
                    OrderReturnItem(
                        order_return=order_return,
                        order_item=item,
                        quantity=quantity,
                        refund_amount=refund,
                    )
                    for (item, quantity, _raw), refund in zip(parsed, refunds)
                ]
            )

            send_order_signal(order_returned, sender=Order, order=order, order_return=order_return)
            publish_order_event(
                OrderEventKind.ORDER_RETURNED,
                order,
                return_id=str(order_return.pk),
                return_type=return_type,
                total_refund_amount=total_refund,
                items=[
                    {"order_item_id": str(item.pk), "quantity": quantity}
                    for item, quantity, _raw in parsed
                ],
            )

        logger.info(
            f"Recorded {return_type} return on order {order.order_number}: refund {total_refund}"
        )
        return order_return

