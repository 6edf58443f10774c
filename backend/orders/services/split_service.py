from collections import Counter
from typing import List, Optional
import logging

from django.db import transaction
from django.utils import timezone

from orders.calculators import OrderCalculator
from orders.conf import resolve_display_name
from orders.exceptions import InvalidTransition, PartitionMismatch, ValidationError
from orders.models import Order, OrderItem
from orders.services.notification_service import OrderEventKind, publish_order_event
from orders.services.order_service import OrderService
from orders.services.transition_service import OrderTransitionService
from orders.utils import normalize_id

logger = logging.getLogger(__name__)

Status = Order.OrderStatus


class SplitService:
    """
    Splits one in-progress order into several CONFIRMED orders.

    Items are moved, never copied, so the new totals always add up to the
    original total. The source order is closed as CANCELLED with a zero total.
    """

    SPLITTABLE_STATUSES = (Status.CONFIRMED, Status.PREPARING, Status.READY)

    # Context carried from the source onto every part
    CARRIED_FIELDS = (
        "customer_name",
        "customer_phone",
        "customer_table",
        "notes",
        "order_creator",
        "order_creator_name",
        "payment_method",
        "payment_status",
        "paid_at",
    )

    @staticmethod
    def split_order(order_id, splits: List[dict], split_by, split_by_name: Optional[str] = None) -> List[Order]:
        """
        Args:
            splits: two or more ``{"name": optional str, "item_ids": [...]}``
                whose item ids partition the source's items exactly

        Returns:
            The new orders, in the order of ``splits``.
        """
        if not isinstance(splits, (list, tuple)) or len(splits) < 2:
            raise ValidationError("A split needs at least two parts", {"field": "splits"})
        for index, part in enumerate(splits):
            if not part.get("item_ids"):
                raise ValidationError(
                    f"Split part {index + 1} has no items", {"field": "splits", "index": index}
                )

        with transaction.atomic():
            source = OrderService.get_order(order_id)
            if source.status not in SplitService.SPLITTABLE_STATUSES:
                raise InvalidTransition(source.status, "SPLIT")

            source_items = {str(item.pk): item for item in source.items.all()}
            requested = [normalize_id(item_id) for part in splits for item_id in part["item_ids"]]
            SplitService._check_partition(source_items, requested)

            actor_id = str(split_by) if split_by is not None else None
            actor_name = resolve_display_name(split_by, split_by_name)
            now = timezone.now()
            part_count = len(splits)
            new_orders = []
            for index, part in enumerate(splits, start=1):
                new_order = Order(
                    status=Status.CONFIRMED,
                    label=part.get("name") or f"{source.order_number} (part {index}/{part_count})",
                    split_from=source,
                    confirmed_by_id=actor_id,
                    confirmed_by_name=actor_name,
                    confirmed_at=now,
                )
                for field in SplitService.CARRIED_FIELDS:
                    setattr(new_order, field, getattr(source, field))
                new_order.save()

                item_ids = [normalize_id(item_id) for item_id in part["item_ids"]]
                OrderItem.objects.filter(pk__in=item_ids, order=source).update(order=new_order)
                new_order.total_amount = OrderCalculator.items_total(
                    source_items[item_id] for item_id in item_ids
                )
                new_order.save(update_fields=["total_amount", "updated_at"])
                new_orders.append(new_order)

            split_total = OrderCalculator.sum_amounts(o.total_amount for o in new_orders)
            if split_total != OrderCalculator.sum_amounts([source.total_amount]):
                logger.warning(
                    f"Split of {source.order_number}: stored total {source.total_amount} "
                    f"differed from item subtotals {split_total}"
                )

            previous = source.status
            OrderTransitionService.transition(
                source,
                Status.CANCELLED,
                total_amount=0,
                cancel_reason=f"Split into {part_count} orders",
                cancel_reason_type=Order.CancelReasonType.OTHER,
                refund_amount=None,
                refund_method=None,
                cancelled_by_id=actor_id,
                cancelled_by_name=actor_name,
                cancelled_at=now,
            )

            for new_order in new_orders:
                publish_order_event(
                    OrderEventKind.ORDER_CREATED,
                    new_order,
                    split_from=str(source.pk),
                    total_amount=new_order.total_amount,
                )
            publish_order_event(
                OrderEventKind.ORDER_STATUS_CHANGED,
                source,
                previous_status=previous,
                split_into=[str(o.pk) for o in new_orders],
            )

        logger.info(
            f"Split order {source.order_number} into "
            f"{', '.join(o.order_number for o in new_orders)}"
        )
        return new_orders

    @staticmethod
    def _check_partition(source_items: dict, requested: List[str]):
        counts = Counter(requested)
        duplicated = [item_id for item_id, count in counts.items() if count > 1]
        foreign = [item_id for item_id in counts if item_id not in source_items]
        missing = [item_id for item_id in source_items if item_id not in counts]
        if duplicated or foreign or missing:
            raise PartitionMismatch(missing=missing, duplicated=duplicated, foreign=foreign)
