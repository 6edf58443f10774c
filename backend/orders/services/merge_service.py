from typing import List, Optional
import logging

from django.db import transaction
from django.utils import timezone

from orders.calculators import OrderCalculator
from orders.conf import resolve_display_name
from orders.exceptions import IncompatibleMerge, NotFound, ValidationError
from orders.models import Order, OrderItem
from orders.services.notification_service import OrderEventKind, publish_order_event
from orders.services.transition_service import OrderTransitionService
from orders.utils import is_uuid, normalize_id

logger = logging.getLogger(__name__)

Status = Order.OrderStatus


class MergeService:
    """
    Combines several in-progress orders into one new order.

    The merged order takes the most advanced status of its sources and the
    customer context of the first one listed. Every source is closed as
    CANCELLED with a zero total and a pointer to the merged order.
    """

    # Higher rank = further along in the kitchen
    STATUS_RANK = {
        Status.CONFIRMED: 0,
        Status.PREPARING: 1,
        Status.READY: 2,
    }

    CONTEXT_FIELDS = (
        "customer_name",
        "customer_phone",
        "customer_table",
        "notes",
        "order_creator",
        "order_creator_name",
        "payment_method",
    )

    @staticmethod
    def merge_orders(
        order_ids: List,
        merged_by,
        merged_order_name: Optional[str] = None,
        merged_by_name: Optional[str] = None,
    ) -> Order:
        ids = [normalize_id(order_id) for order_id in (order_ids or [])]
        if len(ids) < 2:
            raise ValidationError("A merge needs at least two orders", {"field": "order_ids"})
        if len(set(ids)) != len(ids):
            raise ValidationError("Order ids must be distinct", {"field": "order_ids"})

        with transaction.atomic():
            found = {
                str(o.pk): o for o in Order.objects.filter(pk__in=[i for i in ids if is_uuid(i)])
            }
            for order_id in ids:
                if order_id not in found:
                    raise NotFound("Order", order_id)
            sources = [found[order_id] for order_id in ids]

            for source in sources:
                if source.status not in MergeService.STATUS_RANK:
                    raise IncompatibleMerge(source.pk, source.status)
            MergeService._warn_on_mismatch(sources)

            primary = sources[0]
            status = max(
                (source.status for source in sources), key=MergeService.STATUS_RANK.get
            )
            all_paid = all(s.payment_status == Order.PaymentStatus.SUCCESS for s in sources)
            actor_id = str(merged_by) if merged_by is not None else None
            actor_name = resolve_display_name(merged_by, merged_by_name)
            now = timezone.now()

            merged = Order(
                status=status,
                label=merged_order_name or None,
                payment_status=(
                    Order.PaymentStatus.SUCCESS if all_paid else Order.PaymentStatus.PENDING
                ),
                paid_at=(
                    max((s.paid_at for s in sources if s.paid_at), default=now) if all_paid else None
                ),
                confirmed_by_id=actor_id,
                confirmed_by_name=actor_name,
                confirmed_at=now,
                total_amount=OrderCalculator.sum_amounts(s.total_amount for s in sources),
            )
            for field in MergeService.CONTEXT_FIELDS:
                setattr(merged, field, getattr(primary, field))
            merged.save()

            moved = OrderItem.objects.filter(order__in=sources).update(order=merged)
            logger.debug(f"Moved {moved} item(s) into merged order {merged.order_number}")

            previous_statuses = {}
            for source in sources:
                previous_statuses[str(source.pk)] = source.status
                OrderTransitionService.transition(
                    source,
                    Status.CANCELLED,
                    total_amount=0,
                    merged_into=merged,
                    cancel_reason=f"Merged into order {merged.order_number}",
                    cancel_reason_type=Order.CancelReasonType.OTHER,
                    refund_amount=None,
                    refund_method=None,
                    cancelled_by_id=actor_id,
                    cancelled_by_name=actor_name,
                    cancelled_at=now,
                )

            publish_order_event(
                OrderEventKind.ORDER_CREATED,
                merged,
                merged_from=ids,
                total_amount=merged.total_amount,
            )
            for source in sources:
                publish_order_event(
                    OrderEventKind.ORDER_STATUS_CHANGED,
                    source,
                    previous_status=previous_statuses[str(source.pk)],
                    merged_into=str(merged.pk),
                )

        logger.info(
            f"Merged {', '.join(s.order_number for s in sources)} into {merged.order_number}"
        )
        return merged

    @staticmethod
    def _warn_on_mismatch(sources: List[Order]):
        for field in ("customer_table", "customer_name"):
            values = {getattr(s, field) for s in sources if getattr(s, field)}
            if len(values) > 1:
                logger.warning(
                    f"Merging orders with different {field} values: {sorted(values)}; "
                    f"keeping the first order's"
                )
