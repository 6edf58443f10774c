import logging

from django.db.models import F
from django.utils import timezone

from orders.exceptions import InvalidTransition, NotFound, StaleState
from orders.models import Order

logger = logging.getLogger(__name__)

Status = Order.OrderStatus


class OrderTransitionService:
    """
    Guards every status change of an order.

    A transition is validated against the in-memory snapshot and then written
    with a conditional UPDATE matching the snapshot's status and version. If
    another writer got there first the UPDATE matches zero rows and the caller
    gets ``StaleState``; nothing is merged silently.
    """

    VALID_STATUS_TRANSITIONS = {
        Status.CREATING: [Status.PENDING, Status.CONFIRMED],
        Status.PENDING: [Status.CONFIRMED, Status.CANCELLED],
        Status.CONFIRMED: [Status.PREPARING, Status.CANCELLED, Status.HOLD],
        Status.PREPARING: [Status.READY, Status.CANCELLED, Status.HOLD],
        Status.READY: [Status.COMPLETED, Status.CANCELLED, Status.HOLD],
        Status.HOLD: [Status.PENDING],
        Status.COMPLETED: [],
        Status.CANCELLED: [],
    }

    # Which creator may finalize a draft into which status
    FINALIZE_TARGETS = {
        Order.OrderCreator.CUSTOMER: Status.PENDING,
        Order.OrderCreator.STAFF: Status.CONFIRMED,
    }

    @staticmethod
    def finalize_target(order_creator: str) -> str:
        return OrderTransitionService.FINALIZE_TARGETS[order_creator]

    @staticmethod
    def can_transition(order: Order, target: str) -> bool:
        if target not in OrderTransitionService.VALID_STATUS_TRANSITIONS.get(order.status, []):
            return False
        if order.status == Status.CREATING:
            return OrderTransitionService.FINALIZE_TARGETS.get(order.order_creator) == target
        return True

    @staticmethod
    def validate(order: Order, target: str) -> None:
        if not OrderTransitionService.can_transition(order, target):
            raise InvalidTransition(order.status, target)

    @staticmethod
    def transition(order: Order, target: str, **fields) -> Order:
        """
        Move ``order`` to ``target`` and write ``fields`` in the same guarded UPDATE.
        """
        OrderTransitionService.validate(order, target)
        source = order.status
        OrderTransitionService.guarded_update(order, status=target, **fields)
        logger.info(f"Order {order.order_number} transitioned {source} -> {target}")
        return order

    @staticmethod
    def guarded_update(order: Order, **fields) -> Order:
        """
        Conditionally write ``fields`` if the row still matches the snapshot.

        Used directly for writes that keep the status (payment results) and by
        ``transition`` for status changes.
        """
        expected_status = order.status
        expected_version = order.version

        fields.setdefault("updated_at", timezone.now())
        updated = Order.objects.filter(
            pk=order.pk, status=expected_status, version=expected_version
        ).update(version=F("version") + 1, **fields)

        if updated == 0:
            current = (
                Order.objects.filter(pk=order.pk).values("status", "version").first()
            )
            if current is None:
                raise NotFound("Order", order.pk)
            logger.warning(
                f"Stale write on order {order.order_number}: expected "
                f"{expected_status}/v{expected_version}, found "
                f"{current['status']}/v{current['version']}"
            )
            raise StaleState(order.pk, expected_status, current["status"])

        order.refresh_from_db()
        return order
