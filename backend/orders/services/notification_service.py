import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.utils import timezone

from orders.conf import engine_settings

logger = logging.getLogger(__name__)


class OrderEventKind:
    ORDER_CREATED = "order_created"
    ORDER_UPDATED = "order_updated"
    ORDER_STATUS_CHANGED = "order_status_changed"
    ORDER_VERIFIED = "order_verified"
    DRAFTS_DELETED = "drafts_deleted"
    ORDER_RETURNED = "order_returned"

    ALL = (
        ORDER_CREATED,
        ORDER_UPDATED,
        ORDER_STATUS_CHANGED,
        ORDER_VERIFIED,
        DRAFTS_DELETED,
        ORDER_RETURNED,
    )


@dataclass(frozen=True)
class OrderEvent:
    """A committed order mutation, as seen by real-time observers."""

    kind: str
    order_id: Optional[str]
    order_number: Optional[str]
    status: Optional[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=timezone.now)

    @classmethod
    def for_order(cls, kind: str, order, **payload) -> "OrderEvent":
        return cls(
            kind=kind,
            order_id=str(order.pk),
            order_number=order.order_number,
            status=order.status,
            payload=payload,
        )

    def as_message(self) -> Dict[str, Any]:
        """JSON-safe dict sent to websocket clients."""
        encoder = DjangoJSONEncoder()
        return {
            "event": self.kind,
            "order_id": self.order_id,
            "order_number": self.order_number,
            "status": self.status,
            "payload": _json_safe(self.payload, encoder),
            "occurred_at": self.occurred_at.isoformat(),
        }


def _json_safe(value, encoder):
    if isinstance(value, dict):
        return {str(k): _json_safe(v, encoder) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v, encoder) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return encoder.default(value)


class OrderEventPublisher:
    """
    Fans committed order events out to in-process subscribers and to the
    channel layer groups configured for each event kind.

    Delivery is best-effort: a failing subscriber or an unavailable channel
    layer is logged and never propagates to the caller.
    """

    _subscribers: List[Callable[[OrderEvent], None]] = []

    @classmethod
    def subscribe(cls, callback: Callable[[OrderEvent], None]):
        if callback not in cls._subscribers:
            cls._subscribers.append(callback)
        return callback

    @classmethod
    def unsubscribe(cls, callback: Callable[[OrderEvent], None]):
        if callback in cls._subscribers:
            cls._subscribers.remove(callback)

    @classmethod
    def publish(cls, event: OrderEvent) -> OrderEvent:
        for callback in list(cls._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    f"Order event subscriber {callback!r} failed for {event.kind} "
                    f"on order {event.order_id}: {e}",
                    exc_info=True,
                )

        cls._broadcast(event)
        return event

    @classmethod
    def publish_on_commit(cls, event: OrderEvent) -> OrderEvent:
        """Publish once the surrounding transaction commits (immediately if none)."""
        transaction.on_commit(lambda: cls.publish(event))
        return event

    @staticmethod
    def _broadcast(event: OrderEvent):
        from asgiref.sync import async_to_sync
        from channels.layers import get_channel_layer

        try:
            channel_layer = get_channel_layer()
        except Exception as e:
            logger.error(f"Channel layer unavailable, dropping {event.kind}: {e}")
            return
        if not channel_layer:
            logger.warning(f"Channel layer not configured. Cannot send {event.kind}.")
            return

        message = {"type": "order.event", "data": event.as_message()}
        for group in engine_settings.groups_for(event.kind):
            try:
                async_to_sync(channel_layer.group_send)(group, message)
            except Exception as e:
                logger.error(
                    f"Failed to send {event.kind} for order {event.order_id} to group '{group}': {e}"
                )
            else:
                logger.debug(f"Sent {event.kind} for order {event.order_id} to group '{group}'")


def publish_order_event(kind: str, order, **payload) -> OrderEvent:
    """Build the event for ``order`` now and publish it after commit."""
    return OrderEventPublisher.publish_on_commit(OrderEvent.for_order(kind, order, **payload))
