from collections import defaultdict
from datetime import timedelta
from typing import Optional
import logging
import uuid

from django.db import IntegrityError, transaction
from django.utils import timezone

from orders.calculators import OrderCalculator
from orders.conf import engine_settings
from orders.exceptions import ValidationError
from orders.models import Order
from orders.services.item_service import OrderItemService
from orders.services.notification_service import (
    OrderEvent,
    OrderEventKind,
    OrderEventPublisher,
    publish_order_event,
)

logger = logging.getLogger(__name__)


class DraftService:
    """
    Keeps one CREATING order per terminal session in sync with the cart shown
    on that terminal. Writes are last-write-wins upserts.
    """

    DRAFT_FIELDS = (
        "customer_name",
        "customer_phone",
        "customer_table",
        "notes",
        "payment_method",
    )

    @staticmethod
    def start_session() -> str:
        """Issue a new opaque session key for a terminal."""
        return f"draft_{uuid.uuid4().hex}"

    @staticmethod
    def session_key_for(order_creator: str, order_creator_name: Optional[str] = None) -> str:
        """Composite key used when a terminal did not supply its own session key."""
        name = order_creator_name or engine_settings.DRAFT_ANONYMOUS_NAME
        return f"{order_creator}:{name}"

    @staticmethod
    def resolve_session_key(data: dict) -> str:
        return data.get("session_key") or DraftService.session_key_for(
            data.get("order_creator"), data.get("order_creator_name")
        )

    @staticmethod
    def get_draft(session_key: str) -> Optional[Order]:
        return (
            Order.objects.filter(session_key=session_key, status=Order.OrderStatus.CREATING)
            .prefetch_related("items")
            .first()
        )

    @staticmethod
    def create_or_update_draft(data: dict) -> Order:
        """
        Upsert the CREATING order for the caller's session.

        Replaces the item set, customer fields and total of an existing draft,
        or creates a new draft. An empty item list is allowed.
        """
        order_creator = data.get("order_creator")
        if order_creator not in Order.OrderCreator.values:
            raise ValidationError(
                f"'{order_creator}' is not a valid order creator", {"field": "order_creator"}
            )
        payment_method = data.get("payment_method")
        if payment_method and payment_method not in Order.PaymentMethod.values:
            raise ValidationError(
                f"'{payment_method}' is not a valid payment method", {"field": "payment_method"}
            )
        session_key = DraftService.resolve_session_key(data)

        # A concurrent first write for the same session can lose the insert race
        # on the one-draft-per-session constraint; the retry then updates it.
        for attempt in range(2):
            try:
                with transaction.atomic():
                    order, created = DraftService._upsert(session_key, order_creator, data)
                break
            except IntegrityError:
                if attempt:
                    raise
                logger.info(f"Draft insert race on session {session_key}, retrying as update")

        kind = OrderEventKind.ORDER_CREATED if created else OrderEventKind.ORDER_UPDATED
        publish_order_event(
            kind,
            order,
            session_key=session_key,
            total_amount=order.total_amount,
            item_count=order.items.count(),
        )
        return order

    @staticmethod
    def _upsert(session_key: str, order_creator: str, data: dict):
        order = (
            Order.objects.select_for_update()
            .filter(session_key=session_key, status=Order.OrderStatus.CREATING)
            .first()
        )
        created = order is None
        if created:
            order = Order(session_key=session_key, status=Order.OrderStatus.CREATING)
        else:
            order.items.all().delete()
            order.version += 1

        order.order_creator = order_creator
        order.order_creator_name = data.get("order_creator_name") or None
        for field in DraftService.DRAFT_FIELDS:
            setattr(order, field, data.get(field) or None)
        order.save()

        items = OrderItemService.build_items(order, data.get("items") or [])
        order.total_amount = OrderCalculator.items_total(items)
        order.save(update_fields=["total_amount", "updated_at"])

        logger.info(
            f"{'Created' if created else 'Updated'} draft {order.order_number} "
            f"for session {session_key} ({len(items)} items, total {order.total_amount})"
        )
        return order, created

    @staticmethod
    def draft_queryset(older_than: Optional[timedelta] = None):
        queryset = Order.objects.filter(status=Order.OrderStatus.CREATING)
        if older_than is not None:
            queryset = queryset.filter(updated_at__lt=timezone.now() - older_than)
        return queryset

    @staticmethod
    def delete_draft_orders(
        order_creator: str,
        order_creator_name: Optional[str] = None,
        session_key: Optional[str] = None,
    ) -> int:
        """
        Delete the drafts of one terminal session.

        Without ``session_key`` only the creator's composite session matches;
        drafts kept under an explicit session key are never touched by name.
        """
        session_key = session_key or DraftService.session_key_for(order_creator, order_creator_name)
        return DraftService._delete(DraftService.draft_queryset().filter(session_key=session_key))

    @staticmethod
    def delete_all_draft_orders(older_than: Optional[timedelta] = None) -> int:
        """Delete every draft, or only drafts untouched for longer than ``older_than``."""
        return DraftService._delete(DraftService.draft_queryset(older_than))

    @staticmethod
    @transaction.atomic
    def _delete(queryset) -> int:
        rows = list(queryset.select_for_update().values_list("id", "session_key"))
        if not rows:
            return 0

        by_session = defaultdict(list)
        for order_id, session_key in rows:
            by_session[session_key].append(str(order_id))

        Order.objects.filter(
            id__in=[order_id for order_id, _ in rows], status=Order.OrderStatus.CREATING
        ).delete()

        for session_key, order_ids in by_session.items():
            OrderEventPublisher.publish_on_commit(
                OrderEvent(
                    kind=OrderEventKind.DRAFTS_DELETED,
                    order_id=None,
                    order_number=None,
                    status=Order.OrderStatus.CREATING,
                    payload={"session_key": session_key, "order_ids": order_ids},
                )
            )

        logger.info(f"Deleted {len(rows)} draft order(s) across {len(by_session)} session(s)")
        return len(rows)
