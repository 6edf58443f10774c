"""
Shared fixtures for order lifecycle tests.
"""
from decimal import Decimal

import pytest

from orders.models import Order
from orders.services import DraftService, OrderEventPublisher, OrderService
from products.models import Product


# ============================================================================
# PRODUCT FIXTURES
# ============================================================================

@pytest.fixture
def latte(db):
    return Product.objects.create(name="Latte", price=Decimal("45000.00"))


@pytest.fixture
def croissant(db):
    return Product.objects.create(name="Croissant", price=Decimal("30000.00"))


@pytest.fixture
def cake(db):
    return Product.objects.create(name="Cheesecake", price=Decimal("100.00"))


# ============================================================================
# EVENT FIXTURES
# ============================================================================

@pytest.fixture
def captured_events():
    """
    Collect every published OrderEvent.

    Events are published after commit, so wrap the action in
    ``django_capture_on_commit_callbacks(execute=True)``.
    """
    events = []
    OrderEventPublisher.subscribe(events.append)
    yield events
    OrderEventPublisher.unsubscribe(events.append)


# ============================================================================
# ORDER FACTORIES
# ============================================================================

@pytest.fixture
def make_staff_order(latte, croissant):
    """
    Create a CONFIRMED staff order.

    Usage:
        order = make_staff_order()                        # 2 latte + 1 croissant
        order = make_staff_order(items=[(latte, 1)], payment_status="SUCCESS")
    """

    def _make(items=None, **extra):
        items = items or [(latte, 2), (croissant, 1)]
        data = {
            "order_creator": Order.OrderCreator.STAFF,
            "order_creator_name": extra.pop("order_creator_name", "Alice"),
            "items": [{"product_id": product.id, "quantity": qty} for product, qty in items],
        }
        data.update(extra)
        return OrderService.create_order(data)

    return _make


@pytest.fixture
def make_customer_order(latte):
    """Create a PENDING customer order."""

    def _make(items=None, **extra):
        items = items or [(latte, 1)]
        data = {
            "order_creator": Order.OrderCreator.CUSTOMER,
            "items": [{"product_id": product.id, "quantity": qty} for product, qty in items],
        }
        data.update(extra)
        return OrderService.create_order(data)

    return _make


@pytest.fixture
def advance():
    """Push an order forward through the kitchen statuses up to ``target``."""
    path = [
        Order.OrderStatus.CONFIRMED,
        Order.OrderStatus.PREPARING,
        Order.OrderStatus.READY,
        Order.OrderStatus.COMPLETED,
    ]

    def _advance(order, target):
        order.refresh_from_db()
        start = path.index(order.status) + 1 if order.status in path else 0
        for status in path[start:path.index(target) + 1]:
            order = OrderService.update_status(order.id, status)
        return order

    return _advance


@pytest.fixture
def staff_draft(latte):
    """A CREATING draft owned by staff member Alice."""
    return DraftService.create_or_update_draft(
        {
            "order_creator": Order.OrderCreator.STAFF,
            "order_creator_name": "Alice",
            "items": [{"product_id": latte.id, "quantity": 1}],
        }
    )
