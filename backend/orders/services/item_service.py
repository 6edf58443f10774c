from decimal import Decimal
from typing import Iterable, List
import logging

from orders.calculators import OrderCalculator, quantize, to_decimal
from orders.exceptions import NotFound, ValidationError
from orders.models import Order, OrderItem
from products.models import Product

logger = logging.getLogger(__name__)


class OrderItemService:
    """Builds order lines from request payloads."""

    @staticmethod
    def build_items(order: Order, items_data: Iterable[dict]) -> List[OrderItem]:
        """
        Validate ``items_data`` and create the lines on ``order``.

        Each entry needs ``product_id`` and ``quantity``; ``price`` defaults to
        the product's current price. A supplied ``subtotal`` must equal
        ``price * quantity``.

        Raises:
            ValidationError: malformed quantity, price or subtotal
            NotFound: unknown product id
        """
        items_data = list(items_data or [])
        product_ids = {entry.get("product_id") for entry in items_data}
        products = Product.objects.in_bulk([pid for pid in product_ids if pid is not None])

        items = []
        for index, entry in enumerate(items_data):
            product_id = entry.get("product_id")
            if product_id is None:
                raise ValidationError(
                    f"Item {index} is missing product_id", {"index": index, "field": "product_id"}
                )
            product = products.get(product_id)
            if product is None:
                # in_bulk keys are typed; retry with a cast for string ids
                try:
                    product = products.get(int(product_id))
                except (TypeError, ValueError):
                    product = None
            if product is None:
                raise NotFound("Product", product_id)

            quantity = entry.get("quantity", 1)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise ValidationError(
                    f"Item {index} quantity must be a positive integer",
                    {"index": index, "field": "quantity"},
                )

            raw_price = entry.get("price")
            price = quantize(product.price if raw_price is None else to_decimal(raw_price, "price"))
            if price < Decimal("0"):
                raise ValidationError(
                    f"Item {index} price cannot be negative", {"index": index, "field": "price"}
                )

            subtotal = OrderCalculator.line_subtotal(price, quantity)
            raw_subtotal = entry.get("subtotal")
            if raw_subtotal is not None and quantize(to_decimal(raw_subtotal, "subtotal")) != subtotal:
                raise ValidationError(
                    f"Item {index} subtotal {raw_subtotal} does not equal price x quantity ({subtotal})",
                    {"index": index, "field": "subtotal", "expected": str(subtotal)},
                )

            toppings = entry.get("selected_toppings") or []
            if not isinstance(toppings, (list, tuple)):
                raise ValidationError(
                    f"Item {index} selected_toppings must be a list",
                    {"index": index, "field": "selected_toppings"},
                )

            items.append(
                OrderItem(
                    order=order,
                    product=product,
                    quantity=quantity,
                    price=price,
                    subtotal=subtotal,
                    selected_size=entry.get("selected_size") or None,
                    selected_toppings=[str(t) for t in toppings],
                    note=entry.get("note") or None,
                )
            )

        OrderItem.objects.bulk_create(items)
        logger.debug(f"Created {len(items)} item(s) on order {order.order_number}")
        return items
