from rest_framework import serializers

from orders.models import Order, OrderItem, OrderReturn, OrderReturnItem


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_name",
            "quantity",
            "price",
            "subtotal",
            "selected_size",
            "selected_toppings",
            "note",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read representation of an order with its items."""

    items = OrderItemSerializer(many=True, read_only=True)
    display_name = serializers.CharField(read_only=True)
    split_from = serializers.PrimaryKeyRelatedField(read_only=True)
    merged_into = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "display_name",
            "label",
            "status",
            "version",
            "total_amount",
            "customer_name",
            "customer_phone",
            "customer_table",
            "notes",
            "order_creator",
            "order_creator_name",
            "session_key",
            "payment_method",
            "payment_status",
            "paid_at",
            "hold_name",
            "held_by_id",
            "held_by_name",
            "held_at",
            "resumed_by_id",
            "resumed_by_name",
            "resumed_at",
            "confirmed_by_id",
            "confirmed_by_name",
            "confirmed_at",
            "cancel_reason",
            "cancel_reason_type",
            "refund_amount",
            "refund_method",
            "cancelled_by_id",
            "cancelled_by_name",
            "cancelled_at",
            "split_from",
            "merged_into",
            "items",
            "created_at",
            "updated_at",
            "completed_at",
        ]
        read_only_fields = fields


class OrderReturnItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderReturnItem
        fields = ["order_item", "quantity", "refund_amount"]
        read_only_fields = fields


class OrderReturnSerializer(serializers.ModelSerializer):
    items = OrderReturnItemSerializer(many=True, read_only=True)

    class Meta:
        model = OrderReturn
        fields = [
            "id",
            "order",
            "return_type",
            "return_reason",
            "refund_method",
            "notes",
            "processed_by_id",
            "processed_by_name",
            "total_refund_amount",
            "items",
            "created_at",
        ]
        read_only_fields = fields
