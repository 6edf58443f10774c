"""
Input serializers for order actions.

They only check shape and types; business rules live in the services, which
raise the engine's own errors.
"""

from rest_framework import serializers

from orders.models import Order, OrderReturn


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    selected_size = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    selected_toppings = serializers.ListField(
        child=serializers.CharField(), required=False, default=list
    )
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class OrderContextSerializer(serializers.Serializer):
    order_creator = serializers.ChoiceField(choices=Order.OrderCreator.choices)
    order_creator_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    session_key = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_table = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_method = serializers.ChoiceField(
        choices=Order.PaymentMethod.choices, required=False, allow_null=True
    )


class DraftOrderSerializer(OrderContextSerializer):
    items = OrderItemInputSerializer(many=True, required=False, default=list)


class OrderCreateSerializer(OrderContextSerializer):
    items = OrderItemInputSerializer(many=True)
    payment_status = serializers.ChoiceField(
        choices=Order.PaymentStatus.choices, required=False, allow_null=True
    )


class FinalizeDraftSerializer(serializers.Serializer):
    customer_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_table = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_method = serializers.ChoiceField(
        choices=Order.PaymentMethod.choices, required=False, allow_null=True
    )
    payment_status = serializers.ChoiceField(
        choices=Order.PaymentStatus.choices, required=False, allow_null=True
    )


class DeleteDraftsSerializer(serializers.Serializer):
    order_creator = serializers.ChoiceField(choices=Order.OrderCreator.choices)
    order_creator_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    session_key = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.OrderStatus.choices)


class RejectOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class HoldOrderSerializer(serializers.Serializer):
    hold_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField()
    reason_type = serializers.ChoiceField(choices=Order.CancelReasonType.choices)
    refund_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    refund_method = serializers.ChoiceField(
        choices=Order.RefundMethod.choices, required=False, allow_null=True
    )


class ReturnItemInputSerializer(serializers.Serializer):
    order_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    refund_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )


class ReturnOrderSerializer(serializers.Serializer):
    return_type = serializers.ChoiceField(choices=OrderReturn.ReturnType.choices)
    return_reason = serializers.ChoiceField(choices=OrderReturn.ReturnReason.choices)
    refund_method = serializers.ChoiceField(choices=Order.RefundMethod.choices)
    items = ReturnItemInputSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class SplitPartSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class SplitOrderSerializer(serializers.Serializer):
    splits = SplitPartSerializer(many=True, min_length=2)


class MergeOrdersSerializer(serializers.Serializer):
    order_ids = serializers.ListField(child=serializers.UUIDField(), min_length=2)
    merged_order_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
