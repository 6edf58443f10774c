"""
Orders serializers package - read serializers and action payload serializers.
"""

# Read serializers
from .order_serializers import (
    OrderItemSerializer,
    OrderReturnItemSerializer,
    OrderReturnSerializer,
    OrderSerializer,
)

# Action payloads
from .action_serializers import (
    CancelOrderSerializer,
    DeleteDraftsSerializer,
    DraftOrderSerializer,
    FinalizeDraftSerializer,
    HoldOrderSerializer,
    MergeOrdersSerializer,
    OrderCreateSerializer,
    RejectOrderSerializer,
    ReturnOrderSerializer,
    SplitOrderSerializer,
    UpdateOrderStatusSerializer,
)

__all__ = [
    'OrderItemSerializer',
    'OrderReturnItemSerializer',
    'OrderReturnSerializer',
    'OrderSerializer',
    'CancelOrderSerializer',
    'DeleteDraftsSerializer',
    'DraftOrderSerializer',
    'FinalizeDraftSerializer',
    'HoldOrderSerializer',
    'MergeOrdersSerializer',
    'OrderCreateSerializer',
    'RejectOrderSerializer',
    'ReturnOrderSerializer',
    'SplitOrderSerializer',
    'UpdateOrderStatusSerializer',
]
