from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import (
    MergeOrdersSerializer,
    OrderReturnSerializer,
    ReturnOrderSerializer,
    SplitOrderSerializer,
)
from orders.services import MergeService, ReturnService, SplitService

from .actor import request_actor


class StructureActionsMixin:
    """
    Mixin for split, merge and return actions

    This mixin provides action methods for OrderViewSet.
    """

    @action(detail=True, methods=["post"], url_path="split")
    def split(self, request: Request, pk=None) -> Response:
        serializer = SplitOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff_id, staff_name = request_actor(request)
        new_orders = SplitService.split_order(
            pk, serializer.validated_data["splits"], staff_id, split_by_name=staff_name
        )
        return Response(
            self.get_serializer(new_orders, many=True).data, status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=["post"], url_path="merge")
    def merge(self, request: Request) -> Response:
        serializer = MergeOrdersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff_id, staff_name = request_actor(request)
        merged = MergeService.merge_orders(
            serializer.validated_data["order_ids"],
            staff_id,
            serializer.validated_data.get("merged_order_name"),
            merged_by_name=staff_name,
        )
        return Response(self.get_serializer(merged).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="return")
    def return_items(self, request: Request, pk=None) -> Response:
        serializer = ReturnOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff_id, staff_name = request_actor(request)
        order_return = ReturnService.return_order(
            pk, serializer.validated_data, staff_id, processed_by_name=staff_name
        )
        return Response(OrderReturnSerializer(order_return).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="returnable")
    def returnable(self, request: Request, pk=None) -> Response:
        return Response(
            {
                "items": ReturnService.get_returnable_quantities(pk),
                "fully_returned": ReturnService.is_fully_returned(pk),
            }
        )
