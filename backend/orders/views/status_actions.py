from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import (
    CancelOrderSerializer,
    FinalizeDraftSerializer,
    HoldOrderSerializer,
    RejectOrderSerializer,
    UpdateOrderStatusSerializer,
)
from orders.services import CancellationService, HoldService, OrderService

from .actor import request_actor


class StatusActionsMixin:
    """
    Mixin for order status transition actions

    This mixin provides action methods for OrderViewSet.
    """

    @action(detail=True, methods=["post"], url_path="finalize")
    def finalize(self, request: Request, pk=None) -> Response:
        serializer = FinalizeDraftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.finalize_draft(pk, serializer.validated_data)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="verify")
    def verify(self, request: Request, pk=None) -> Response:
        staff_id, staff_name = request_actor(request)
        order = OrderService.verify_order(pk, staff_id, staff_name)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request: Request, pk=None) -> Response:
        serializer = RejectOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff_id, _name = request_actor(request)
        order = OrderService.reject_order(pk, serializer.validated_data.get("reason"), staff_id)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["patch", "post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.update_status(pk, serializer.validated_data["status"])
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="hold")
    def hold(self, request: Request, pk=None) -> Response:
        serializer = HoldOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff_id, staff_name = request_actor(request)
        order = HoldService.hold_order(
            pk, staff_id, serializer.validated_data.get("hold_name"), held_by_name=staff_name
        )
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="resume")
    def resume(self, request: Request, pk=None) -> Response:
        staff_id, staff_name = request_actor(request)
        order = HoldService.resume_hold_order(pk, staff_id, resumed_by_name=staff_name)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request: Request, pk=None) -> Response:
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff_id, staff_name = request_actor(request)
        order = CancellationService.cancel_order(
            pk, serializer.validated_data, staff_id, cancelled_by_name=staff_name
        )
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["post"], url_path="verify-payment")
    def verify_payment(self, request: Request, pk=None) -> Response:
        order = OrderService.record_payment_result(pk)
        return Response(self.get_serializer(order).data)
