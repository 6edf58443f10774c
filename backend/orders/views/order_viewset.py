import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.filters import OrderFilter
from orders.models import Order
from orders.serializers import OrderCreateSerializer, OrderSerializer
from orders.services import HoldService, OrderService

from .status_actions import StatusActionsMixin
from .structure_actions import StructureActionsMixin

logger = logging.getLogger(__name__)


class OrderViewSet(StatusActionsMixin, StructureActionsMixin, viewsets.ReadOnlyModelViewSet):
    """
    Orders API. Reads go through the ORM; every mutation goes through a
    service so the transition guard and event fan-out always apply.
    """

    serializer_class = OrderSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = OrderFilter

    def get_queryset(self):
        return Order.objects.prefetch_related("items__product").order_by("-created_at")

    def get_object(self):
        return OrderService.get_order(self.kwargs["pk"])

    def create(self, request: Request) -> Response:
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.create_order(serializer.validated_data)
        return Response(self.get_serializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="today")
    def today(self, request: Request) -> Response:
        return Response(self.get_serializer(OrderService.get_today_orders(), many=True).data)

    @action(detail=False, methods=["get"], url_path=r"by-date/(?P<day>\d{4}-\d{2}-\d{2})")
    def by_date(self, request: Request, day=None) -> Response:
        return Response(self.get_serializer(OrderService.get_orders_by_date(day), many=True).data)

    @action(detail=False, methods=["get"], url_path=r"by-number/(?P<order_number>[\w-]+)")
    def by_number(self, request: Request, order_number=None) -> Response:
        return Response(self.get_serializer(OrderService.get_by_order_number(order_number)).data)

    @action(detail=False, methods=["get"], url_path="held")
    def held(self, request: Request) -> Response:
        orders = HoldService.get_hold_orders(request.query_params.get("order_creator"))
        return Response(self.get_serializer(orders, many=True).data)
