from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import DeleteDraftsSerializer, DraftOrderSerializer, OrderSerializer
from orders.services import DraftService


class DraftOrderViewSet(viewsets.ViewSet):
    """
    Terminal cart sync. ``POST /drafts/`` upserts the caller's draft,
    ``POST /drafts/session/`` issues a session key, ``POST /drafts/clear/``
    deletes the caller's drafts.
    """

    def create(self, request: Request) -> Response:
        serializer = DraftOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = DraftService.create_or_update_draft(serializer.validated_data)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["post"], url_path="session")
    def session(self, request: Request) -> Response:
        return Response(
            {"session_key": DraftService.start_session()}, status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=["post"], url_path="clear")
    def clear(self, request: Request) -> Response:
        serializer = DeleteDraftsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        deleted = DraftService.delete_draft_orders(
            data["order_creator"], data.get("order_creator_name"), data.get("session_key")
        )
        return Response({"deleted": deleted})
