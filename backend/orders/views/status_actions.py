from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
import logging

from orders.exceptions import InvalidStatusTransition, OrderNotFound, PersistenceError
from orders.serializers import OrderSerializer, UpdateOrderStatusSerializer
from orders.services import OrderService

logger = logging.getLogger(__name__)


class StatusActionsMixin:
    """
    Mixin for order status transition actions

    This mixin provides action methods for OrderViewSet.
    """

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        """
        Updates the status of an order through OrderService.
        Repeating the same status is accepted and changes nothing.
        """
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        try:
            order = OrderService.update_status(pk, new_status)
        except OrderNotFound as e:
            return Response({"error": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidStatusTransition as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PersistenceError as e:
            return Response({"error": str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="provided")
    def provided(self, request: Request, pk=None) -> Response:
        """Marks the order as served."""
        return self._handle_status_change(pk, "provided")

    @action(detail=True, methods=["post"], url_path="paid")
    def paid(self, request: Request, pk=None) -> Response:
        """Marks the order as settled."""
        return self._handle_status_change(pk, "paid")

    def _handle_status_change(self, pk, new_status) -> Response:
        """Generic handler for status-changing actions."""
        try:
            order = OrderService.update_status(pk, new_status)
        except OrderNotFound as e:
            return Response({"error": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidStatusTransition as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PersistenceError as e:
            return Response({"error": str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(OrderSerializer(order).data)
