from django.core.exceptions import ValidationError
from rest_framework import status, viewsets
from rest_framework.request import Request
from rest_framework.response import Response
import logging

from orders.exceptions import EmptyCart, OrderNotFound, PersistenceError
from orders.models import Order
from orders.serializers import OrderCreateSerializer, OrderSerializer
from orders.services import OrderService
from .status_actions import StatusActionsMixin

logger = logging.getLogger(__name__)


class OrderViewSet(StatusActionsMixin, viewsets.GenericViewSet):
    """
    ViewSet for table orders.

    - create: customer surface submits a cart
    - list / retrieve: staff surface reads orders
    - status actions (StatusActionsMixin)
    """

    queryset = Order.objects.prefetch_related("items").order_by("-created_at")
    serializer_class = OrderSerializer

    def list(self, request: Request) -> Response:
        try:
            orders = OrderService.list_orders()
        except PersistenceError as e:
            return Response({"error": str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(OrderSerializer(orders, many=True).data)

    def retrieve(self, request: Request, pk=None) -> Response:
        try:
            order = OrderService.get_order(pk)
        except OrderNotFound as e:
            return Response({"error": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except PersistenceError as e:
            return Response({"error": str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(OrderSerializer(order).data)

    def create(self, request: Request) -> Response:
        """
        Submits an order. Responds as soon as the order is persisted;
        staff notification happens afterwards and cannot fail this request.
        """
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order_id = OrderService.submit_order(
                table_name=serializer.validated_data["table_name"],
                items=request.data.get("items") or [],
            )
        except EmptyCart as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except ValidationError as e:
            return Response({"error": e.message_dict if hasattr(e, "error_dict") else e.messages},
                            status=status.HTTP_400_BAD_REQUEST)
        except PersistenceError as e:
            return Response({"error": str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response({"id": str(order_id)}, status=status.HTTP_201_CREATED)
