from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny
import logging

from orders.exceptions import OrderNotFound, PersistenceError
from terminals.services import RegistryUnavailable
from .exceptions import NoTargets, TransportNotConfigured
from .serializers import SendNotificationSerializer
from .services import OrderNotificationService

logger = logging.getLogger(__name__)


class SendNotificationView(APIView):
    """
    Dispatch trigger: pushes an order to every registered staff device.

    Request: { "orderId": "<uuid>" }
    Response: { "success": true, "summary": { "total", "successful", "failed" } }
    The response is 200 whatever the individual device outcomes were.
    """

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = SendNotificationSerializer(data=request.data)
        if not serializer.is_valid():
            return self._error("orderId is required", status.HTTP_400_BAD_REQUEST)
        order_id = serializer.validated_data["orderId"]

        try:
            summary = OrderNotificationService().notify_order(order_id)
        except TransportNotConfigured as e:
            logger.error(f"Push transport not configured: {e}")
            return self._error(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
        except OrderNotFound:
            return self._error("Order not found", status.HTTP_404_NOT_FOUND)
        except NoTargets as e:
            return self._error(str(e), status.HTTP_404_NOT_FOUND)
        except PersistenceError as e:
            return self._error(f"Failed to fetch order: {e}", status.HTTP_500_INTERNAL_SERVER_ERROR)
        except RegistryUnavailable as e:
            return self._error(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({"success": True, "summary": summary.to_dict()}, status=status.HTTP_200_OK)

    @staticmethod
    def _error(message, http_status):
        return Response({"success": False, "error": message}, status=http_status)
