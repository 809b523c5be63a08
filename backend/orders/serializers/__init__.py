"""
Orders serializers package.
"""

from .order_item_serializers import OrderItemInputSerializer, OrderItemSerializer
from .order_serializers import OrderCreateSerializer, OrderSerializer
from .status_serializers import UpdateOrderStatusSerializer

__all__ = [
    'OrderItemInputSerializer',
    'OrderItemSerializer',
    'OrderCreateSerializer',
    'OrderSerializer',
    'UpdateOrderStatusSerializer',
]
