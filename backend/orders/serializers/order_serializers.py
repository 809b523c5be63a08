from rest_framework import serializers
from orders.models import Order
from .order_item_serializers import OrderItemInputSerializer, OrderItemSerializer


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = ["id", "table_name", "status", "items", "created_at"]
        read_only_fields = fields


class OrderCreateSerializer(serializers.Serializer):
    """
    Validates the request body of order submission.
    Item lines are validated again by OrderService against the same schema.
    """

    table_name = serializers.CharField(max_length=100)
    items = OrderItemInputSerializer(many=True, allow_empty=True, required=False)
