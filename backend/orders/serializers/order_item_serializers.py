from decimal import Decimal
from rest_framework import serializers
from orders.models import OrderItem


class OrderItemInputSerializer(serializers.Serializer):
    """
    Schema for one cart line as submitted by the ordering surface.

    Quantity 0 is accepted here so the service can drop the line; negative
    quantities are rejected.
    """

    id = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=200)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.00")
    )
    quantity = serializers.IntegerField(min_value=0)


class OrderItemSerializer(serializers.ModelSerializer):
    """Read shape of a persisted line: {id, name, price, quantity}."""

    id = serializers.CharField(source="menu_item_id", read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "name", "price", "quantity"]
        read_only_fields = fields
