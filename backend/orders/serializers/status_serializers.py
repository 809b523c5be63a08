from rest_framework import serializers
from orders.models import Order


class UpdateOrderStatusSerializer(serializers.Serializer):
    """
    Validates a requested status value.
    Transition rules live in OrderStateMachine.
    """

    status = serializers.ChoiceField(choices=Order.OrderStatus.choices)
