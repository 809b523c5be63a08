from rest_framework import serializers


class SendNotificationSerializer(serializers.Serializer):
    """Request body of the dispatch trigger: { "orderId": "<uuid>" }."""

    orderId = serializers.CharField(trim_whitespace=True)
