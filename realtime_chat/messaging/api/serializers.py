from rest_framework import serializers


class SendMessageSerializer(serializers.Serializer):
    """Shape check only; content rules live in the relay."""

    text = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False, default="")
    image = serializers.CharField(required=False, allow_blank=True, default="")
