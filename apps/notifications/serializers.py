"""Serializers for notifications."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for notifications."""

    class Meta:
        model = Notification
        fields = [
            "id",
            "user",
            "rental_request",
            "type",
            "title",
            "message",
            "data",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = ["user", "rental_request", "is_read", "read_at", "created_at"]


class NotificationMarkReadSerializer(serializers.Serializer):
    notification_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, allow_empty=True
    )
    mark_all = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):  # type: ignore
        if not attrs.get("mark_all") and not attrs.get("notification_ids"):
            raise serializers.ValidationError(
                "Provide notification_ids or set mark_all to true."
            )
        return attrs
