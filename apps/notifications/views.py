"""API views for notifications."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Notification
from .serializers import NotificationMarkReadSerializer, NotificationSerializer
from .services import get_unread_count

DEFAULT_LIMIT = 20
MAX_LIMIT = 50


class NotificationViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """List, create and mark notifications of the authenticated user."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return Notification.objects.filter(user=self.request.user)

    def list(self, request, *args, **kwargs):  # type: ignore
        qs = self.get_queryset()
        if request.query_params.get("unread_only") in {"true", "1"}:
            qs = qs.filter(is_read=False)

        try:
            limit = int(request.query_params.get("limit", DEFAULT_LIMIT))
        except (TypeError, ValueError):
            limit = DEFAULT_LIMIT
        limit = max(1, min(limit, MAX_LIMIT))

        serializer = self.get_serializer(qs[:limit], many=True)
        return Response(
            {
                "results": serializer.data,
                "unread_count": get_unread_count(request.user),
            }
        )

    def perform_create(self, serializer):  # type: ignore
        serializer.save(user=self.request.user)

    @action(detail=False, methods=["patch"], url_path="mark-read")
    def mark_read_bulk(self, request):  # type: ignore
        serializer = NotificationMarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        qs = self.get_queryset().filter(is_read=False)
        if not serializer.validated_data.get("mark_all"):
            qs = qs.filter(pk__in=serializer.validated_data["notification_ids"])
        updated = qs.update(is_read=True, read_at=timezone.now(), updated_at=timezone.now())

        return Response(
            {"updated": updated, "unread_count": get_unread_count(request.user)},
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["post"])
    def mark_read(self, request, pk=None):  # type: ignore
        notification = self.get_object()
        notification.mark_read()
        return Response({"status": "read"}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):  # type: ignore
        return Response({"unread_count": get_unread_count(request.user)})
