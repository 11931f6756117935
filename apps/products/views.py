"""Product API views."""

from __future__ import annotations

import logging

from django.db.models import OuterRef, Subquery  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.exceptions import NotAuthenticated  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.rentals.models import RentalRequest
from .filters import ProductFilterSet
from .models import Product
from .serializers import ACTIVE_RENTAL_STATUSES, ProductSerializer, ProductWriteSerializer

logger = logging.getLogger(__name__)


class IsProductOwnerOrReadOnly(permissions.BasePermission):
    """Anyone can read products, only the owner can change them."""

    def has_object_permission(self, request, view, obj: Product):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.owner_id == user.id


class ProductViewSet(viewsets.ModelViewSet):
    """Viewset for listing and managing products.

    ``?owner=true`` narrows the list to the caller's own products.
    """

    queryset = Product.objects.select_related("owner").all()
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsProductOwnerOrReadOnly]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ProductFilterSet
    ordering_fields = ["rental_price", "created_at", "title"]

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return ProductWriteSerializer
        return ProductSerializer

    def get_queryset(self):  # type: ignore
        latest_active = RentalRequest.objects.filter(
            product=OuterRef("pk"), status__in=ACTIVE_RENTAL_STATUSES
        ).order_by("-created_at")
        qs = super().get_queryset().annotate(
            current_rental_status=Subquery(latest_active.values("status")[:1])
        )
        if self.action == "list" and self.request.query_params.get("owner") == "true":
            user = self.request.user
            if not user.is_authenticated:
                raise NotAuthenticated()
            return qs.filter(owner=user)
        return qs

    def perform_create(self, serializer):  # type: ignore
        product = serializer.save(owner=self.request.user)
        logger.info("Product %s listed by user %s", product.pk, self.request.user.pk)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        product: Product = self.get_object()  # type: ignore
        if product.rental_requests.filter(status="paid").exists():
            return Response(
                {"detail": "Product has a paid rental and cannot be deleted."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        product_id = product.pk
        self.perform_destroy(product)
        logger.info("Product %s deleted by user %s", product_id, request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
