"""API views for wishlist management."""

from __future__ import annotations

from django.db import IntegrityError, transaction  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import NotFound, ValidationError  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import WishlistItem
from .serializers import WishlistItemSerializer, WishlistProductSerializer


class WishlistViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Viewset to add, list and remove wishlist products.

    Endpoints:
    - GET /api/v1/wishlist/ - list saved products
    - POST /api/v1/wishlist/ - save a product
    - DELETE /api/v1/wishlist/remove/?product_id= - remove a product
    - POST /api/v1/wishlist/toggle/ - add or remove
    - GET /api/v1/wishlist/check/{product_id}/ - is the product saved
    """

    serializer_class = WishlistItemSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        """Users only see their own wishlist."""
        return WishlistItem.objects.select_related(
            'product', 'product__owner'
        ).filter(user=self.request.user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = WishlistProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product_id = serializer.validated_data['product_id']

        try:
            with transaction.atomic():
                item = WishlistItem.objects.create(user=request.user, product_id=product_id)
        except IntegrityError:
            raise ValidationError({"detail": "This product is already in your wishlist."})

        item = self.get_queryset().get(pk=item.pk)
        return Response(WishlistItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['delete'])
    def remove(self, request):  # type: ignore
        product_id = request.query_params.get('product_id')
        if not product_id:
            raise ValidationError({"product_id": "This query parameter is required."})

        deleted, _ = WishlistItem.objects.filter(
            user=request.user, product_id=product_id
        ).delete()
        if not deleted:
            raise NotFound("Product is not in your wishlist.")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'])
    def toggle(self, request):  # type: ignore
        """
        Add the product if it is not saved yet, otherwise remove it.

        Returns:
            {"action": "added" | "removed", ...}
        """
        serializer = WishlistProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product_id = serializer.validated_data['product_id']

        deleted, _ = WishlistItem.objects.filter(
            user=request.user, product_id=product_id
        ).delete()
        if deleted:
            return Response(
                {"action": "removed", "product_id": product_id},
                status=status.HTTP_200_OK,
            )

        item = WishlistItem.objects.create(user=request.user, product_id=product_id)
        item = self.get_queryset().get(pk=item.pk)
        return Response(
            {"action": "added", "item": WishlistItemSerializer(item).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=['get'], url_path='check/(?P<product_id>[0-9]+)')
    def check(self, request, product_id=None):  # type: ignore
        exists = WishlistItem.objects.filter(
            user=request.user, product_id=product_id
        ).exists()
        return Response({"product_id": int(product_id), "in_wishlist": exists})
