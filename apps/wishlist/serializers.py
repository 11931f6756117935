"""Serializers for the wishlist domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.products.models import Product
from apps.products.serializers import ProductShortSerializer
from .models import WishlistItem


class WishlistItemSerializer(serializers.ModelSerializer):
    """Serializer for listing wishlist items."""

    product_id = serializers.ReadOnlyField(source='product.id')
    product = ProductShortSerializer(read_only=True)

    class Meta:
        model = WishlistItem
        fields = ['id', 'product_id', 'product', 'created_at']
        read_only_fields = fields


class WishlistProductSerializer(serializers.Serializer):
    """Body of create and toggle requests."""

    product_id = serializers.IntegerField()

    def validate_product_id(self, value):  # type: ignore
        if not Product.objects.filter(pk=value).exists():
            raise serializers.ValidationError("Product not found.")
        return value
