"""Serializers for the products domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.users.serializers import UserShortSerializer
from .models import Product

ACTIVE_RENTAL_STATUSES = ("accepted", "active", "paid")


class ProductSerializer(serializers.ModelSerializer):
    """Read representation of a product with its current rental state."""

    owner = UserShortSerializer(read_only=True)
    current_rental_status = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "owner",
            "title",
            "description",
            "category",
            "rental_price",
            "location",
            "status",
            "image_urls",
            "current_rental_status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_current_rental_status(self, obj: Product) -> str | None:  # type: ignore
        if hasattr(obj, "current_rental_status"):
            return obj.current_rental_status
        latest = (
            obj.rental_requests.filter(status__in=ACTIVE_RENTAL_STATUSES)
            .order_by("-created_at")
            .values_list("status", flat=True)
            .first()
        )
        return latest


class ProductWriteSerializer(serializers.ModelSerializer):
    """Create and update products."""

    image_urls = serializers.ListField(
        child=serializers.URLField(),
        allow_empty=False,
    )

    class Meta:
        model = Product
        fields = [
            "title",
            "description",
            "category",
            "rental_price",
            "location",
            "status",
            "image_urls",
        ]
        extra_kwargs = {
            "status": {"required": False},
        }

    def validate_rental_price(self, value):  # type: ignore
        if value <= 0:
            raise serializers.ValidationError("Rental price must be greater than zero.")
        return value

    def to_representation(self, instance):  # type: ignore
        return ProductSerializer(instance, context=self.context).data


class ProductShortSerializer(serializers.ModelSerializer):
    """Compact product representation embedded in rentals and wishlists."""

    owner = UserShortSerializer(read_only=True)

    class Meta:
        model = Product
        fields = ["id", "title", "category", "rental_price", "location", "status", "image_urls", "owner"]
        read_only_fields = fields
