"""Serializers for user-related API endpoints."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import PHONE_VALIDATOR

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Main user serializer."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "phone",
            "avatar_url",
            "bio",
            "location",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "email", "created_at", "updated_at"]


class UserShortSerializer(serializers.ModelSerializer):
    """Public subset of user data embedded in other resources."""

    class Meta:
        model = User
        fields = ["id", "name", "email"]


class ProfileSerializer(UserSerializer):
    """Current user profile with marketplace activity counters."""

    phone = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
    )
    products_count = serializers.SerializerMethodField()
    rentals_count = serializers.SerializerMethodField()
    wishlist_count = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + [
            "products_count",
            "rentals_count",
            "wishlist_count",
        ]

    def get_products_count(self, obj) -> int:  # type: ignore
        return obj.products.count()

    def get_rentals_count(self, obj) -> int:  # type: ignore
        return obj.rental_requests.count()

    def get_wishlist_count(self, obj) -> int:  # type: ignore
        return obj.wishlist_items.count()

    def validate_phone(self, value):  # type: ignore
        if not value:
            return None
        value = User.objects.normalize_phone(value)
        PHONE_VALIDATOR(value)
        qs = User.objects.filter(phone=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("A user with this phone already exists.")
        return value
