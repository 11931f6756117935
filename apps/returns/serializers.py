"""Serializers for returns and damage assessments."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.rentals.models import RentalRequest
from .models import DamageAssessment, DamagePhoto, ProductReturn


class DamagePhotoSerializer(serializers.ModelSerializer):
    class Meta:
        model = DamagePhoto
        fields = ["id", "photo_url", "description", "uploaded_at"]
        read_only_fields = ["id", "uploaded_at"]


class DamageAssessmentSerializer(serializers.ModelSerializer):
    photos = DamagePhotoSerializer(many=True, read_only=True)

    class Meta:
        model = DamageAssessment
        fields = [
            "id",
            "product_return",
            "damage_type",
            "severity",
            "description",
            "estimated_cost",
            "approved",
            "assessed_by",
            "assessment_date",
            "photos",
        ]
        read_only_fields = ["id", "product_return", "assessed_by", "assessment_date", "photos"]


class ProductReturnSerializer(serializers.ModelSerializer):
    """Return record with the rental summary and any damage assessment."""

    damage_assessment = DamageAssessmentSerializer(read_only=True)
    product_id = serializers.ReadOnlyField(source="rental_request.product_id")
    product_title = serializers.ReadOnlyField(source="rental_request.product.title")
    customer_id = serializers.ReadOnlyField(source="rental_request.customer_id")

    class Meta:
        model = ProductReturn
        fields = [
            "id",
            "rental_request",
            "product_id",
            "product_title",
            "customer_id",
            "return_date",
            "return_location",
            "return_status",
            "condition_notes",
            "customer_signature",
            "owner_confirmation",
            "damage_assessment",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProductReturnCreateSerializer(serializers.Serializer):
    rental_request_id = serializers.PrimaryKeyRelatedField(
        source="rental_request",
        queryset=RentalRequest.objects.select_related("product", "product__owner", "customer"),
    )
    return_date = serializers.DateTimeField()
    return_location = serializers.CharField(max_length=255)
    condition_notes = serializers.CharField(required=False, allow_blank=True, default="")
    customer_signature = serializers.CharField(required=False, allow_blank=True, default="")


class ProductReturnUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductReturn
        fields = [
            "return_date",
            "return_location",
            "return_status",
            "condition_notes",
            "customer_signature",
            "owner_confirmation",
        ]
