"""Serializers for the payments domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.rentals.models import RentalRequest
from .models import Payment, PaymentTransaction


class PaymentTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentTransaction
        fields = ["id", "event_id", "event", "status", "created_at"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    """Payment as shown to the customer and the product owner."""

    transactions = PaymentTransactionSerializer(many=True, read_only=True)
    is_offline = serializers.BooleanField(read_only=True)
    product_id = serializers.ReadOnlyField(source="rental_request.product_id")
    product_title = serializers.ReadOnlyField(source="rental_request.product.title")
    customer_id = serializers.ReadOnlyField(source="rental_request.customer_id")

    class Meta:
        model = Payment
        fields = [
            "id",
            "rental_request",
            "product_id",
            "product_title",
            "customer_id",
            "payment_method",
            "payment_status",
            "amount",
            "transaction_id",
            "notes",
            "is_offline",
            "payment_date",
            "receipt_file",
            "receipt_amount",
            "created_at",
            "updated_at",
            "transactions",
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    """Start a payment; the amount always comes from the rental request."""

    rental_request_id = serializers.PrimaryKeyRelatedField(
        source="rental_request",
        queryset=RentalRequest.objects.select_related("product", "product__owner", "customer"),
    )
    payment_method = serializers.ChoiceField(choices=Payment.Method.choices)


class PaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(
        choices=[
            Payment.Status.COMPLETED,
            Payment.Status.FAILED,
            Payment.Status.REFUNDED,
        ]
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OfflineVerificationSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ReceiptUploadSerializer(serializers.Serializer):
    """Upload of a PDF receipt for an offline payment."""

    receipt_file = serializers.FileField(
        required=True,
        help_text="PDF receipt of the offline payment",
    )

    def validate_receipt_file(self, value):  # type: ignore
        if not value.name.lower().endswith('.pdf'):
            raise serializers.ValidationError("Only PDF files are accepted.")
        if value.size > 10 * 1024 * 1024:
            raise serializers.ValidationError("File size must not exceed 10 MB.")
        return value
