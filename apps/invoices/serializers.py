"""Serializers for invoices."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from apps.rentals.models import RentalRequest
from .models import Invoice, InvoiceDownload, InvoiceItem


class InvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceItem
        fields = ["id", "description", "quantity", "unit_price", "total_price", "item_type"]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    """Invoice with its items and the rental it belongs to."""

    items = InvoiceItemSerializer(many=True, read_only=True)
    product_title = serializers.ReadOnlyField(source="rental_request.product.title")
    customer_email = serializers.ReadOnlyField(source="rental_request.customer.email")
    owner_email = serializers.ReadOnlyField(source="rental_request.product.owner.email")
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "rental_request",
            "invoice_number",
            "product_title",
            "customer_email",
            "owner_email",
            "amount",
            "subtotal",
            "tax_rate",
            "tax_amount",
            "late_fee",
            "damage_fee",
            "additional_charges",
            "invoice_status",
            "is_overdue",
            "due_date",
            "paid_date",
            "notes",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    rental_request_id = serializers.PrimaryKeyRelatedField(
        source="rental_request",
        queryset=RentalRequest.objects.select_related("product", "product__owner", "customer"),
    )
    due_date = serializers.DateTimeField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceUpdateSerializer(serializers.Serializer):
    """Fields the product owner may change on an invoice."""

    invoice_status = serializers.ChoiceField(choices=Invoice.Status.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    due_date = serializers.DateTimeField(required=False)
    late_fee = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False
    )
    damage_fee = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False
    )
    additional_charges = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False
    )


class InvoiceEmailSerializer(serializers.Serializer):
    recipient_email = serializers.EmailField(required=False)


class InvoiceDownloadSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceDownload
        fields = ["id", "invoice", "user", "format", "file_size", "success", "downloaded_at"]
        read_only_fields = ["id", "invoice", "user", "downloaded_at"]


class BulkDownloadSerializer(serializers.Serializer):
    invoice_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    format = serializers.ChoiceField(choices=["csv", "excel"])
