"""Serializers for the rentals domain."""

from __future__ import annotations

from django.db import transaction  # type: ignore

from rest_framework import serializers  # type: ignore

from apps.notifications.services import notify_new_rental_request
from apps.products.models import Product
from apps.products.serializers import ProductShortSerializer
from apps.users.serializers import UserShortSerializer
from .exceptions import InvalidRentalPriceError, RequestLimitReachedError
from .models import Feedback, RentalRequest
from .services import (
    UPDATABLE_STATUSES,
    calculate_rental_price,
    ensure_product_is_available,
    get_request_limit_info,
    validate_rental_dates,
)


class FeedbackSerializer(serializers.ModelSerializer):
    class Meta:
        model = Feedback
        fields = ["id", "rental_request", "rating", "feedback", "submitted_at"]
        read_only_fields = ["id", "rental_request", "submitted_at"]


class RentalRequestSerializer(serializers.ModelSerializer):
    """Detailed rental request with product, customer and payment state."""

    customer = UserShortSerializer(read_only=True)
    product = ProductShortSerializer(read_only=True)
    payment_status = serializers.SerializerMethodField()
    invoice_id = serializers.SerializerMethodField()
    feedback = FeedbackSerializer(read_only=True)

    class Meta:
        model = RentalRequest
        fields = [
            "id",
            "customer",
            "product",
            "status",
            "start_date",
            "end_date",
            "rental_period",
            "price",
            "pickup_location",
            "return_location",
            "message",
            "payment_status",
            "invoice_id",
            "feedback",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_payment_status(self, obj: RentalRequest) -> str | None:  # type: ignore
        payment = getattr(obj, "payment", None)
        return payment.payment_status if payment else None

    def get_invoice_id(self, obj: RentalRequest) -> int | None:  # type: ignore
        invoice = getattr(obj, "invoice", None)
        return invoice.pk if invoice else None


class ActiveRentalSerializer(RentalRequestSerializer):
    is_overdue = serializers.BooleanField(read_only=True)
    return_status = serializers.SerializerMethodField()

    class Meta(RentalRequestSerializer.Meta):
        fields = RentalRequestSerializer.Meta.fields + ["is_overdue", "return_status"]
        read_only_fields = fields

    def get_return_status(self, obj: RentalRequest) -> str | None:  # type: ignore
        product_return = getattr(obj, "product_return", None)
        return product_return.return_status if product_return else None


class RentalRequestCreateSerializer(serializers.ModelSerializer):
    """Rental request created by a customer; the price is computed here."""

    product_id = serializers.PrimaryKeyRelatedField(
        source="product", queryset=Product.objects.select_related("owner")
    )

    class Meta:
        model = RentalRequest
        fields = [
            "product_id",
            "start_date",
            "end_date",
            "rental_period",
            "pickup_location",
            "return_location",
            "message",
        ]
        extra_kwargs = {
            "pickup_location": {"required": False, "allow_blank": True},
            "return_location": {"required": False, "allow_blank": True},
            "message": {"required": False, "allow_blank": True},
        }

    def validate(self, attrs):  # type: ignore
        request = self.context["request"]
        product: Product = attrs["product"]
        if product.owner_id == request.user.id:
            raise serializers.ValidationError("You cannot rent your own product.")
        validate_rental_dates(attrs["start_date"], attrs["end_date"])
        return attrs

    def create(self, validated_data):  # type: ignore
        request = self.context["request"]
        product: Product = validated_data["product"]

        with transaction.atomic():
            ensure_product_is_available(
                product,
                validated_data["start_date"],
                validated_data["end_date"],
            )
            if get_request_limit_info(product)["is_at_limit"]:
                raise RequestLimitReachedError()
            try:
                price = calculate_rental_price(
                    product.rental_price,
                    validated_data["start_date"],
                    validated_data["end_date"],
                    validated_data.get("rental_period", RentalRequest.RentalPeriod.DAILY),
                )
            except InvalidRentalPriceError as exc:
                raise serializers.ValidationError({"price": [str(exc)]})

            rental_request = RentalRequest.objects.create(
                customer=request.user,
                status=RentalRequest.Status.ACCEPTED,
                price=price,
                **validated_data,
            )

        notify_new_rental_request(rental_request)
        return rental_request

    def to_representation(self, instance):  # type: ignore
        return RentalRequestSerializer(instance, context=self.context).data


class RentalStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=sorted(UPDATABLE_STATUSES))


class AvailabilityCheckSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(
        source="product", queryset=Product.objects.all()
    )
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()

    def validate(self, attrs):  # type: ignore
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "End date must be after start date."})
        return attrs
