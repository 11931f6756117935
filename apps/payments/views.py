"""API views for payment processing.

Customers start payments for their accepted rental requests. Card-like
methods go through a Stripe PaymentIntent whose ``client_secret`` is handed
to the frontend, and Stripe reports the outcome through the webhook below.
Offline payments are confirmed by the product owner, optionally after the
customer uploads a PDF receipt.
"""

from __future__ import annotations

import logging

import stripe  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.notifications.services import notify_receipt_uploaded
from .models import Payment
from .serializers import (
    OfflineVerificationSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    PaymentStatusSerializer,
    ReceiptUploadSerializer,
)
from .services import (
    complete_payment,
    construct_stripe_event,
    create_payment,
    fail_payment,
    handle_stripe_event,
    parse_receipt_amount,
    refund_payment,
    validate_receipt_amount,
    verify_offline_payment,
)

logger = logging.getLogger(__name__)


class IsPaymentParticipant(permissions.BasePermission):
    """Only the paying customer, the product owner or admins see a payment."""

    def has_object_permission(self, request, view, obj: Payment) -> bool:  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.rental_request.is_participant(user)


class PaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset for starting and managing payments."""

    queryset = Payment.objects.select_related(
        "rental_request",
        "rental_request__customer",
        "rental_request__product",
        "rental_request__product__owner",
    ).prefetch_related("transactions")
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated, IsPaymentParticipant]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if self.action != "list":
            return qs.filter(
                Q(rental_request__customer=user) | Q(rental_request__product__owner=user)
            )

        if self.request.query_params.get("as_owner") == "true":
            qs = qs.filter(rental_request__product__owner=user)
        else:
            qs = qs.filter(rental_request__customer=user)

        payment_status = self.request.query_params.get("payment_status")
        if payment_status:
            qs = qs.filter(payment_status=payment_status)
        return qs

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_payment(
            serializer.validated_data["rental_request"],
            serializer.validated_data["payment_method"],
            request.user,
        )
        return Response(
            {
                "payment": PaymentSerializer(result["payment"]).data,
                "payment_id": result["payment"].pk,
                "client_secret": result["client_secret"],
                "is_offline": result["is_offline"],
                "expires_at": result["expires_at"],
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["patch"], url_path="status", url_name="status")
    def update_status(self, request, pk=None):  # type: ignore
        payment: Payment = self.get_object()  # type: ignore
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["payment_status"]
        notes = serializer.validated_data["notes"]

        is_owner = payment.rental_request.product.owner_id == request.user.id
        if new_status == Payment.Status.COMPLETED:
            if payment.is_offline and not is_owner:
                raise PermissionDenied("Only the product owner can confirm offline payments.")
            complete_payment(payment)
        elif new_status == Payment.Status.FAILED:
            fail_payment(payment, notes or "Marked as failed by a participant.")
        else:
            if not is_owner:
                raise PermissionDenied("Only the product owner can refund payments.")
            refund_payment(payment, notes)

        payment.refresh_from_db()
        return Response(PaymentSerializer(payment).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="verify-offline")
    def verify_offline(self, request, pk=None):  # type: ignore
        payment: Payment = self.get_object()  # type: ignore
        serializer = OfflineVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        verify_offline_payment(payment, request.user, serializer.validated_data["notes"])
        logger.info("Offline payment %s verified by owner %s", payment.pk, request.user.pk)

        payment.refresh_from_db()
        return Response(
            {
                "status": "success",
                "message": "Offline payment verified.",
                "payment": PaymentSerializer(payment).data,
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["post"], url_path="upload-receipt")
    def upload_receipt(self, request, pk=None):  # type: ignore
        """
        Upload a PDF receipt for an offline payment.
        The amount is read from the PDF and the owner is asked to verify.
        """
        payment: Payment = self.get_object()  # type: ignore

        if payment.rental_request.customer_id != request.user.id:
            raise PermissionDenied("Only the customer can upload a receipt.")

        if not payment.is_offline:
            return Response(
                {"detail": "Receipts can only be uploaded for offline payments."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if payment.payment_status != Payment.Status.PENDING:
            return Response(
                {"detail": "Payment is not pending."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        serializer = ReceiptUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        receipt_file = serializer.validated_data["receipt_file"]

        parsed_amount = parse_receipt_amount(receipt_file)
        if parsed_amount is None:
            return Response(
                {"detail": "Could not read the amount from the receipt. Check the file and try again."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        is_valid = validate_receipt_amount(parsed_amount, payment.amount)

        with transaction.atomic():
            payment.receipt_file = receipt_file
            payment.receipt_amount = parsed_amount
            payment.save(update_fields=["receipt_file", "receipt_amount", "updated_at"])

        notify_receipt_uploaded(payment, is_valid)
        logger.info(
            "Receipt uploaded for payment %s: parsed=%s expected=%s valid=%s",
            payment.pk,
            parsed_amount,
            payment.amount,
            is_valid,
        )

        return Response(
            {
                "status": "success",
                "message": "Receipt uploaded. Waiting for the owner to verify.",
                "parsed_amount": str(parsed_amount),
                "expected_amount": str(payment.amount),
                "amount_valid": is_valid,
                "payment": PaymentSerializer(payment).data,
            },
            status=status.HTTP_200_OK,
        )


class StripeWebhookView(APIView):
    """Receives Stripe events; authenticity comes from the signature header."""

    authentication_classes: list = []
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):  # type: ignore
        signature = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not signature:
            return Response(
                {"detail": "Missing Stripe signature."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            event = construct_stripe_event(request.body, signature)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("Rejected Stripe webhook: %s", e)
            return Response(
                {"detail": "Invalid Stripe webhook."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        record = handle_stripe_event(event)
        logger.info("Stripe event %s handled with status %s", record.event, record.status)
        return Response({"received": True}, status=status.HTTP_200_OK)
