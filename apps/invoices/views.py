"""API views for invoices."""

from __future__ import annotations

import logging

from django.http import HttpResponse  # type: ignore
from django.utils import timezone  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.notifications.services import notify_invoice_emailed, notify_invoice_paid
from .exports import export_invoices
from .filters import InvoiceFilterSet
from .models import Invoice, InvoiceItem
from .serializers import (
    BulkDownloadSerializer,
    InvoiceCreateSerializer,
    InvoiceDownloadSerializer,
    InvoiceEmailSerializer,
    InvoiceSerializer,
    InvoiceUpdateSerializer,
)
from .services import (
    create_invoice,
    get_invoice_statistics,
    invoices_for_user,
    mark_as_paid,
    record_download,
    send_invoice_email,
    set_fee,
)

logger = logging.getLogger(__name__)

FEE_FIELDS = {
    "late_fee": InvoiceItem.ItemType.LATE_FEE,
    "damage_fee": InvoiceItem.ItemType.DAMAGE_FEE,
    "additional_charges": InvoiceItem.ItemType.ADDITIONAL_CHARGE,
}


def _file_response(content: bytes, content_type: str, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type=content_type)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


class InvoiceViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Invoices visible to the customer and the product owner of a rental."""

    serializer_class = InvoiceSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = InvoiceFilterSet

    def get_queryset(self):  # type: ignore
        return invoices_for_user(self.request.user).prefetch_related("items")

    def _require_owner(self, invoice: Invoice) -> None:
        if invoice.rental_request.product.owner_id != self.request.user.id:
            raise PermissionDenied("Only the product owner can change this invoice.")

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = InvoiceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rental_request = serializer.validated_data["rental_request"]

        if rental_request.product.owner_id != request.user.id:
            raise PermissionDenied("Only the product owner can issue invoices.")

        invoice = create_invoice(
            rental_request,
            due_date=serializer.validated_data.get("due_date"),
            notes=serializer.validated_data["notes"],
        )
        if send_invoice_email(invoice, rental_request.customer.email):
            invoice.mark_sent()

        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        invoice: Invoice = self.get_object()  # type: ignore
        self._require_owner(invoice)

        serializer = InvoiceUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        for field, item_type in FEE_FIELDS.items():
            if field in data:
                set_fee(invoice, item_type, data[field])

        update_fields = []
        for field in ("notes", "due_date"):
            if field in data:
                setattr(invoice, field, data[field])
                update_fields.append(field)
        if update_fields:
            invoice.save(update_fields=update_fields + ["updated_at"])

        new_status = data.get("invoice_status")
        if new_status == Invoice.Status.PAID and invoice.invoice_status != Invoice.Status.PAID:
            mark_as_paid(invoice)
            notify_invoice_paid(invoice)
        elif new_status and new_status != invoice.invoice_status:
            invoice.invoice_status = new_status
            invoice.paid_date = None
            invoice.save(update_fields=["invoice_status", "paid_date", "updated_at"])

        invoice.refresh_from_db()
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=["post"])
    def email(self, request, pk=None):  # type: ignore
        invoice: Invoice = self.get_object()  # type: ignore
        serializer = InvoiceEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rental_request = invoice.rental_request
        allowed = {rental_request.customer.email.lower(), rental_request.product.owner.email.lower()}
        recipient = serializer.validated_data.get("recipient_email") or rental_request.customer.email
        if recipient.lower() not in allowed:
            raise ValidationError(
                {"recipient_email": "Invoices can only be sent to the customer or the owner."}
            )

        if not send_invoice_email(invoice, recipient):
            return Response(
                {"detail": "Failed to send the invoice email."},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        if invoice.invoice_status == Invoice.Status.PENDING:
            invoice.mark_sent()
        notify_invoice_emailed(invoice, recipient)
        logger.info("Invoice %s emailed to %s by user %s", invoice.pk, recipient, request.user.pk)
        return Response({"status": "sent", "recipient_email": recipient})

    @action(detail=True, methods=["post"])
    def downloads(self, request, pk=None):  # type: ignore
        invoice: Invoice = self.get_object()  # type: ignore
        serializer = InvoiceDownloadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        download = serializer.save(invoice=invoice, user=request.user, downloaded_at=timezone.now())
        return Response(InvoiceDownloadSerializer(download).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"])
    def export(self, request, pk=None):  # type: ignore
        invoice: Invoice = self.get_object()  # type: ignore
        export_format = request.query_params.get("format", "csv")
        if export_format not in ("csv", "excel"):
            raise ValidationError({"format": "Format must be csv or excel."})

        content, content_type, filename = export_invoices([invoice], export_format)
        record_download(invoice, request.user, export_format, file_size=len(content))
        return _file_response(content, content_type, filename.replace("invoices_", f"{invoice.invoice_number}_"))

    @action(detail=False, methods=["post"], url_path="bulk-download")
    def bulk_download(self, request):  # type: ignore
        serializer = BulkDownloadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invoice_ids = set(serializer.validated_data["invoice_ids"])
        export_format = serializer.validated_data["format"]

        invoices = list(self.get_queryset().filter(pk__in=invoice_ids).order_by("created_at"))
        if len(invoices) != len(invoice_ids):
            raise NotFound("Some invoices were not found.")

        content, content_type, filename = export_invoices(invoices, export_format)
        for invoice in invoices:
            record_download(invoice, request.user, export_format, file_size=len(content))
        logger.info("User %s exported %s invoice(s) as %s", request.user.pk, len(invoices), export_format)
        return _file_response(content, content_type, filename)

    @action(detail=False, methods=["get"])
    def statistics(self, request):  # type: ignore
        return Response(get_invoice_statistics(request.user))
