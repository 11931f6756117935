"""Invoice services.

An invoice mirrors one rental request. Its ``amount`` is always the sum of
``subtotal``, ``tax_amount`` and the three fee fields; every fee change also
upserts the matching :class:`InvoiceItem` so the line items stay in step.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Q, Sum  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.html import format_html, format_html_join  # type: ignore

from apps.notifications.services import send_email_notification
from .exceptions import InvoiceAlreadyExistsError
from .models import Invoice, InvoiceDownload, InvoiceItem

if TYPE_CHECKING:  # pragma: no cover
    from apps.rentals.models import RentalRequest

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
DAMAGE_INVOICE_DUE_DAYS = 7
INVOICE_NUMBER_ATTEMPTS = 10

FEE_ITEMS = {
    InvoiceItem.ItemType.LATE_FEE: ("late_fee", "Late return fee"),
    InvoiceItem.ItemType.DAMAGE_FEE: ("damage_fee", "Damage fee"),
    InvoiceItem.ItemType.ADDITIONAL_CHARGE: ("additional_charges", "Additional charges"),
}


def generate_invoice_number() -> str:
    """``INV-YYYYMMDD-NNNN`` that is not used yet."""
    prefix = f"INV-{timezone.now():%Y%m%d}"
    for _ in range(INVOICE_NUMBER_ATTEMPTS):
        number = f"{prefix}-{random.randint(0, 9999):04d}"
        if not Invoice.objects.filter(invoice_number=number).exists():
            return number
    raise IntegrityError("Could not generate a unique invoice number.")


def invoices_for_user(user):  # type: ignore
    """Invoices where the user is the customer or the product owner."""
    return Invoice.objects.select_related(
        "rental_request",
        "rental_request__customer",
        "rental_request__product",
        "rental_request__product__owner",
    ).filter(
        Q(rental_request__customer=user) | Q(rental_request__product__owner=user)
    )


def _upsert_item(
    invoice: Invoice,
    item_type: str,
    description: str,
    amount: Decimal,
    quantity: int = 1,
) -> InvoiceItem:
    item, _ = InvoiceItem.objects.update_or_create(
        invoice=invoice,
        item_type=item_type,
        defaults={
            "description": description,
            "quantity": quantity,
            "unit_price": (amount / quantity).quantize(CENT),
            "total_price": amount,
        },
    )
    return item


@transaction.atomic
def create_invoice(
    rental_request: "RentalRequest",
    due_date: datetime | None = None,
    notes: str = "",
    *,
    subtotal: Decimal | None = None,
) -> Invoice:
    """Issue the invoice of a rental request.

    ``subtotal`` defaults to the rental price; damage-only invoices pass zero.
    """
    if Invoice.objects.filter(rental_request=rental_request).exists():
        raise InvoiceAlreadyExistsError()

    if subtotal is None:
        subtotal = rental_request.price
    subtotal = Decimal(subtotal).quantize(CENT)
    tax_rate = settings.INVOICE_TAX_RATE
    tax_amount = (subtotal * tax_rate).quantize(CENT)

    invoice = Invoice(
        rental_request=rental_request,
        invoice_number=generate_invoice_number(),
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        due_date=due_date or timezone.now() + timedelta(days=settings.INVOICE_DUE_DAYS),
        notes=notes,
    )
    invoice.recalculate_amount()
    invoice.save()

    if subtotal > 0:
        _upsert_item(
            invoice,
            InvoiceItem.ItemType.RENTAL_FEE,
            f"Rental of {rental_request.product.title} "
            f"({rental_request.start_date:%Y-%m-%d} to {rental_request.end_date:%Y-%m-%d})",
            subtotal,
        )

    logger.info(
        "Invoice %s created for rental %s (amount %s)",
        invoice.invoice_number,
        rental_request.pk,
        invoice.amount,
    )
    return invoice


@transaction.atomic
def set_fee(
    invoice: Invoice,
    item_type: str,
    amount: Decimal,
    description: str | None = None,
) -> Invoice:
    """Set one of the fee fields, recompute the total and upsert the item."""
    field, default_description = FEE_ITEMS[item_type]
    amount = Decimal(amount).quantize(CENT)
    setattr(invoice, field, amount)
    invoice.recalculate_amount()
    invoice.save(update_fields=[field, "amount", "updated_at"])

    if amount > 0:
        _upsert_item(invoice, item_type, description or default_description, amount)
    else:
        InvoiceItem.objects.filter(invoice=invoice, item_type=item_type).delete()
    return invoice


def add_late_fee(invoice: Invoice, amount: Decimal, description: str | None = None) -> Invoice:
    return set_fee(invoice, InvoiceItem.ItemType.LATE_FEE, amount, description)


def add_damage_fee(invoice: Invoice, amount: Decimal, description: str | None = None) -> Invoice:
    return set_fee(invoice, InvoiceItem.ItemType.DAMAGE_FEE, amount, description)


def add_additional_charges(
    invoice: Invoice, amount: Decimal, description: str | None = None
) -> Invoice:
    return set_fee(invoice, InvoiceItem.ItemType.ADDITIONAL_CHARGE, amount, description)


def mark_as_paid(invoice: Invoice) -> Invoice:
    invoice.mark_paid()
    logger.info("Invoice %s marked as paid", invoice.invoice_number)
    return invoice


@transaction.atomic
def mark_rental_invoice_paid(rental_request: "RentalRequest") -> Invoice:
    """Settle the rental's invoice, issuing it first if there is none yet."""
    invoice = Invoice.objects.filter(rental_request=rental_request).first()
    if invoice is None:
        invoice = create_invoice(rental_request)
    if invoice.invoice_status != Invoice.Status.PAID:
        mark_as_paid(invoice)
    return invoice


def check_overdue_invoices() -> int:
    """Flag sent invoices whose due date has passed. Returns the count."""
    updated = Invoice.objects.filter(
        invoice_status=Invoice.Status.SENT,
        due_date__lt=timezone.now(),
    ).update(invoice_status=Invoice.Status.OVERDUE, updated_at=timezone.now())
    if updated:
        logger.info("Marked %s invoice(s) as overdue", updated)
    return updated


def get_invoice_statistics(user) -> dict[str, Any]:  # type: ignore
    qs = invoices_for_user(user)
    paid_qs = qs.filter(invoice_status=Invoice.Status.PAID)
    outstanding_qs = qs.exclude(
        invoice_status__in=[Invoice.Status.PAID, Invoice.Status.CANCELLED]
    )
    return {
        "total": qs.count(),
        "paid": paid_qs.count(),
        "pending": qs.filter(
            invoice_status__in=[Invoice.Status.PENDING, Invoice.Status.SENT]
        ).count(),
        "overdue": qs.filter(invoice_status=Invoice.Status.OVERDUE).count(),
        "total_revenue": paid_qs.aggregate(total=Sum("amount"))["total"] or Decimal("0.00"),
        "outstanding_amount": outstanding_qs.aggregate(total=Sum("amount"))["total"]
        or Decimal("0.00"),
    }


@transaction.atomic
def apply_damage_assessment(assessment) -> Invoice | None:  # type: ignore
    """Charge an assessed damage on the rental's invoice."""
    cost = Decimal(assessment.estimated_cost or 0)
    if cost <= 0:
        return None

    rental_request = assessment.product_return.rental_request
    description = f"Damage ({assessment.get_severity_display().lower()}): {assessment.damage_type}"
    invoice = Invoice.objects.filter(rental_request=rental_request).first()
    if invoice is None:
        invoice = create_invoice(
            rental_request,
            due_date=timezone.now() + timedelta(days=DAMAGE_INVOICE_DUE_DAYS),
            notes="Damage charges",
            subtotal=Decimal("0.00"),
        )
    add_damage_fee(invoice, cost, description)
    logger.info(
        "Damage assessment %s charged %s on invoice %s",
        assessment.pk,
        cost,
        invoice.invoice_number,
    )
    return invoice


def send_invoice_email(invoice: Invoice, recipient_email: str) -> bool:
    """Email the invoice summary with its line items."""
    rental_request = invoice.rental_request
    rows = format_html_join(
        "\n", "<li>{}: ${}</li>", ((item.description, item.total_price) for item in invoice.items.all())
    )
    html_message = format_html(
        """
    <html>
    <body>
        <h2>Invoice {number}</h2>
        <p>Rental of <strong>{title}</strong>
        from {start} to {end}.</p>

        <ul>
            {rows}
        </ul>
        <ul>
            <li><strong>Subtotal:</strong> ${subtotal}</li>
            <li><strong>Tax:</strong> ${tax}</li>
            <li><strong>Total:</strong> ${total}</li>
            <li><strong>Due:</strong> {due}</li>
            <li><strong>Status:</strong> {status}</li>
        </ul>

        <p><a href="{frontend_url}/invoices/{invoice_id}">View invoice</a></p>

        <p>Best regards,<br>The Rentify team</p>
    </body>
    </html>
    """,
        number=invoice.invoice_number,
        title=rental_request.product.title,
        start=f"{rental_request.start_date:%Y-%m-%d}",
        end=f"{rental_request.end_date:%Y-%m-%d}",
        rows=rows,
        subtotal=invoice.subtotal,
        tax=invoice.tax_amount,
        total=invoice.amount,
        due=f"{invoice.due_date:%Y-%m-%d}",
        status=invoice.get_invoice_status_display(),
        frontend_url=settings.FRONTEND_URL,
        invoice_id=invoice.pk,
    )
    return send_email_notification(
        recipient_email=recipient_email,
        subject=f"Invoice {invoice.invoice_number} from Rentify",
        template_name=None,
        context={"invoice": invoice},
        html_message=html_message,
    )


def record_download(
    invoice: Invoice,
    user,  # type: ignore
    format: str,
    file_size: int | None = None,
    success: bool = True,
) -> InvoiceDownload:
    return InvoiceDownload.objects.create(
        invoice=invoice,
        user=user,
        format=format,
        file_size=file_size,
        success=success,
    )
