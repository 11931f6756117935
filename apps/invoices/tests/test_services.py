from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.core import mail
from django.utils import timezone

from apps.invoices.models import Invoice, InvoiceItem
from apps.invoices.services import (
    add_damage_fee,
    create_invoice,
    mark_rental_invoice_paid,
    send_invoice_email,
)
from apps.invoices.tasks import check_overdue_invoices
from apps.products.models import Product
from apps.rentals.models import RentalRequest
from apps.users.models import User


@pytest.fixture
def rental(db):
    owner = User.objects.create_user(email="owner@example.com", password="OwnerPass123")
    customer = User.objects.create_user(email="customer@example.com", password="CustomerPass123")
    product = Product.objects.create(
        owner=owner,
        title="Ladder",
        description="Extension ladder",
        category="tools",
        rental_price=Decimal("12.50"),
        location="Chicago",
    )
    start = timezone.now() + timedelta(days=1)
    return RentalRequest.objects.create(
        customer=customer,
        product=product,
        status=RentalRequest.Status.PAID,
        start_date=start,
        end_date=start + timedelta(days=2),
        price=Decimal("25.00"),
    )


@pytest.mark.django_db
def test_amount_always_matches_components(rental, settings):
    settings.INVOICE_TAX_RATE = Decimal("0.10")
    invoice = create_invoice(rental)
    add_damage_fee(invoice, Decimal("40"), "Scratched rail")
    invoice.refresh_from_db()

    assert invoice.tax_amount == Decimal("2.50")
    assert invoice.amount == Decimal("67.50")
    assert invoice.amount == (
        invoice.subtotal
        + invoice.tax_amount
        + invoice.late_fee
        + invoice.damage_fee
        + invoice.additional_charges
    )
    damage_item = invoice.items.get(item_type=InvoiceItem.ItemType.DAMAGE_FEE)
    assert damage_item.description == "Scratched rail"
    assert damage_item.total_price == Decimal("40.00")


@pytest.mark.django_db
def test_paying_rental_issues_and_settles_invoice(rental):
    invoice = mark_rental_invoice_paid(rental)

    assert invoice.invoice_status == Invoice.Status.PAID
    assert invoice.paid_date is not None
    assert mark_rental_invoice_paid(rental).pk == invoice.pk


@pytest.mark.django_db
def test_overdue_task_only_touches_sent_invoices(rental):
    invoice = create_invoice(rental, due_date=timezone.now() - timedelta(days=1))
    assert check_overdue_invoices() == {"overdue": 0}

    invoice.mark_sent()
    assert check_overdue_invoices() == {"overdue": 1}
    invoice.refresh_from_db()
    assert invoice.invoice_status == Invoice.Status.OVERDUE


@pytest.mark.django_db
def test_invoice_email_escapes_user_text(rental):
    rental.product.title = '<a href="https://evil.example">Ladder</a>'
    rental.product.save(update_fields=["title"])
    invoice = create_invoice(rental)
    add_damage_fee(invoice, Decimal("5"), "<script>alert(1)</script>")

    assert send_invoice_email(invoice, "customer@example.com")

    html_body = mail.outbox[0].alternatives[0][0]
    assert '<a href="https://evil.example">' not in html_body
    assert "&lt;a href=&quot;https://evil.example&quot;&gt;Ladder&lt;/a&gt;" in html_body
    assert "<script>" not in html_body
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html_body
