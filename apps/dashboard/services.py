"""Aggregations behind the dashboard endpoints.

Every function is scoped to one user: products they own and requests they
made as a customer. Revenue only counts completed payments.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from django.db.models import Count, Q, Sum  # type: ignore
from django.utils import timezone  # type: ignore

from apps.invoices.models import Invoice, InvoiceDownload
from apps.payments.models import Payment
from apps.products.models import Product
from apps.rentals.models import RentalRequest

ZERO = Decimal("0.00")
REVENUE_MONTHS = 6
UPCOMING_DAYS = 7


def _sum(qs, field: str = "amount") -> Decimal:  # type: ignore
    return qs.aggregate(total=Sum(field))["total"] or ZERO


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _previous_month(month_start: datetime) -> datetime:
    return _month_start(month_start - timedelta(days=1))


def _owner_payments(user):  # type: ignore
    return Payment.objects.filter(
        rental_request__product__owner=user,
        payment_status=Payment.Status.COMPLETED,
    )


def get_stats(user) -> dict[str, Any]:  # type: ignore
    products = Product.objects.filter(owner=user)
    owner_requests = RentalRequest.objects.filter(product__owner=user)
    payments = _owner_payments(user)
    month_start = _month_start(timezone.now())

    product_counts = products.aggregate(
        total=Count("id"),
        available=Count("id", filter=Q(status=Product.Status.AVAILABLE)),
        rented=Count("id", filter=Q(status=Product.Status.RENTED)),
    )
    request_counts = owner_requests.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(status=RentalRequest.Status.PENDING)),
        active=Count(
            "id",
            filter=Q(status__in=[RentalRequest.Status.ACCEPTED, RentalRequest.Status.ACTIVE]),
        ),
        paid=Count("id", filter=Q(status=RentalRequest.Status.PAID)),
        completed=Count(
            "id",
            filter=Q(status__in=[RentalRequest.Status.COMPLETED, RentalRequest.Status.RETURNED]),
        ),
    )

    return {
        "products": product_counts,
        "requests": request_counts,
        "revenue": {
            "total": _sum(payments),
            "this_month": _sum(payments.filter(payment_date__gte=month_start)),
        },
        "my_rentals": {
            "total": RentalRequest.objects.filter(customer=user).count(),
            "active": RentalRequest.objects.filter(
                customer=user, status=RentalRequest.Status.PAID
            ).count(),
        },
    }


def get_revenue(user) -> dict[str, Any]:  # type: ignore
    payments = _owner_payments(user)
    invoices = Invoice.objects.filter(rental_request__product__owner=user)

    monthly = []
    month_start = _month_start(timezone.now())
    month_end = None
    for _ in range(REVENUE_MONTHS):
        window = payments.filter(payment_date__gte=month_start)
        if month_end is not None:
            window = window.filter(payment_date__lt=month_end)
        monthly.append({"month": month_start.strftime("%Y-%m"), "revenue": _sum(window)})
        month_end = month_start
        month_start = _previous_month(month_start)
    monthly.reverse()

    pending_invoices = invoices.filter(
        invoice_status__in=[Invoice.Status.PENDING, Invoice.Status.SENT]
    )
    overdue_invoices = invoices.filter(invoice_status=Invoice.Status.OVERDUE)

    by_product = (
        payments.values("rental_request__product_id", "rental_request__product__title")
        .annotate(revenue=Sum("amount"), rentals=Count("id"))
        .order_by("-revenue")
    )

    return {
        "total_revenue": _sum(payments),
        "monthly_revenue": monthly,
        "pending_invoices": {"count": pending_invoices.count(), "amount": _sum(pending_invoices)},
        "overdue_invoices": {"count": overdue_invoices.count(), "amount": _sum(overdue_invoices)},
        "product_revenue": [
            {
                "product_id": row["rental_request__product_id"],
                "product_title": row["rental_request__product__title"],
                "revenue": row["revenue"] or ZERO,
                "rentals": row["rentals"],
            }
            for row in by_product
        ],
    }


def get_calendar_events(user) -> list[dict[str, Any]]:  # type: ignore
    events: list[dict[str, Any]] = []

    owner_paid = RentalRequest.objects.select_related("product").filter(
        product__owner=user, status=RentalRequest.Status.PAID
    )
    for rental in owner_paid:
        events.append(
            {
                "id": rental.pk,
                "title": f"Return due: {rental.product.title}",
                "date": rental.end_date,
                "type": "return",
                "status": "upcoming",
                "role": "owner",
            }
        )

    customer_paid = RentalRequest.objects.select_related("product").filter(
        customer=user, status=RentalRequest.Status.PAID
    )
    for rental in customer_paid:
        events.append(
            {
                "id": rental.pk,
                "title": f"Return product: {rental.product.title}",
                "date": rental.end_date,
                "type": "return",
                "status": "upcoming",
                "role": "customer",
            }
        )

    pending = RentalRequest.objects.select_related("product").filter(
        product__owner=user, status=RentalRequest.Status.PENDING
    )
    for rental in pending:
        events.append(
            {
                "id": rental.pk,
                "title": f"Approval needed: {rental.product.title}",
                "date": rental.created_at,
                "type": "approval",
                "status": "pending",
                "role": "owner",
            }
        )

    events.sort(key=lambda event: event["date"])
    return events


def get_recent_activities(user) -> list[dict[str, Any]]:  # type: ignore
    requests = RentalRequest.objects.select_related("product").filter(
        product__owner=user
    ).order_by("-created_at")[:10]
    payments = Payment.objects.select_related("rental_request__product").filter(
        rental_request__product__owner=user
    ).order_by("-created_at")[:5]

    activities = [
        {
            "id": rental.pk,
            "type": "rental_request",
            "title": f"New rental request for {rental.product.title}",
            "date": rental.created_at,
            "status": rental.status,
        }
        for rental in requests
    ]
    activities += [
        {
            "id": payment.pk,
            "type": "payment",
            "title": f"Payment of ${payment.amount} for {payment.rental_request.product.title}",
            "date": payment.created_at,
            "status": payment.payment_status,
        }
        for payment in payments
    ]
    activities.sort(key=lambda activity: activity["date"], reverse=True)
    return activities


def get_upcoming_events(user) -> list[dict[str, Any]]:  # type: ignore
    now = timezone.now()
    horizon = now + timedelta(days=UPCOMING_DAYS)
    due_soon = RentalRequest.objects.select_related("product").filter(
        Q(product__owner=user) | Q(customer=user),
        status=RentalRequest.Status.PAID,
        end_date__gte=now,
        end_date__lte=horizon,
    )

    events = [
        {
            "id": rental.pk,
            "type": "return",
            "title": (
                f"Return due: {rental.product.title}"
                if rental.product.owner_id == user.id
                else f"Return product: {rental.product.title}"
            ),
            "date": rental.end_date,
            "role": "owner" if rental.product.owner_id == user.id else "customer",
        }
        for rental in due_soon
    ]

    pending = RentalRequest.objects.select_related("product").filter(
        product__owner=user, status=RentalRequest.Status.PENDING
    )
    events += [
        {
            "id": rental.pk,
            "type": "approval",
            "title": f"Approval needed: {rental.product.title}",
            "date": rental.created_at,
            "role": "owner",
        }
        for rental in pending
    ]
    events.sort(key=lambda event: event["date"])
    return events


def get_download_stats(user) -> dict[str, Any]:  # type: ignore
    invoices = Invoice.objects.filter(rental_request__product__owner=user)
    downloads = InvoiceDownload.objects.filter(invoice__in=invoices)
    by_format = {
        row["format"]: row["count"]
        for row in downloads.values("format").annotate(count=Count("id"))
    }
    return {
        "total_invoices": invoices.count(),
        "downloaded_invoices": downloads.values("invoice_id").distinct().count(),
        "total_downloads": downloads.count(),
        "downloads_by_format": by_format,
    }
