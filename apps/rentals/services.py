"""Domain services for rental request workflows."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from apps.notifications.services import notify_rental_status_update
from .exceptions import (
    InvalidRentalPriceError,
    InvalidStatusTransitionError,
    RentalConflictError,
)
from .models import RentalRequest

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.products.models import Product

logger = logging.getLogger(__name__)

# Days covered by one billing unit of each period; hourly is handled apart.
PERIOD_DAYS = {
    RentalRequest.RentalPeriod.DAILY: 1,
    RentalRequest.RentalPeriod.WEEKLY: 7,
    RentalRequest.RentalPeriod.MONTHLY: 30,
    RentalRequest.RentalPeriod.QUARTERLY: 90,
    RentalRequest.RentalPeriod.YEARLY: 365,
}

UPDATABLE_STATUSES = {
    RentalRequest.Status.ACCEPTED,
    RentalRequest.Status.REJECTED,
    RentalRequest.Status.COMPLETED,
    RentalRequest.Status.CANCELLED,
    RentalRequest.Status.RETURNED,
}

RELEASING_STATUSES = {
    RentalRequest.Status.REJECTED,
    RentalRequest.Status.CANCELLED,
    RentalRequest.Status.RETURNED,
    RentalRequest.Status.COMPLETED,
}


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def calculate_rental_price(
    rental_price: Decimal,
    start_date: datetime,
    end_date: datetime,
    rental_period: str,
) -> Decimal:
    """Total price for the range, rounding every partial unit up.

    ``rental_price`` is the product's per-day price, or per-hour price for
    hourly rentals.
    """
    rental_price = Decimal(rental_price)
    seconds = (end_date - start_date).total_seconds()

    if rental_period == RentalRequest.RentalPeriod.HOURLY:
        units = math.ceil(seconds / 3600)
        total = rental_price * units
    else:
        try:
            unit_days = PERIOD_DAYS[rental_period]
        except KeyError as exc:
            raise InvalidRentalPriceError(f"Unknown rental period: {rental_period}") from exc
        units = math.ceil(seconds / (unit_days * 86400))
        total = rental_price * unit_days * units

    total = total.quantize(Decimal("0.01"))
    if total <= 0:
        raise InvalidRentalPriceError("Rental price must be greater than zero.")
    return total


def validate_rental_dates(start_date: datetime, end_date: datetime) -> None:
    """Raise ``serializers.ValidationError`` when the range cannot be rented."""

    if end_date <= start_date:
        raise serializers.ValidationError({"end_date": "End date must be after start date."})

    if start_date < timezone.now() - timedelta(minutes=1):
        raise serializers.ValidationError({"start_date": "Start date cannot be in the past."})

    if end_date - start_date > timedelta(days=settings.RENTAL_MAX_DURATION_DAYS):
        raise serializers.ValidationError(
            {"end_date": f"Rental cannot be longer than {settings.RENTAL_MAX_DURATION_DAYS} days."}
        )


def ensure_product_is_available(
    product: "Product",
    start_date: datetime,
    end_date: datetime,
    *,
    exclude_request_id=None,
) -> None:
    """Ensure no paid rental overlaps the range or its buffer period."""

    buffer = timedelta(days=settings.RENTAL_BUFFER_DAYS)
    paid_qs = RentalRequest.objects.filter(
        product=product,
        status=RentalRequest.Status.PAID,
    )
    if exclude_request_id is not None:
        paid_qs = paid_qs.exclude(pk=exclude_request_id)

    overlapping_qs = _lock_queryset_if_possible(
        paid_qs.filter(Q(start_date__lt=end_date) & Q(end_date__gt=start_date))
    )
    if overlapping_qs.exists():
        raise RentalConflictError("Product is already rented for the selected dates.")

    buffer_qs = _lock_queryset_if_possible(
        paid_qs.filter(end_date__lte=start_date, end_date__gt=start_date - buffer)
    )
    blocking = buffer_qs.order_by("-end_date").first()
    if blocking is not None:
        available_from = blocking.end_date + buffer
        raise RentalConflictError(
            f"Product needs {settings.RENTAL_BUFFER_DAYS} days between rentals. "
            f"It is available from {available_from:%Y-%m-%d %H:%M}."
        )


def get_unavailable_ranges(product: "Product") -> list[dict[str, Any]]:
    """Paid rental ranges of the product, each with the end of its buffer."""

    buffer = timedelta(days=settings.RENTAL_BUFFER_DAYS)
    ranges = []
    paid = RentalRequest.objects.filter(
        product=product,
        status=RentalRequest.Status.PAID,
    ).order_by("start_date")
    for rental in paid:
        ranges.append(
            {
                "rental_request_id": rental.pk,
                "start_date": rental.start_date,
                "end_date": rental.end_date,
                "buffer_end_date": rental.end_date + buffer,
            }
        )
    return ranges


def get_request_limit_info(product: "Product") -> dict[str, Any]:
    """How close the product is to the cap on unanswered requests."""

    max_requests = settings.RENTAL_MAX_PENDING_REQUESTS
    pending_count = RentalRequest.objects.filter(
        product=product,
        status=RentalRequest.Status.PENDING,
    ).count()
    recent_accepted = RentalRequest.objects.filter(
        product=product,
        status=RentalRequest.Status.ACCEPTED,
        created_at__gte=timezone.now() - timedelta(hours=24),
    ).count()
    return {
        "pending_requests_count": pending_count,
        "recent_accepted_requests": recent_accepted,
        "is_at_limit": pending_count >= max_requests and recent_accepted == 0,
        "max_requests": max_requests,
    }


@transaction.atomic
def update_rental_status(rental_request: RentalRequest, new_status: str, actor) -> RentalRequest:  # type: ignore
    """Apply a status change requested by the customer or the owner."""

    if new_status not in UPDATABLE_STATUSES:
        raise InvalidStatusTransitionError(f"Status '{new_status}' cannot be set directly.")

    old_status = rental_request.status
    if old_status == RentalRequest.Status.PAID and new_status in {
        RentalRequest.Status.REJECTED,
        RentalRequest.Status.CANCELLED,
    }:
        raise InvalidStatusTransitionError("A paid rental cannot be rejected or cancelled.")

    rental_request.set_status(new_status)
    if new_status in RELEASING_STATUSES:
        rental_request.product.mark_available()

    logger.info(
        "Rental request %s moved from %s to %s by user %s",
        rental_request.pk,
        old_status,
        new_status,
        actor.pk,
    )
    notify_rental_status_update(rental_request, old_status, new_status, actor)
    return rental_request


@transaction.atomic
def delete_rental_request(rental_request: RentalRequest) -> None:
    """Delete a request together with its payment attempts, payments and invoice."""

    from apps.invoices.models import Invoice
    from apps.payments.models import Payment, PaymentAttempt

    request_id = rental_request.pk
    PaymentAttempt.objects.filter(rental_request=rental_request).delete()
    Payment.objects.filter(rental_request=rental_request).delete()
    Invoice.objects.filter(rental_request=rental_request).delete()
    rental_request.delete()
    logger.info("Rental request %s deleted with its payments and invoice", request_id)
