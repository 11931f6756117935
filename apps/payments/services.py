"""Payment processing services.

A customer who starts paying holds a short-lived :class:`PaymentAttempt` on
the product's dates. While it is active no other rental request for the
same product and overlapping dates can start paying. Attempts expire after
``PAYMENT_ATTEMPT_TTL_MINUTES``; a Celery countdown task expires each one on
time and a periodic sweep catches any that were missed.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import pdfplumber  # type: ignore
import stripe  # type: ignore
from django.conf import settings  # type: ignore
from django.core.files.uploadedfile import UploadedFile  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore

from apps.invoices.services import mark_rental_invoice_paid
from apps.notifications.services import (
    notify_payment_completed,
    notify_payment_confirmed,
    notify_payment_expired,
)
from apps.products.models import Product
from apps.rentals.exceptions import RentalConflictError
from apps.rentals.models import RentalRequest
from apps.rentals.services import _lock_queryset_if_possible, ensure_product_is_available
from .exceptions import (
    InvalidPaymentAmountError,
    InvalidPaymentStateError,
    PaymentAlreadyCompletedError,
    PaymentInProgressError,
    PaymentNotCompletableError,
    PaymentProviderError,
)
from .models import Payment, PaymentAttempt, PaymentTransaction

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (RentalRequest.Status.ACCEPTED, RentalRequest.Status.PENDING)


# ============================================================================
# AMOUNTS
# ============================================================================

def validate_payment_amount(amount: Decimal) -> Decimal:
    """Return the amount if it can be charged, otherwise raise a 400."""
    try:
        amount = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPaymentAmountError()
    if amount <= 0 or amount > settings.PAYMENT_MAX_AMOUNT:
        raise InvalidPaymentAmountError(
            f"Payment amount must be between 0 and {settings.PAYMENT_MAX_AMOUNT}."
        )
    return amount


def to_minor_units(amount: Decimal) -> int:
    """Dollars to cents for Stripe."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ============================================================================
# PAYMENT ATTEMPTS
# ============================================================================

def _schedule_attempt_expiry(attempt: PaymentAttempt) -> None:
    from .tasks import expire_payment_attempt

    countdown = settings.PAYMENT_ATTEMPT_TTL_MINUTES * 60
    try:
        expire_payment_attempt.apply_async(args=[attempt.id], countdown=countdown)
    except Exception as e:
        # The periodic sweep still expires the attempt.
        logger.error("Could not schedule expiry of attempt %s: %s", attempt.id, e, exc_info=True)


@transaction.atomic
def reserve_payment_attempt(rental_request: RentalRequest) -> PaymentAttempt:
    """Hold the request's dates for the duration of the payment."""

    now = timezone.now()
    ttl = settings.PAYMENT_ATTEMPT_TTL_MINUTES

    conflicting_qs = _lock_queryset_if_possible(
        PaymentAttempt.objects.filter(
            product_id=rental_request.product_id,
            is_active=True,
            expires_at__gt=now,
        )
        .exclude(rental_request=rental_request)
        .filter(
            Q(start_date__lt=rental_request.end_date)
            & Q(end_date__gt=rental_request.start_date)
        )
    )
    if conflicting_qs.exists():
        logger.info(
            "Payment for rental %s blocked by an active attempt on product %s",
            rental_request.pk,
            rental_request.product_id,
        )
        raise PaymentInProgressError()

    attempt = (
        _lock_queryset_if_possible(PaymentAttempt.objects.filter(rental_request=rental_request))
        .first()
    )
    if attempt is not None:
        attempt.extend(ttl)
    else:
        attempt = PaymentAttempt.objects.create(
            user=rental_request.customer,
            product=rental_request.product,
            rental_request=rental_request,
            start_date=rental_request.start_date,
            end_date=rental_request.end_date,
            expires_at=now + timedelta(minutes=ttl),
        )

    _schedule_attempt_expiry(attempt)
    return attempt


def expire_payment_attempts(attempt_id: int | None = None) -> int:
    """Expire overdue active attempts and release their rental requests.

    Returns the number of attempts that were expired.
    """
    now = timezone.now()
    ttl = settings.PAYMENT_ATTEMPT_TTL_MINUTES

    attempts = PaymentAttempt.objects.select_related(
        "rental_request", "rental_request__product", "rental_request__customer"
    ).filter(is_active=True, expires_at__lt=now)
    if attempt_id is not None:
        attempts = attempts.filter(pk=attempt_id)

    expired = 0
    for attempt in attempts:
        rental_request = attempt.rental_request
        with transaction.atomic():
            attempt.deactivate()
            Payment.objects.filter(
                rental_request=rental_request,
                payment_status=Payment.Status.PENDING,
            ).update(
                payment_status=Payment.Status.FAILED,
                notes=(
                    f"Payment expired after {ttl} minutes. "
                    f"Expires at: {attempt.expires_at.isoformat()}"
                ),
                updated_at=now,
            )
            if rental_request.status == RentalRequest.Status.PENDING:
                rental_request.set_status(RentalRequest.Status.ACCEPTED)

        notify_payment_expired(rental_request)
        expired += 1

    if expired:
        logger.info("Expired %s payment attempt(s)", expired)
    return expired


# ============================================================================
# PAYMENT LIFECYCLE
# ============================================================================

def _create_payment_intent(payment: Payment) -> Any:
    rental_request = payment.rental_request
    return stripe.PaymentIntent.create(
        api_key=settings.STRIPE_SECRET_KEY,
        amount=to_minor_units(payment.amount),
        currency=settings.STRIPE_CURRENCY,
        metadata={
            "rental_request_id": str(rental_request.pk),
            "payment_id": str(payment.pk),
            "customer_id": str(rental_request.customer_id),
            "product_id": str(rental_request.product_id),
        },
    )


def create_payment(rental_request: RentalRequest, payment_method: str, user) -> dict[str, Any]:  # type: ignore
    """Start paying for a rental request.

    Returns ``{"payment", "client_secret", "is_offline", "expires_at"}``.
    """
    if rental_request.customer_id != user.id:
        raise PermissionDenied("Only the customer can pay for this rental request.")

    existing = Payment.objects.filter(rental_request=rental_request).first()
    if existing is not None and existing.payment_status == Payment.Status.COMPLETED:
        raise PaymentAlreadyCompletedError()
    if rental_request.status not in PAYABLE_STATUSES:
        raise InvalidPaymentStateError(
            f"Rental request with status '{rental_request.status}' cannot be paid."
        )

    product = rental_request.product
    if product.status == Product.Status.RENTED:
        ensure_product_is_available(
            product,
            rental_request.start_date,
            rental_request.end_date,
            exclude_request_id=rental_request.pk,
        )

    attempt = reserve_payment_attempt(rental_request)
    amount = validate_payment_amount(rental_request.price)
    is_offline = payment_method == Payment.Method.OFFLINE

    with transaction.atomic():
        payment = (
            _lock_queryset_if_possible(Payment.objects.filter(rental_request=rental_request))
            .first()
        )
        if payment is not None and payment.payment_status == Payment.Status.COMPLETED:
            raise PaymentAlreadyCompletedError()
        if payment is not None and payment.payment_status in (
            Payment.Status.FAILED,
            Payment.Status.REFUNDED,
        ):
            payment.delete()
            payment = None

        if payment is None:
            payment = Payment.objects.create(
                rental_request=rental_request,
                payment_method=payment_method,
                amount=amount,
                payment_status=Payment.Status.PENDING,
            )
        elif payment.payment_method != payment_method:
            if is_offline:
                payment.transaction_id = ""
            payment.payment_method = payment_method
            payment.save(update_fields=["payment_method", "transaction_id", "updated_at"])

    client_secret = None
    if not is_offline:
        try:
            if payment.transaction_id:
                intent = stripe.PaymentIntent.retrieve(
                    payment.transaction_id, api_key=settings.STRIPE_SECRET_KEY
                )
            else:
                intent = _create_payment_intent(payment)
                payment.transaction_id = intent["id"]
                payment.save(update_fields=["transaction_id", "updated_at"])
        except stripe.StripeError as e:
            logger.error(
                "Stripe error for payment %s: %s", payment.pk, e, exc_info=True
            )
            payment.mark_failed(f"Payment provider error: {e.user_message or e}")
            attempt.deactivate()
            raise PaymentProviderError()
        client_secret = intent["client_secret"]

    logger.info(
        "Payment %s started for rental %s (%s, %s)",
        payment.pk,
        rental_request.pk,
        payment_method,
        amount,
    )
    return {
        "payment": payment,
        "client_secret": client_secret,
        "is_offline": is_offline,
        "expires_at": attempt.expires_at,
    }


def complete_payment(payment: Payment, transaction_id: str | None = None) -> Payment:
    """Mark the payment completed and settle the rental and its invoice."""

    if payment.payment_status == Payment.Status.COMPLETED:
        return payment
    if payment.payment_status in (Payment.Status.FAILED, Payment.Status.REFUNDED):
        raise PaymentNotCompletableError()

    with transaction.atomic():
        rental_request = payment.rental_request
        ensure_product_is_available(
            rental_request.product,
            rental_request.start_date,
            rental_request.end_date,
            exclude_request_id=rental_request.pk,
        )
        payment.mark_completed(transaction_id)
        rental_request.mark_paid()
        rental_request.product.mark_rented()
        mark_rental_invoice_paid(rental_request)
        PaymentAttempt.objects.filter(rental_request=rental_request).delete()

    logger.info("Payment %s completed for rental %s", payment.pk, rental_request.pk)
    notify_payment_completed(payment)
    notify_payment_confirmed(payment)
    return payment


@transaction.atomic
def fail_payment(payment: Payment, reason: str = "") -> Payment:
    payment.mark_failed(reason)
    rental_request = payment.rental_request
    PaymentAttempt.objects.filter(rental_request=rental_request).update(
        is_active=False, updated_at=timezone.now()
    )
    if rental_request.status == RentalRequest.Status.PENDING:
        rental_request.set_status(RentalRequest.Status.ACCEPTED)
    logger.info("Payment %s failed: %s", payment.pk, reason or "no reason given")
    return payment


def refund_payment(payment: Payment, note: str = "") -> Payment:
    if payment.payment_status != Payment.Status.COMPLETED:
        raise InvalidPaymentStateError("Only completed payments can be refunded.")
    payment.mark_refunded(note)
    logger.info("Payment %s refunded", payment.pk)
    return payment


def generate_offline_transaction_id() -> str:
    return f"offline_{int(time.time())}_{secrets.token_hex(4)}"


def verify_offline_payment(payment: Payment, owner, notes: str = "") -> Payment:  # type: ignore
    """Owner confirms an offline payment was received."""

    if payment.rental_request.product.owner_id != owner.id:
        raise PermissionDenied("Only the product owner can verify offline payments.")
    if not payment.is_offline or payment.payment_status != Payment.Status.PENDING:
        raise InvalidPaymentStateError("Only pending offline payments can be verified.")

    if notes:
        payment.notes = notes
        payment.save(update_fields=["notes", "updated_at"])
    return complete_payment(payment, transaction_id=generate_offline_transaction_id())


# ============================================================================
# STRIPE WEBHOOKS
# ============================================================================

def construct_stripe_event(payload: bytes, signature: str) -> Any:
    """Verify the webhook signature; raises ValueError or SignatureVerificationError."""
    return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)


def _find_payment_for_intent(intent: dict[str, Any]) -> Payment | None:
    payment = (
        Payment.objects.select_related("rental_request", "rental_request__product")
        .filter(transaction_id=intent.get("id", ""))
        .first()
    )
    if payment is None:
        payment_id = (intent.get("metadata") or {}).get("payment_id")
        if payment_id:
            payment = Payment.objects.filter(pk=payment_id).first()
    return payment


def handle_stripe_event(event: Any) -> PaymentTransaction:
    """Apply a verified Stripe event and keep a record of it."""

    event_type = event["type"]
    intent = event["data"]["object"]
    record = PaymentTransaction.objects.create(
        event_id=event.get("id", "") or "",
        event=event_type,
        payload=dict(intent) if isinstance(intent, dict) else {},
    )

    if event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
        logger.info("Ignoring Stripe event %s", event_type)
        record.status = PaymentTransaction.Status.IGNORED
        record.save(update_fields=["status"])
        return record

    payment = _find_payment_for_intent(intent)
    if payment is None:
        logger.warning("Stripe event %s for unknown intent %s", event_type, intent.get("id"))
        record.status = PaymentTransaction.Status.FAILED
        record.error = "Payment not found"
        record.save(update_fields=["status", "error"])
        return record

    if event_type == "payment_intent.succeeded":
        try:
            complete_payment(payment, transaction_id=intent.get("id"))
        except (PaymentNotCompletableError, RentalConflictError) as e:
            logger.warning("Stripe success for payment %s not applied: %s", payment.pk, e.detail)
            record.payment = payment
            record.status = PaymentTransaction.Status.FAILED
            record.error = str(e.detail)
            record.save(update_fields=["payment", "status", "error"])
            return record
    else:
        error = intent.get("last_payment_error") or {}
        fail_payment(payment, error.get("message", "Payment failed at the provider."))

    record.payment = payment
    record.status = PaymentTransaction.Status.PROCESSED
    record.save(update_fields=["payment", "status"])
    return record


# ============================================================================
# OFFLINE RECEIPTS
# ============================================================================

def parse_receipt_amount(pdf_file: UploadedFile) -> Decimal | None:
    """
    Extract the paid amount from a PDF receipt.

    Looks for labelled totals first ("Total: $1,250.00", "Amount paid 99.50"),
    then for currency-marked numbers ("$45.00", "45.00 USD"). The largest
    match is returned, since receipts usually end with the grand total.

    Args:
        pdf_file: Uploaded PDF file

    Returns:
        Decimal: Amount found, or None
    """
    try:
        with pdfplumber.open(pdf_file) as pdf:
            full_text = ""
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    full_text += text + "\n"
    except Exception as e:
        logger.error("Failed to read receipt PDF: %s", e, exc_info=True)
        return None

    if not full_text:
        return None

    patterns = [
        r'(?:amount paid|amount|total|paid)[:\s]+\$?\s*([0-9][0-9,]*(?:\.\d{1,2})?)',
        r'\$\s*([0-9][0-9,]*(?:\.\d{1,2})?)',
        r'([0-9][0-9,]*(?:\.\d{1,2})?)\s*(?:USD|usd)',
    ]

    amounts = []
    for pattern in patterns:
        for match in re.finditer(pattern, full_text, re.IGNORECASE):
            cleaned = match.group(1).replace(',', '')
            try:
                amount = Decimal(cleaned)
            except (InvalidOperation, ValueError):
                continue
            if 0 < amount <= settings.PAYMENT_MAX_AMOUNT:
                amounts.append(amount)

    if not amounts:
        return None
    return max(amounts)


def validate_receipt_amount(
    parsed_amount: Decimal,
    expected_amount: Decimal,
    tolerance_percent: Decimal = Decimal("5.0"),
) -> bool:
    """
    Check whether the receipt amount matches the expected payment.

    Args:
        parsed_amount: Amount read from the receipt
        expected_amount: Expected payment amount
        tolerance_percent: Allowed deviation in percent (5% by default)

    Returns:
        bool: True if the amounts match within the tolerance
    """
    if parsed_amount <= 0 or expected_amount <= 0:
        return False

    tolerance = expected_amount * (tolerance_percent / Decimal("100.0"))
    return expected_amount - tolerance <= parsed_amount <= expected_amount + tolerance
