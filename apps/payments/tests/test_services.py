from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.notifications.models import Notification
from apps.payments.exceptions import InvalidPaymentAmountError, PaymentNotCompletableError
from apps.payments.models import Payment, PaymentAttempt
from apps.payments.services import (
    complete_payment,
    expire_payment_attempts,
    to_minor_units,
    validate_payment_amount,
    validate_receipt_amount,
)
from apps.payments.tasks import cleanup_expired_payment_attempts
from apps.products.models import Product
from apps.rentals.exceptions import RentalConflictError
from apps.rentals.models import RentalRequest
from apps.users.models import User


def test_to_minor_units_rounds_half_up():
    assert to_minor_units(Decimal("70.00")) == 7000
    assert to_minor_units(Decimal("10.005")) == 1001


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("10000.01")])
def test_validate_payment_amount_rejects_out_of_range(amount, settings):
    settings.PAYMENT_MAX_AMOUNT = Decimal("10000")
    with pytest.raises(InvalidPaymentAmountError):
        validate_payment_amount(amount)


def test_validate_receipt_amount_uses_five_percent_tolerance():
    assert validate_receipt_amount(Decimal("96.00"), Decimal("100.00"))
    assert validate_receipt_amount(Decimal("105.00"), Decimal("100.00"))
    assert not validate_receipt_amount(Decimal("94.99"), Decimal("100.00"))
    assert not validate_receipt_amount(Decimal("0"), Decimal("100.00"))


@pytest.fixture
def pending_attempt(db):
    owner = User.objects.create_user(email="owner@example.com", password="OwnerPass123")
    customer = User.objects.create_user(email="customer@example.com", password="CustomerPass123")
    product = Product.objects.create(
        owner=owner,
        title="Kayak",
        description="Sit-on-top kayak",
        category="water",
        rental_price=Decimal("40.00"),
        location="Miami",
    )
    start = timezone.now() + timedelta(days=1)
    rental = RentalRequest.objects.create(
        customer=customer,
        product=product,
        status=RentalRequest.Status.PENDING,
        start_date=start,
        end_date=start + timedelta(days=1),
        price=Decimal("40.00"),
    )
    Payment.objects.create(
        rental_request=rental,
        payment_method=Payment.Method.CARD,
        amount=rental.price,
    )
    return PaymentAttempt.objects.create(
        user=customer,
        product=product,
        rental_request=rental,
        start_date=rental.start_date,
        end_date=rental.end_date,
        expires_at=timezone.now() - timedelta(seconds=30),
    )


@pytest.mark.django_db
def test_expired_attempt_fails_payment_and_notifies_customer(pending_attempt):
    assert expire_payment_attempts() == 1

    pending_attempt.refresh_from_db()
    rental = pending_attempt.rental_request
    rental.refresh_from_db()
    payment = Payment.objects.get(rental_request=rental)
    assert pending_attempt.is_active is False
    assert payment.payment_status == Payment.Status.FAILED
    assert payment.notes.startswith("Payment expired after")
    assert rental.status == RentalRequest.Status.ACCEPTED
    assert Notification.objects.filter(
        user=rental.customer, type=Notification.Type.PAYMENT_EXPIRED
    ).exists()

    assert expire_payment_attempts() == 0


@pytest.mark.django_db
def test_live_attempt_is_left_alone(pending_attempt):
    pending_attempt.extend(5)

    assert cleanup_expired_payment_attempts() == {"expired": 0}
    pending_attempt.refresh_from_db()
    assert pending_attempt.is_active is True


def _rival_paid_rental(rental: RentalRequest) -> RentalRequest:
    rival = User.objects.create_user(email="rival@example.com", password="RivalPass123")
    rival_rental = RentalRequest.objects.create(
        customer=rival,
        product=rental.product,
        status=RentalRequest.Status.ACCEPTED,
        start_date=rental.start_date,
        end_date=rental.end_date,
        price=rental.price,
    )
    rival_payment = Payment.objects.create(
        rental_request=rival_rental,
        payment_method=Payment.Method.OFFLINE,
        amount=rival_rental.price,
    )
    complete_payment(rival_payment)
    return rival_rental


@pytest.mark.django_db
def test_expired_payment_cannot_complete_after_rival_paid(pending_attempt):
    expire_payment_attempts()
    rental = pending_attempt.rental_request
    _rival_paid_rental(rental)

    stale_payment = Payment.objects.get(rental_request=rental)
    with pytest.raises(PaymentNotCompletableError):
        complete_payment(stale_payment)

    rental.refresh_from_db()
    assert rental.status == RentalRequest.Status.ACCEPTED
    assert RentalRequest.objects.filter(
        product=rental.product, status=RentalRequest.Status.PAID
    ).count() == 1


@pytest.mark.django_db
def test_pending_payment_cannot_complete_over_paid_rental(pending_attempt):
    rental = pending_attempt.rental_request
    _rival_paid_rental(rental)
    rental.product.mark_available()

    payment = Payment.objects.get(rental_request=rental)
    with pytest.raises(RentalConflictError):
        complete_payment(payment)

    payment.refresh_from_db()
    rental.refresh_from_db()
    assert payment.payment_status == Payment.Status.PENDING
    assert rental.status == RentalRequest.Status.PENDING
