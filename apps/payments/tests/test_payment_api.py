"""Integration tests for payment endpoints and the Stripe webhook."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import stripe
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.notifications.models import Notification
from apps.payments.models import Payment, PaymentAttempt, PaymentTransaction
from apps.products.models import Product
from apps.rentals.models import RentalRequest
from apps.users.models import User


class PaymentTestMixin:
    def setUp(self) -> None:
        self.customer = User.objects.create_user(
            email="customer@example.com", name="Carl Customer", password="CustomerPass123"
        )
        self.owner = User.objects.create_user(
            email="owner@example.com", name="Olga Owner", password="OwnerPass123"
        )
        self.product = Product.objects.create(
            owner=self.owner,
            title="Drone",
            description="4K camera drone",
            category="electronics",
            rental_price=Decimal("35.00"),
            location="Seattle",
        )
        start = timezone.now() + timedelta(days=2)
        self.rental = RentalRequest.objects.create(
            customer=self.customer,
            product=self.product,
            status=RentalRequest.Status.ACCEPTED,
            start_date=start,
            end_date=start + timedelta(days=2),
            price=Decimal("70.00"),
        )
        self.client.force_authenticate(self.customer)
        self.list_url = reverse("payment-list")

    def _start_payment(self, method: str = "offline"):
        return self.client.post(
            self.list_url,
            {"rental_request_id": self.rental.id, "payment_method": method},
            format="json",
        )


class PaymentCreateTests(PaymentTestMixin, APITestCase):
    def test_offline_payment_is_created_with_attempt(self) -> None:
        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertTrue(response.data["is_offline"])
        self.assertIsNone(response.data["client_secret"])
        payment = Payment.objects.get()
        self.assertEqual(payment.amount, Decimal("70.00"))
        self.assertEqual(payment.payment_status, Payment.Status.PENDING)
        attempt = PaymentAttempt.objects.get(rental_request=self.rental)
        self.assertTrue(attempt.is_active)
        self.assertGreater(attempt.expires_at, timezone.now())

    @patch("stripe.PaymentIntent.create")
    def test_card_payment_returns_client_secret(self, create_intent) -> None:
        create_intent.return_value = {"id": "pi_123", "client_secret": "pi_123_secret"}

        response = self._start_payment("card")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["client_secret"], "pi_123_secret")
        self.assertFalse(response.data["is_offline"])
        self.assertEqual(Payment.objects.get().transaction_id, "pi_123")
        kwargs = create_intent.call_args.kwargs
        self.assertEqual(kwargs["amount"], 7000)
        self.assertEqual(kwargs["metadata"]["rental_request_id"], str(self.rental.id))

    @patch("stripe.PaymentIntent.create")
    def test_provider_error_fails_payment_and_releases_attempt(self, create_intent) -> None:
        create_intent.side_effect = stripe.StripeError("Card network unavailable")

        response = self._start_payment("card")

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(Payment.objects.get().payment_status, Payment.Status.FAILED)
        self.assertFalse(PaymentAttempt.objects.get().is_active)

    def test_owner_cannot_pay(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_rejected_request_cannot_be_paid(self) -> None:
        self.rental.set_status(RentalRequest.Status.REJECTED)

        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Payment.objects.exists())

    def test_completed_payment_cannot_be_restarted(self) -> None:
        Payment.objects.create(
            rental_request=self.rental,
            payment_method=Payment.Method.CARD,
            amount=self.rental.price,
            payment_status=Payment.Status.COMPLETED,
        )

        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_failed_payment_is_replaced(self) -> None:
        old = Payment.objects.create(
            rental_request=self.rental,
            payment_method=Payment.Method.CARD,
            amount=self.rental.price,
            payment_status=Payment.Status.FAILED,
        )

        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        payment = Payment.objects.get()
        self.assertNotEqual(payment.pk, old.pk)
        self.assertEqual(payment.payment_method, Payment.Method.OFFLINE)

    def test_concurrent_attempt_on_same_dates_conflicts(self) -> None:
        rival = User.objects.create_user(email="rival@example.com", password="RivalPass123")
        rival_request = RentalRequest.objects.create(
            customer=rival,
            product=self.product,
            status=RentalRequest.Status.ACCEPTED,
            start_date=self.rental.start_date + timedelta(days=1),
            end_date=self.rental.end_date + timedelta(days=1),
            price=Decimal("70.00"),
        )
        PaymentAttempt.objects.create(
            user=rival,
            product=self.product,
            rental_request=rival_request,
            start_date=rival_request.start_date,
            end_date=rival_request.end_date,
            expires_at=timezone.now() + timedelta(minutes=5),
        )

        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(Payment.objects.exists())

    def test_rented_product_with_overlapping_paid_rental_conflicts(self) -> None:
        rival = User.objects.create_user(email="rival@example.com", password="RivalPass123")
        RentalRequest.objects.create(
            customer=rival,
            product=self.product,
            status=RentalRequest.Status.PAID,
            start_date=self.rental.start_date - timedelta(days=1),
            end_date=self.rental.start_date + timedelta(days=1),
            price=Decimal("70.00"),
        )
        self.product.mark_rented()

        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(PaymentAttempt.objects.exists())

    def test_expired_rival_attempt_does_not_block(self) -> None:
        rival = User.objects.create_user(email="rival@example.com", password="RivalPass123")
        rival_request = RentalRequest.objects.create(
            customer=rival,
            product=self.product,
            status=RentalRequest.Status.ACCEPTED,
            start_date=self.rental.start_date,
            end_date=self.rental.end_date,
            price=Decimal("70.00"),
        )
        PaymentAttempt.objects.create(
            user=rival,
            product=self.product,
            rental_request=rival_request,
            start_date=rival_request.start_date,
            end_date=rival_request.end_date,
            expires_at=timezone.now() - timedelta(minutes=1),
        )

        response = self._start_payment()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_list_as_customer_and_owner(self) -> None:
        self._start_payment()

        response = self.client.get(self.list_url)
        self.assertEqual(response.data["count"], 1)

        self.client.force_authenticate(self.owner)
        self.assertEqual(self.client.get(self.list_url).data["count"], 0)
        response = self.client.get(self.list_url, {"as_owner": "true", "payment_status": "pending"})
        self.assertEqual(response.data["count"], 1)


class OfflinePaymentTests(PaymentTestMixin, APITestCase):
    def setUp(self) -> None:
        super().setUp()
        self._start_payment()
        self.payment = Payment.objects.get()

    def test_owner_verifies_offline_payment(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("payment-verify-offline", args=[self.payment.id]),
            {"notes": "Cash received"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.payment.refresh_from_db()
        self.rental.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.Status.COMPLETED)
        self.assertTrue(self.payment.transaction_id.startswith("offline_"))
        self.assertEqual(self.payment.notes, "Cash received")
        self.assertEqual(self.rental.status, RentalRequest.Status.PAID)
        self.assertEqual(self.product.status, Product.Status.RENTED)
        self.assertFalse(PaymentAttempt.objects.exists())
        self.assertTrue(
            Notification.objects.filter(
                user=self.customer, type=Notification.Type.PAYMENT_CONFIRMED
            ).exists()
        )
        self.assertTrue(
            Notification.objects.filter(
                user=self.owner, type=Notification.Type.PAYMENT_COMPLETED
            ).exists()
        )

    def test_customer_cannot_verify_or_complete_offline_payment(self) -> None:
        response = self.client.post(
            reverse("payment-verify-offline", args=[self.payment.id]), {}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.patch(
            reverse("payment-status", args=[self.payment.id]),
            {"payment_status": "completed"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customer_marks_payment_failed(self) -> None:
        response = self.client.patch(
            reverse("payment-status", args=[self.payment.id]),
            {"payment_status": "failed", "notes": "Changed my mind"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["payment_status"], "failed")
        self.assertFalse(PaymentAttempt.objects.get().is_active)

    def test_failed_payment_cannot_be_completed(self) -> None:
        self.client.patch(
            reverse("payment-status", args=[self.payment.id]),
            {"payment_status": "failed"},
            format="json",
        )
        self.client.force_authenticate(self.owner)

        response = self.client.patch(
            reverse("payment-status", args=[self.payment.id]),
            {"payment_status": "completed"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.payment.refresh_from_db()
        self.rental.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.Status.FAILED)
        self.assertNotEqual(self.rental.status, RentalRequest.Status.PAID)

    def test_refund_requires_completed_payment_and_owner(self) -> None:
        url = reverse("payment-status", args=[self.payment.id])
        self.client.force_authenticate(self.owner)

        response = self.client.patch(url, {"payment_status": "refunded"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.patch(url, {"payment_status": "completed"}, format="json")
        response = self.client.patch(url, {"payment_status": "refunded"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["payment_status"], "refunded")

    def test_stranger_cannot_see_payment(self) -> None:
        stranger = User.objects.create_user(email="stranger@example.com", password="StrangerPass1")
        self.client.force_authenticate(stranger)

        response = self.client.get(reverse("payment-detail", args=[self.payment.id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @patch("apps.payments.views.parse_receipt_amount", return_value=Decimal("70.00"))
    def test_receipt_upload_notifies_owner(self, _parse) -> None:
        receipt = SimpleUploadedFile(
            "receipt.pdf", b"%PDF-1.4 fake receipt", content_type="application/pdf"
        )

        response = self.client.post(
            reverse("payment-upload-receipt", args=[self.payment.id]),
            {"receipt_file": receipt},
            format="multipart",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["amount_valid"])
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.receipt_amount, Decimal("70.00"))
        self.assertTrue(Notification.objects.filter(user=self.owner).exists())

    def test_receipt_must_be_pdf(self) -> None:
        receipt = SimpleUploadedFile("receipt.txt", b"paid 70", content_type="text/plain")

        response = self.client.post(
            reverse("payment-upload-receipt", args=[self.payment.id]),
            {"receipt_file": receipt},
            format="multipart",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class StripeWebhookTests(PaymentTestMixin, APITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.payment = Payment.objects.create(
            rental_request=self.rental,
            payment_method=Payment.Method.CARD,
            amount=self.rental.price,
            transaction_id="pi_123",
        )
        self.client.force_authenticate(None)
        self.url = reverse("stripe-webhook")

    def _event(self, event_type: str, **intent) -> dict:
        return {
            "id": "evt_1",
            "type": event_type,
            "data": {"object": {"id": "pi_123", "metadata": {}, **intent}},
        }

    def test_missing_signature_is_rejected(self) -> None:
        response = self.client.post(self.url, data=b"{}", content_type="application/json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch("apps.payments.views.construct_stripe_event")
    def test_bad_signature_is_rejected(self, construct_event) -> None:
        construct_event.side_effect = stripe.SignatureVerificationError("bad", "sig")

        response = self.client.post(
            self.url, data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch("apps.payments.views.construct_stripe_event")
    def test_succeeded_event_completes_payment(self, construct_event) -> None:
        construct_event.return_value = self._event("payment_intent.succeeded")

        response = self.client.post(
            self.url, data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"received": True})
        self.payment.refresh_from_db()
        self.rental.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.Status.COMPLETED)
        self.assertEqual(self.rental.status, RentalRequest.Status.PAID)
        record = PaymentTransaction.objects.get()
        self.assertEqual(record.status, PaymentTransaction.Status.PROCESSED)
        self.assertEqual(record.payment, self.payment)

    @patch("apps.payments.views.construct_stripe_event")
    def test_late_success_for_expired_payment_is_not_applied(self, construct_event) -> None:
        self.payment.mark_failed("Payment expired after 5 minutes.")
        construct_event.return_value = self._event("payment_intent.succeeded")

        response = self.client.post(
            self.url, data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.payment.refresh_from_db()
        self.rental.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.Status.FAILED)
        self.assertEqual(self.rental.status, RentalRequest.Status.ACCEPTED)
        record = PaymentTransaction.objects.get()
        self.assertEqual(record.status, PaymentTransaction.Status.FAILED)
        self.assertEqual(record.payment, self.payment)

    @patch("apps.payments.views.construct_stripe_event")
    def test_failed_event_fails_payment(self, construct_event) -> None:
        construct_event.return_value = self._event(
            "payment_intent.payment_failed",
            last_payment_error={"message": "Card declined"},
        )

        self.client.post(
            self.url, data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x"
        )

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.Status.FAILED)
        self.assertEqual(self.payment.notes, "Card declined")

    @patch("apps.payments.views.construct_stripe_event")
    def test_other_events_are_recorded_and_ignored(self, construct_event) -> None:
        construct_event.return_value = self._event("charge.refunded")

        response = self.client.post(
            self.url, data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(PaymentTransaction.objects.get().status, PaymentTransaction.Status.IGNORED)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, Payment.Status.PENDING)
