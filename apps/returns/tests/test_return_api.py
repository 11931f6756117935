"""Integration tests for product returns and damage assessments."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.invoices.models import Invoice, InvoiceItem
from apps.invoices.services import create_invoice
from apps.notifications.models import Notification
from apps.products.models import Product
from apps.rentals.models import RentalRequest
from apps.returns.models import DamageAssessment, DamagePhoto, ProductReturn
from apps.users.models import User


class ReturnTestMixin:
    def setUp(self) -> None:
        self.customer = User.objects.create_user(
            email="customer@example.com", name="Carl Customer", password="CustomerPass123"
        )
        self.owner = User.objects.create_user(
            email="owner@example.com", name="Olga Owner", password="OwnerPass123"
        )
        self.product = Product.objects.create(
            owner=self.owner,
            title="Paddle board",
            description="Inflatable SUP",
            category="water",
            rental_price=Decimal("30.00"),
            location="San Diego",
            status=Product.Status.RENTED,
        )
        now = timezone.now()
        self.rental = RentalRequest.objects.create(
            customer=self.customer,
            product=self.product,
            status=RentalRequest.Status.PAID,
            start_date=now - timedelta(days=3),
            end_date=now - timedelta(hours=1),
            price=Decimal("90.00"),
        )

    def _create_return(self) -> ProductReturn:
        return ProductReturn.objects.create(
            rental_request=self.rental,
            return_date=timezone.now(),
            return_location="San Diego pier",
        )


class ProductReturnAPITests(ReturnTestMixin, APITestCase):
    def test_customer_initiates_return_and_owner_is_notified(self) -> None:
        self.client.force_authenticate(self.customer)

        response = self.client.post(
            reverse("return-list"),
            {
                "rental_request_id": self.rental.id,
                "return_date": timezone.now().isoformat(),
                "return_location": "San Diego pier",
                "condition_notes": "Small scratch on the fin",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["return_status"], "initiated")
        self.assertTrue(
            Notification.objects.filter(
                user=self.owner, type=Notification.Type.RETURN_INITIATED
            ).exists()
        )

    def test_second_return_is_rejected(self) -> None:
        self._create_return()
        self.client.force_authenticate(self.customer)

        response = self.client.post(
            reverse("return-list"),
            {
                "rental_request_id": self.rental.id,
                "return_date": timezone.now().isoformat(),
                "return_location": "Elsewhere",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stranger_cannot_initiate_return(self) -> None:
        stranger = User.objects.create_user(email="stranger@example.com", password="StrangerPass1")
        self.client.force_authenticate(stranger)

        response = self.client.post(
            reverse("return-list"),
            {
                "rental_request_id": self.rental.id,
                "return_date": timezone.now().isoformat(),
                "return_location": "Nowhere",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customer_cannot_complete_return(self) -> None:
        product_return = self._create_return()
        self.client.force_authenticate(self.customer)
        url = reverse("return-detail", args=[product_return.id])

        response = self.client.patch(url, {"return_status": "completed"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.patch(url, {"owner_confirmation": True}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.patch(url, {"condition_notes": "All good"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_owner_completion_releases_product(self) -> None:
        product_return = self._create_return()
        self.client.force_authenticate(self.owner)

        response = self.client.patch(
            reverse("return-detail", args=[product_return.id]),
            {"return_status": "completed", "owner_confirmation": True},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.product.refresh_from_db()
        self.rental.refresh_from_db()
        self.assertEqual(self.product.status, Product.Status.AVAILABLE)
        self.assertEqual(self.rental.status, RentalRequest.Status.RETURNED)
        self.assertTrue(
            Notification.objects.filter(
                user=self.customer, type=Notification.Type.RETURN_CONFIRMED
            ).exists()
        )

    def test_list_views(self) -> None:
        self._create_return()

        self.client.force_authenticate(self.customer)
        self.assertEqual(len(self._results(self.client.get(reverse("return-list")))), 1)
        response = self.client.get(reverse("return-list"), {"as_owner": "true"})
        self.assertEqual(len(self._results(response)), 0)

        self.client.force_authenticate(self.owner)
        response = self.client.get(reverse("return-list"), {"rental_request_id": self.rental.id})
        self.assertEqual(len(self._results(response)), 1)

    @staticmethod
    def _results(response):
        return response.data["results"]


class DamageAssessmentAPITests(ReturnTestMixin, APITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.product_return = self._create_return()
        self.url = reverse("return-damage-assessment", args=[self.product_return.id])
        self.payload = {
            "damage_type": "Puncture",
            "severity": "moderate",
            "description": "Slow leak near the valve",
            "estimated_cost": "45.00",
        }

    def test_assessment_with_cost_is_charged_on_existing_invoice(self) -> None:
        invoice = create_invoice(self.rental)
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.url, self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        invoice.refresh_from_db()
        self.assertEqual(invoice.damage_fee, Decimal("45.00"))
        self.assertEqual(invoice.amount, Decimal("144.00"))
        item = invoice.items.get(item_type=InvoiceItem.ItemType.DAMAGE_FEE)
        self.assertIn("Puncture", item.description)

    def test_assessment_without_invoice_creates_damage_only_invoice(self) -> None:
        self.client.force_authenticate(self.owner)

        self.client.post(self.url, self.payload, format="json")

        invoice = Invoice.objects.get(rental_request=self.rental)
        self.assertEqual(invoice.subtotal, Decimal("0.00"))
        self.assertEqual(invoice.amount, Decimal("45.00"))
        self.assertLessEqual(invoice.due_date, timezone.now() + timedelta(days=7))

    def test_only_owner_assesses_once(self) -> None:
        self.client.force_authenticate(self.customer)
        self.assertEqual(
            self.client.post(self.url, self.payload, format="json").status_code,
            status.HTTP_403_FORBIDDEN,
        )

        self.client.force_authenticate(self.owner)
        self.client.post(self.url, self.payload, format="json")
        response = self.client.post(self.url, self.payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(DamageAssessment.objects.count(), 1)

    def test_approving_assessment_updates_charge_and_photos_attach(self) -> None:
        self.client.force_authenticate(self.owner)
        self.client.post(self.url, {**self.payload, "estimated_cost": "0.00"}, format="json")
        assessment = DamageAssessment.objects.get()
        self.assertFalse(Invoice.objects.exists())

        response = self.client.patch(
            reverse("damage-assessment-detail", args=[assessment.id]),
            {"estimated_cost": "60.00", "approved": True},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(Invoice.objects.get().damage_fee, Decimal("60.00"))

        response = self.client.post(
            reverse("damage-assessment-photos", args=[assessment.id]),
            {"photo_url": "https://img.example.com/valve.jpg", "description": "Valve"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(DamagePhoto.objects.filter(assessment=assessment).count(), 1)

    def test_customer_can_not_edit_assessment(self) -> None:
        self.client.force_authenticate(self.owner)
        self.client.post(self.url, self.payload, format="json")
        assessment = DamageAssessment.objects.get()

        self.client.force_authenticate(self.customer)
        response = self.client.patch(
            reverse("damage-assessment-detail", args=[assessment.id]),
            {"estimated_cost": "1.00"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
