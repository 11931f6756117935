"""Integration tests for the dashboard endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.invoices.services import create_invoice, record_download
from apps.payments.models import Payment
from apps.products.models import Product
from apps.rentals.models import RentalRequest
from apps.users.models import User


class DashboardAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(email="owner@example.com", password="OwnerPass123")
        self.customer = User.objects.create_user(
            email="customer@example.com", password="CustomerPass123"
        )
        self.product = Product.objects.create(
            owner=self.owner,
            title="Canoe",
            description="Two person canoe",
            category="water",
            rental_price=Decimal("45.00"),
            location="Portland",
            status=Product.Status.RENTED,
        )
        Product.objects.create(
            owner=self.owner,
            title="Paddles",
            description="Pair of paddles",
            category="water",
            rental_price=Decimal("5.00"),
            location="Portland",
        )
        now = timezone.now()
        self.paid = RentalRequest.objects.create(
            customer=self.customer,
            product=self.product,
            status=RentalRequest.Status.PAID,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=2),
            price=Decimal("135.00"),
        )
        self.pending = RentalRequest.objects.create(
            customer=self.customer,
            product=self.product,
            status=RentalRequest.Status.PENDING,
            start_date=now + timedelta(days=10),
            end_date=now + timedelta(days=11),
            price=Decimal("45.00"),
        )
        Payment.objects.create(
            rental_request=self.paid,
            payment_method=Payment.Method.CARD,
            amount=Decimal("135.00"),
            payment_status=Payment.Status.COMPLETED,
            payment_date=now,
        )
        self.client.force_authenticate(self.owner)

    def test_stats(self) -> None:
        response = self.client.get(reverse("dashboard-stats"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["products"], {"total": 2, "available": 1, "rented": 1})
        self.assertEqual(response.data["requests"]["total"], 2)
        self.assertEqual(response.data["requests"]["pending"], 1)
        self.assertEqual(response.data["requests"]["paid"], 1)
        self.assertEqual(response.data["revenue"]["total"], Decimal("135.00"))
        self.assertEqual(response.data["revenue"]["this_month"], Decimal("135.00"))
        self.assertEqual(response.data["my_rentals"], {"total": 0, "active": 0})

    def test_revenue(self) -> None:
        invoice = create_invoice(self.pending)
        invoice.mark_sent()

        response = self.client.get(reverse("dashboard-revenue"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        monthly = response.data["monthly_revenue"]
        self.assertEqual(len(monthly), 6)
        self.assertEqual(monthly[-1]["month"], timezone.now().strftime("%Y-%m"))
        self.assertEqual(monthly[-1]["revenue"], Decimal("135.00"))
        self.assertEqual(response.data["pending_invoices"]["count"], 1)
        self.assertEqual(response.data["pending_invoices"]["amount"], Decimal("49.50"))
        self.assertEqual(response.data["product_revenue"][0]["product_id"], self.product.id)

    def test_calendar_and_upcoming_events(self) -> None:
        response = self.client.get(reverse("dashboard-calendar-events"))
        types = [event["type"] for event in response.data["events"]]
        self.assertCountEqual(types, ["return", "approval"])

        response = self.client.get(reverse("dashboard-upcoming-events"))
        events = response.data["events"]
        self.assertEqual({event["role"] for event in events}, {"owner"})
        self.assertIn(self.paid.id, [event["id"] for event in events if event["type"] == "return"])

        self.client.force_authenticate(self.customer)
        response = self.client.get(reverse("dashboard-upcoming-events"))
        self.assertEqual(response.data["events"][0]["role"], "customer")

    def test_recent_activities(self) -> None:
        response = self.client.get(reverse("dashboard-recent-activities"))

        activities = response.data["activities"]
        self.assertEqual(len(activities), 3)
        self.assertEqual(
            sorted(a["type"] for a in activities),
            ["payment", "rental_request", "rental_request"],
        )

    def test_download_stats(self) -> None:
        invoice = create_invoice(self.paid)
        record_download(invoice, self.owner, "csv", file_size=100)
        record_download(invoice, self.customer, "excel", file_size=2000)

        response = self.client.get(reverse("dashboard-download-stats"))

        self.assertEqual(response.data["total_invoices"], 1)
        self.assertEqual(response.data["downloaded_invoices"], 1)
        self.assertEqual(response.data["total_downloads"], 2)
        self.assertEqual(response.data["downloads_by_format"], {"csv": 1, "excel": 1})

    def test_requires_authentication(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(reverse("dashboard-stats"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
