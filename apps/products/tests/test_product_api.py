"""Integration tests for product API endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.products.models import Product
from apps.rentals.models import RentalRequest
from apps.users.models import User


class ProductAPITests(APITestCase):
    """Covers listing, filtering and owner-only changes."""

    def setUp(self) -> None:
        self.owner = User.objects.create_user(email="owner@example.com", password="OwnerPass123")
        self.other = User.objects.create_user(email="other@example.com", password="OtherPass123")
        self.camera = Product.objects.create(
            owner=self.owner,
            title="Mirrorless camera",
            description="24MP body with kit lens",
            category="electronics",
            rental_price=Decimal("25.00"),
            location="Portland",
            image_urls=["https://img.example.com/camera.jpg"],
        )
        self.kayak = Product.objects.create(
            owner=self.other,
            title="Sea kayak",
            description="Single seat kayak",
            category="outdoor",
            rental_price=Decimal("40.00"),
            location="Seattle",
            image_urls=["https://img.example.com/kayak.jpg"],
        )
        self.list_url = reverse("product-list")

    def _payload(self, **overrides) -> dict:
        payload = {
            "title": "Projector",
            "description": "1080p projector",
            "category": "electronics",
            "rental_price": "12.50",
            "location": "Portland",
            "image_urls": ["https://img.example.com/projector.jpg"],
        }
        payload.update(overrides)
        return payload

    def test_anonymous_can_list_and_filter(self) -> None:
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)

        response = self.client.get(self.list_url, {"category": "outdoor"})
        self.assertEqual([p["id"] for p in response.data["results"]], [self.kayak.id])

        response = self.client.get(self.list_url, {"search": "camera"})
        self.assertEqual([p["id"] for p in response.data["results"]], [self.camera.id])

        response = self.client.get(self.list_url, {"max_price": "30"})
        self.assertEqual([p["id"] for p in response.data["results"]], [self.camera.id])

    def test_owner_filter_requires_authentication(self) -> None:
        response = self.client.get(self.list_url, {"owner": "true"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.force_authenticate(self.owner)
        response = self.client.get(self.list_url, {"owner": "true"})
        self.assertEqual([p["id"] for p in response.data["results"]], [self.camera.id])

    def test_create_sets_owner(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        product = Product.objects.get(title="Projector")
        self.assertEqual(product.owner, self.owner)
        self.assertEqual(product.status, Product.Status.AVAILABLE)
        self.assertEqual(response.data["owner"]["id"], self.owner.id)

    def test_create_validates_price_and_images(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(self.list_url, self._payload(rental_price="0"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(self.list_url, self._payload(image_urls=[]), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("image_urls", response.data)

    def test_only_owner_can_update(self) -> None:
        url = reverse("product-detail", args=[self.camera.id])

        self.client.force_authenticate(self.other)
        response = self.client.patch(url, {"rental_price": "1.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.owner)
        response = self.client.patch(url, {"rental_price": "30.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.camera.refresh_from_db()
        self.assertEqual(self.camera.rental_price, Decimal("30.00"))

    def test_delete_refused_while_paid_rental_exists(self) -> None:
        start = timezone.now() + timedelta(days=1)
        RentalRequest.objects.create(
            customer=self.other,
            product=self.camera,
            status=RentalRequest.Status.PAID,
            start_date=start,
            end_date=start + timedelta(days=2),
            price=Decimal("50.00"),
        )
        url = reverse("product-detail", args=[self.camera.id])
        self.client.force_authenticate(self.owner)

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Product.objects.filter(pk=self.camera.pk).exists())

        RentalRequest.objects.update(status=RentalRequest.Status.RETURNED)
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=self.camera.pk).exists())

    def test_current_rental_status_reflects_latest_active_request(self) -> None:
        start = timezone.now() + timedelta(days=1)
        RentalRequest.objects.create(
            customer=self.other,
            product=self.camera,
            status=RentalRequest.Status.ACCEPTED,
            start_date=start,
            end_date=start + timedelta(days=1),
            price=Decimal("25.00"),
        )

        response = self.client.get(reverse("product-detail", args=[self.camera.id]))

        self.assertEqual(response.data["current_rental_status"], "accepted")

    def test_list_rental_status_does_not_query_per_product(self) -> None:
        start = timezone.now() + timedelta(days=1)
        RentalRequest.objects.create(
            customer=self.other,
            product=self.camera,
            status=RentalRequest.Status.PAID,
            start_date=start,
            end_date=start + timedelta(days=1),
            price=Decimal("25.00"),
        )
        with CaptureQueriesContext(connection) as two_products:
            self.client.get(self.list_url)

        for index in range(3):
            Product.objects.create(
                owner=self.owner,
                title=f"Tent {index}",
                description="Two person tent",
                category="outdoor",
                rental_price=Decimal("15.00"),
                location="Denver",
            )
        with CaptureQueriesContext(connection) as five_products:
            response = self.client.get(self.list_url)

        self.assertEqual(response.data["count"], 5)
        self.assertEqual(len(five_products), len(two_products))
        statuses = {p["id"]: p["current_rental_status"] for p in response.data["results"]}
        self.assertEqual(statuses[self.camera.id], "paid")
        self.assertIsNone(statuses[self.kayak.id])
