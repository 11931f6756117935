"""Integration tests for the wishlist endpoints."""

from __future__ import annotations

from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.products.models import Product
from apps.users.models import User
from apps.wishlist.models import WishlistItem


class WishlistAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(email="user@example.com", password="UserPass12345")
        owner = User.objects.create_user(email="owner@example.com", password="OwnerPass123")
        self.product = Product.objects.create(
            owner=owner,
            title="Snowboard",
            description="All-mountain board",
            category="winter",
            rental_price=Decimal("25.00"),
            location="Aspen",
        )
        self.client.force_authenticate(self.user)
        self.list_url = reverse("wishlist-list")

    def test_add_list_and_duplicate(self) -> None:
        response = self.client.post(self.list_url, {"product_id": self.product.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["product"]["title"], "Snowboard")

        response = self.client.post(self.list_url, {"product_id": self.product.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(self.list_url)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["product_id"], self.product.id)

    def test_unknown_product_is_rejected(self) -> None:
        response = self.client.post(self.list_url, {"product_id": 99999}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_toggle_adds_then_removes(self) -> None:
        url = reverse("wishlist-toggle")

        response = self.client.post(url, {"product_id": self.product.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["action"], "added")

        response = self.client.post(url, {"product_id": self.product.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["action"], "removed")
        self.assertFalse(WishlistItem.objects.exists())

    def test_check_and_remove(self) -> None:
        WishlistItem.objects.create(user=self.user, product=self.product)
        check_url = reverse("wishlist-check", kwargs={"product_id": self.product.id})

        self.assertEqual(
            self.client.get(check_url).data,
            {"product_id": self.product.id, "in_wishlist": True},
        )

        remove_url = reverse("wishlist-remove")
        response = self.client.delete(f"{remove_url}?product_id={self.product.id}")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(self.client.get(check_url).data["in_wishlist"])

        response = self.client.delete(f"{remove_url}?product_id={self.product.id}")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
