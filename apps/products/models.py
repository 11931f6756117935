"""Product domain models for Rentify."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Product(models.Model):
    """An item listed for rent by its owner."""

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        RENTED = "rented", _("Rented")
        UNAVAILABLE = "unavailable", _("Unavailable")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="products",
    )
    title = models.CharField(max_length=100)
    description = models.TextField()
    category = models.CharField(max_length=100, db_index=True)
    rental_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text=_("Base price per rental unit (hour or day)."),
    )
    location = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.AVAILABLE,
    )
    image_urls = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Product")
        verbose_name_plural = _("Products")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
            models.Index(fields=["owner", "status"], name="products_owner_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

    def mark_available(self) -> None:
        self.status = self.Status.AVAILABLE
        self.save(update_fields=["status", "updated_at"])

    def mark_rented(self) -> None:
        self.status = self.Status.RENTED
        self.save(update_fields=["status", "updated_at"])
