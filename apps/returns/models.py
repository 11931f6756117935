"""Return and damage assessment models for Rentify."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ProductReturn(models.Model):
    """Return of a rented product to its owner."""

    class Status(models.TextChoices):
        INITIATED = "initiated", _("Initiated")
        IN_PROGRESS = "in_progress", _("In progress")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    rental_request = models.OneToOneField(
        "rentals.RentalRequest",
        on_delete=models.CASCADE,
        related_name="product_return",
    )
    return_date = models.DateTimeField()
    return_location = models.CharField(max_length=255)
    return_status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.INITIATED
    )
    condition_notes = models.TextField(blank=True)
    customer_signature = models.TextField(blank=True)
    owner_confirmation = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Product return")
        verbose_name_plural = _("Product returns")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Return of rental {self.rental_request_id} ({self.return_status})"


class DamageAssessment(models.Model):
    """Owner's assessment of damage found on return."""

    class Severity(models.TextChoices):
        MINOR = "minor", _("Minor")
        MODERATE = "moderate", _("Moderate")
        MAJOR = "major", _("Major")

    product_return = models.OneToOneField(
        ProductReturn,
        on_delete=models.CASCADE,
        related_name="damage_assessment",
    )
    damage_type = models.CharField(max_length=100)
    severity = models.CharField(max_length=20, choices=Severity.choices)
    description = models.TextField()
    estimated_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    approved = models.BooleanField(default=False)
    assessed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="damage_assessments",
    )
    assessment_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Damage assessment")
        verbose_name_plural = _("Damage assessments")
        ordering = ["-assessment_date"]

    def __str__(self) -> str:
        return f"{self.severity} damage on return {self.product_return_id}"


class DamagePhoto(models.Model):
    assessment = models.ForeignKey(
        DamageAssessment,
        on_delete=models.CASCADE,
        related_name="photos",
    )
    photo_url = models.URLField(max_length=500)
    description = models.CharField(max_length=255, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["uploaded_at"]

    def __str__(self) -> str:
        return self.photo_url
