"""Rental request domain models for Rentify."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class RentalRequest(models.Model):
    """A customer's request to rent a product for a date range."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        ACCEPTED = "accepted", _("Accepted")
        REJECTED = "rejected", _("Rejected")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")
        PAID = "paid", _("Paid")
        RETURNED = "returned", _("Returned")
        ACTIVE = "active", _("Active")

    class RentalPeriod(models.TextChoices):
        HOURLY = "hourly", _("Hourly")
        DAILY = "daily", _("Daily")
        WEEKLY = "weekly", _("Weekly")
        MONTHLY = "monthly", _("Monthly")
        QUARTERLY = "quarterly", _("Quarterly")
        YEARLY = "yearly", _("Yearly")

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="rental_requests",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="rental_requests",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    rental_period = models.CharField(
        max_length=20,
        choices=RentalPeriod.choices,
        default=RentalPeriod.DAILY,
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text=_("Total price fixed at request time."),
    )
    pickup_location = models.CharField(max_length=255, blank=True)
    return_location = models.CharField(max_length=255, blank=True)
    message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Rental request")
        verbose_name_plural = _("Rental requests")
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["product", "status", "start_date", "end_date"],
                name="rentals_product_dates_idx",
            ),
            models.Index(fields=["customer", "status"], name="rentals_customer_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Rental #{self.pk} of {self.product_id} ({self.status})"

    @property
    def owner_id(self) -> int:
        return self.product.owner_id

    def is_participant(self, user) -> bool:  # type: ignore
        return user.id in (self.customer_id, self.product.owner_id)

    def set_status(self, new_status: str) -> None:
        self.status = new_status
        self.save(update_fields=["status", "updated_at"])

    def mark_paid(self) -> None:
        self.set_status(self.Status.PAID)

    @property
    def is_overdue(self) -> bool:
        if self.status != self.Status.PAID or self.end_date >= timezone.now():
            return False
        product_return = getattr(self, "product_return", None)
        return product_return is None or product_return.return_status != "completed"


class Feedback(models.Model):
    """Customer feedback submitted after a rental."""

    rental_request = models.OneToOneField(
        RentalRequest,
        on_delete=models.CASCADE,
        related_name="feedback",
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        help_text=_("Rating from 1 to 5"),
    )
    feedback = models.TextField(blank=True)
    submitted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Feedback")
        verbose_name_plural = _("Feedback")
        ordering = ["-submitted_at"]

    def __str__(self) -> str:
        return f"Feedback {self.rating}/5 for rental {self.rental_request_id}"
