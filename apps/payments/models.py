"""Payment domain models for Rentify."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Payment(models.Model):
    """Payment for a rental request."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETED = "completed", _("Completed")
        FAILED = "failed", _("Failed")
        REFUNDED = "refunded", _("Refunded")

    class Method(models.TextChoices):
        CARD = "card", _("Card")
        PAYPAL = "paypal", _("PayPal")
        APPLE_PAY = "apple_pay", _("Apple Pay")
        GOOGLE_PAY = "google_pay", _("Google Pay")
        OFFLINE = "offline", _("Offline")

    rental_request = models.OneToOneField(
        "rentals.RentalRequest",
        on_delete=models.CASCADE,
        related_name="payment",
    )
    payment_method = models.CharField(max_length=20, choices=Method.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    transaction_id = models.CharField(max_length=255, blank=True, db_index=True)
    notes = models.TextField(blank=True)
    payment_date = models.DateTimeField(null=True, blank=True)

    # Offline payments: receipt uploaded by the customer
    receipt_file = models.FileField(
        upload_to="receipts/%Y/%m/%d/",
        null=True,
        blank=True,
        help_text=_("PDF receipt of the offline payment"),
    )
    receipt_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Amount read from the receipt"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payment {self.rental_request_id} ({self.payment_status})"

    @property
    def is_offline(self) -> bool:
        return self.payment_method == self.Method.OFFLINE

    def mark_completed(self, transaction_id: str | None = None) -> None:
        self.payment_status = self.Status.COMPLETED
        if transaction_id:
            self.transaction_id = transaction_id
        self.payment_date = timezone.now()
        self.save(update_fields=["payment_status", "transaction_id", "payment_date", "updated_at"])

    def mark_failed(self, reason: str | None = None) -> None:
        self.payment_status = self.Status.FAILED
        if reason:
            self.notes = reason
        self.save(update_fields=["payment_status", "notes", "updated_at"])

    def mark_refunded(self, note: str | None = None) -> None:
        self.payment_status = self.Status.REFUNDED
        if note:
            self.notes = note
        self.save(update_fields=["payment_status", "notes", "updated_at"])


class PaymentAttempt(models.Model):
    """Short-lived hold on a product's dates while a customer is paying."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payment_attempts",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="payment_attempts",
    )
    rental_request = models.OneToOneField(
        "rentals.RentalRequest",
        on_delete=models.CASCADE,
        related_name="payment_attempt",
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    expires_at = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment attempt")
        verbose_name_plural = _("Payment attempts")
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["product", "is_active", "expires_at"],
                name="payments_attempt_active_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Attempt for rental {self.rental_request_id} until {self.expires_at:%H:%M:%S}"

    @property
    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at

    def extend(self, minutes: int) -> None:
        self.expires_at = timezone.now() + timedelta(minutes=minutes)
        self.is_active = True
        self.save(update_fields=["expires_at", "is_active", "updated_at"])

    def deactivate(self) -> None:
        self.is_active = False
        self.save(update_fields=["is_active", "updated_at"])


class PaymentTransaction(models.Model):
    """Raw payment provider event, kept for auditing webhooks."""

    class Status(models.TextChoices):
        RECEIVED = "received", _("Received")
        PROCESSED = "processed", _("Processed")
        IGNORED = "ignored", _("Ignored")
        FAILED = "failed", _("Failed")

    payment = models.ForeignKey(
        Payment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    event_id = models.CharField(max_length=255, blank=True, db_index=True)
    event = models.CharField(max_length=100)
    payload = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.RECEIVED)
    error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment transaction")
        verbose_name_plural = _("Payment transactions")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.event} ({self.status})"
