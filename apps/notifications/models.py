"""Notification model.

Notifications are created by domain services when something happens to a
rental (new request, status change, payment, return, invoice) and are read
by their recipient through the API. Each notification can carry a link to
the rental request it is about and a free-form ``data`` payload for the
client.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Type(models.TextChoices):
        NEW_REQUEST = "new_request", _("New rental request")
        APPROVED = "approved", _("Request approved")
        REJECTED = "rejected", _("Request rejected")
        PAYMENT_COMPLETED = "payment_completed", _("Payment completed")
        PAYMENT_CONFIRMED = "payment_confirmed", _("Payment confirmed")
        PAYMENT_EXPIRED = "payment_expired", _("Payment expired")
        RETURN_INITIATED = "return_initiated", _("Return initiated")
        RETURN_CONFIRMED = "return_confirmed", _("Return confirmed")
        INVOICE_EMAILED = "invoice_emailed", _("Invoice emailed")
        INVOICE_PAID = "invoice_paid", _("Invoice paid")
        STATUS_UPDATE = "status_update", _("Status update")
        GENERAL = "general", _("General")

    user = models.ForeignKey(
        "users.CustomUser", on_delete=models.CASCADE, related_name="notifications"
    )
    rental_request = models.ForeignKey(
        "rentals.RentalRequest",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    type = models.CharField(max_length=32, choices=Type.choices, default=Type.GENERAL)
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="notifications_user_read_idx"),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"

    def mark_read(self) -> None:
        if self.is_read:
            return
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=["is_read", "read_at", "updated_at"])
