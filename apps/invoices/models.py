"""Invoice domain models for Rentify."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Invoice(models.Model):
    """Invoice issued for a rental request."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        SENT = "sent", _("Sent")
        PAID = "paid", _("Paid")
        OVERDUE = "overdue", _("Overdue")
        CANCELLED = "cancelled", _("Cancelled")

    rental_request = models.OneToOneField(
        "rentals.RentalRequest",
        on_delete=models.CASCADE,
        related_name="invoice",
    )
    invoice_number = models.CharField(max_length=32, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal("0.10"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    late_fee = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    damage_fee = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    additional_charges = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    invoice_status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    due_date = models.DateTimeField()
    paid_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Invoice")
        verbose_name_plural = _("Invoices")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["invoice_status", "due_date"], name="invoices_status_due_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.invoice_number} ({self.invoice_status})"

    def recalculate_amount(self) -> Decimal:
        self.amount = (
            self.subtotal
            + self.tax_amount
            + self.late_fee
            + self.damage_fee
            + self.additional_charges
        )
        return self.amount

    def mark_paid(self) -> None:
        self.invoice_status = self.Status.PAID
        self.paid_date = timezone.now()
        self.save(update_fields=["invoice_status", "paid_date", "updated_at"])

    def mark_sent(self) -> None:
        self.invoice_status = self.Status.SENT
        self.save(update_fields=["invoice_status", "updated_at"])

    @property
    def is_overdue(self) -> bool:
        return (
            self.invoice_status in (self.Status.PENDING, self.Status.SENT)
            and self.due_date < timezone.now()
        )


class InvoiceItem(models.Model):
    """One line of an invoice; each type appears at most once."""

    class ItemType(models.TextChoices):
        RENTAL_FEE = "rental_fee", _("Rental fee")
        TAX = "tax", _("Tax")
        LATE_FEE = "late_fee", _("Late fee")
        DAMAGE_FEE = "damage_fee", _("Damage fee")
        ADDITIONAL_CHARGE = "additional_charge", _("Additional charge")

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    item_type = models.CharField(max_length=32, choices=ItemType.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Invoice item")
        verbose_name_plural = _("Invoice items")
        ordering = ["created_at", "id"]
        unique_together = ("invoice", "item_type")

    def __str__(self) -> str:
        return f"{self.description}: {self.total_price}"


class InvoiceDownload(models.Model):
    """Audit record of an invoice export."""

    class Format(models.TextChoices):
        PDF = "pdf", _("PDF")
        CSV = "csv", _("CSV")
        EXCEL = "excel", _("Excel")

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="downloads")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="invoice_downloads",
    )
    format = models.CharField(max_length=10, choices=Format.choices, default=Format.PDF)
    file_size = models.PositiveIntegerField(null=True, blank=True)
    success = models.BooleanField(default=True)
    downloaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-downloaded_at"]

    def __str__(self) -> str:
        return f"{self.invoice_id} as {self.format}"
