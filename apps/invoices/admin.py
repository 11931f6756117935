from django.contrib import admin  # type: ignore

from .models import Invoice, InvoiceDownload, InvoiceItem


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "rental_request", "amount", "invoice_status", "due_date", "paid_date")
    list_filter = ("invoice_status",)
    search_fields = ("invoice_number", "rental_request__customer__email")
    inlines = [InvoiceItemInline]


@admin.register(InvoiceDownload)
class InvoiceDownloadAdmin(admin.ModelAdmin):
    list_display = ("invoice", "user", "format", "success", "downloaded_at")
    list_filter = ("format", "success")
