from django.contrib import admin  # type: ignore

from .models import Payment, PaymentAttempt, PaymentTransaction


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "rental_request", "payment_method", "payment_status", "amount", "payment_date")
    list_filter = ("payment_status", "payment_method")
    search_fields = ("transaction_id", "rental_request__customer__email")


@admin.register(PaymentAttempt)
class PaymentAttemptAdmin(admin.ModelAdmin):
    list_display = ("id", "rental_request", "product", "user", "expires_at", "is_active")
    list_filter = ("is_active",)


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "event", "status", "payment", "created_at")
    list_filter = ("event", "status")
    readonly_fields = ("payload",)
