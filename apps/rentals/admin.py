from django.contrib import admin  # type: ignore

from .models import Feedback, RentalRequest


@admin.register(RentalRequest)
class RentalRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "customer", "status", "start_date", "end_date", "price")
    list_filter = ("status", "rental_period")
    search_fields = ("product__title", "customer__email")
    raw_id_fields = ("product", "customer")


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ("id", "rental_request", "rating", "submitted_at")
    list_filter = ("rating",)
