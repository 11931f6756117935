from django.contrib import admin  # type: ignore

from .models import DamageAssessment, DamagePhoto, ProductReturn


@admin.register(ProductReturn)
class ProductReturnAdmin(admin.ModelAdmin):
    list_display = ("id", "rental_request", "return_status", "return_date", "owner_confirmation")
    list_filter = ("return_status", "owner_confirmation")


class DamagePhotoInline(admin.TabularInline):
    model = DamagePhoto
    extra = 0


@admin.register(DamageAssessment)
class DamageAssessmentAdmin(admin.ModelAdmin):
    list_display = ("id", "product_return", "severity", "estimated_cost", "approved", "assessed_by")
    list_filter = ("severity", "approved")
    inlines = [DamagePhotoInline]
