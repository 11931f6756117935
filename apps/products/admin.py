"""Admin registration for products."""

from __future__ import annotations

from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "category", "rental_price", "status", "created_at")
    list_filter = ("status", "category")
    search_fields = ("title", "description", "owner__email", "location")
    readonly_fields = ("created_at", "updated_at")
