"""FilterSet definitions for product search and listing."""

from __future__ import annotations

import django_filters  # type: ignore
from django.db.models import Q  # type: ignore

from .models import Product


class ProductFilterSet(django_filters.FilterSet):
    """FilterSet for Product with the filters used by the catalogue."""

    search = django_filters.CharFilter(method="filter_search")
    category = django_filters.CharFilter(field_name="category", lookup_expr="iexact")
    location = django_filters.CharFilter(field_name="location", lookup_expr="icontains")
    min_price = django_filters.NumberFilter(field_name="rental_price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="rental_price", lookup_expr="lte")
    status = django_filters.ChoiceFilter(choices=Product.Status.choices)

    class Meta:
        model = Product
        fields = ["category", "location", "status"]

    def filter_search(self, queryset, name, value):  # type: ignore
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))
