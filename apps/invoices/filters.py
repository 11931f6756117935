"""FilterSet for invoice listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Invoice


class InvoiceFilterSet(django_filters.FilterSet):
    invoice_status = django_filters.ChoiceFilter(choices=Invoice.Status.choices)
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Invoice
        fields = ["invoice_status"]
