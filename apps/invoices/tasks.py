"""Celery tasks for the invoices domain."""

from __future__ import annotations

from celery import shared_task  # type: ignore

from .services import check_overdue_invoices as _check_overdue_invoices


@shared_task(name="invoices.check_overdue_invoices")
def check_overdue_invoices() -> dict[str, int]:
    """Hourly: move sent invoices past their due date to overdue."""
    return {"overdue": _check_overdue_invoices()}
