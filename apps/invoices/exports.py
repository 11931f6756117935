"""CSV and Excel exports of invoices."""

from __future__ import annotations

import csv
from io import BytesIO, StringIO
from typing import Iterable

from django.utils import timezone  # type: ignore
from openpyxl import Workbook  # type: ignore

from .exceptions import UnsupportedExportFormatError
from .models import Invoice

HEADERS = [
    "Invoice number",
    "Product",
    "Customer",
    "Owner",
    "Status",
    "Subtotal",
    "Tax",
    "Late fee",
    "Damage fee",
    "Additional charges",
    "Amount",
    "Due date",
    "Paid date",
    "Created",
]

CONTENT_TYPES = {
    "csv": "text/csv",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
EXTENSIONS = {"csv": "csv", "excel": "xlsx"}


def _row(invoice: Invoice) -> list:
    rental_request = invoice.rental_request
    return [
        invoice.invoice_number,
        rental_request.product.title,
        rental_request.customer.email,
        rental_request.product.owner.email,
        invoice.invoice_status,
        float(invoice.subtotal),
        float(invoice.tax_amount),
        float(invoice.late_fee),
        float(invoice.damage_fee),
        float(invoice.additional_charges),
        float(invoice.amount),
        invoice.due_date.strftime("%Y-%m-%d"),
        invoice.paid_date.strftime("%Y-%m-%d") if invoice.paid_date else "",
        invoice.created_at.strftime("%Y-%m-%d %H:%M"),
    ]


def _export_csv(invoices: Iterable[Invoice]) -> bytes:
    csv_buffer = StringIO()
    writer = csv.writer(csv_buffer)
    writer.writerow(HEADERS)
    for invoice in invoices:
        writer.writerow(_row(invoice))
    return csv_buffer.getvalue().encode("utf-8")


def _export_excel(invoices: Iterable[Invoice]) -> bytes:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Invoices"
    worksheet.append(HEADERS)
    for invoice in invoices:
        worksheet.append(_row(invoice))

    for column in worksheet.columns:
        max_length = 0
        column_letter = column[0].column_letter
        for cell in column:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        worksheet.column_dimensions[column_letter].width = min(max_length + 2, 40)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_invoices(invoices: Iterable[Invoice], format: str) -> tuple[bytes, str, str]:
    """Render invoices to a file.

    Returns ``(content, content_type, filename)``.
    """
    if format == "csv":
        content = _export_csv(invoices)
    elif format == "excel":
        content = _export_excel(invoices)
    else:
        raise UnsupportedExportFormatError(f"Unsupported export format: {format}")

    filename = f"invoices_{timezone.now():%Y%m%d_%H%M%S}.{EXTENSIONS[format]}"
    return content, CONTENT_TYPES[format], filename
