"""
Domain exceptions for the invoices app.
"""
from rest_framework.exceptions import APIException


class InvoiceServiceError(Exception):
    """Base exception for invoice service errors."""
    pass


class UnsupportedExportFormatError(InvoiceServiceError):
    """Raised when an export format other than csv or excel is requested."""
    pass


class InvoiceAlreadyExistsError(APIException):
    status_code = 400
    default_detail = 'An invoice already exists for this rental request.'
    default_code = 'invoice_already_exists'
