"""
Domain exceptions for the rentals app.

API-facing errors carry their HTTP status so views can simply let them
propagate; service-level errors are plain exceptions translated by views.
"""
from rest_framework.exceptions import APIException


class RentalServiceError(Exception):
    """Base exception for rental service errors."""
    pass


class InvalidRentalPriceError(RentalServiceError):
    """Raised when a price calculation yields a non-positive total."""
    pass


class RentalConflictError(APIException):
    """Product is already rented (or in its buffer period) for the dates."""
    status_code = 409
    default_detail = 'Product is not available for the selected dates.'
    default_code = 'rental_conflict'


class RequestLimitReachedError(APIException):
    """Too many pending requests on the product."""
    status_code = 400
    default_detail = 'This product has too many pending requests. Please try again later.'
    default_code = 'request_limit_reached'


class InvalidStatusTransitionError(APIException):
    """Rental request status cannot be changed this way."""
    status_code = 400
    default_detail = 'Invalid status transition for rental request.'
    default_code = 'invalid_status_transition'
