"""
Domain exceptions for the payments app.
"""
from rest_framework.exceptions import APIException


class PaymentServiceError(Exception):
    """Base exception for payment service errors."""
    pass


class PaymentInProgressError(APIException):
    """Another customer is paying for the same product and dates."""
    status_code = 409
    default_detail = (
        'This product is currently being booked by another customer. '
        'Please try again in a few minutes.'
    )
    default_code = 'payment_in_progress'


class PaymentAlreadyCompletedError(APIException):
    status_code = 400
    default_detail = 'Payment has already been completed for this rental request.'
    default_code = 'payment_already_completed'


class InvalidPaymentAmountError(APIException):
    status_code = 400
    default_detail = 'Invalid payment amount.'
    default_code = 'invalid_payment_amount'


class InvalidPaymentStateError(APIException):
    status_code = 400
    default_detail = 'Payment cannot be changed in its current state.'
    default_code = 'invalid_payment_state'


class PaymentProviderError(APIException):
    """Stripe rejected or failed the request."""
    status_code = 502
    default_detail = 'Payment provider error. Please try again.'
    default_code = 'payment_provider_error'


class PaymentNotCompletableError(APIException):
    """A failed or refunded payment was asked to complete."""
    status_code = 409
    default_detail = 'This payment is no longer active and cannot be completed.'
    default_code = 'payment_not_completable'
