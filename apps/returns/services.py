"""Domain services for product returns."""

from __future__ import annotations

import logging
from typing import Any

from django.db import transaction  # type: ignore

from apps.invoices.services import apply_damage_assessment
from apps.notifications.services import notify_return_confirmed, notify_return_initiated
from apps.rentals.models import RentalRequest
from .models import DamageAssessment, ProductReturn

logger = logging.getLogger(__name__)


class DuplicateReturnError(Exception):
    """Raised when the rental already has a return record."""


class DuplicateAssessmentError(Exception):
    """Raised when the return already has a damage assessment."""


def initiate_return(rental_request: RentalRequest, **data: Any) -> ProductReturn:
    if ProductReturn.objects.filter(rental_request=rental_request).exists():
        raise DuplicateReturnError("A return already exists for this rental request.")

    product_return = ProductReturn.objects.create(
        rental_request=rental_request,
        return_status=ProductReturn.Status.INITIATED,
        **data,
    )
    logger.info("Return %s initiated for rental %s", product_return.pk, rental_request.pk)
    notify_return_initiated(product_return)
    return product_return


def complete_return(product_return: ProductReturn) -> ProductReturn:
    """Close the rental: product available again, request returned, damage billed."""

    with transaction.atomic():
        rental_request = product_return.rental_request
        rental_request.product.mark_available()
        rental_request.set_status(RentalRequest.Status.RETURNED)

        assessment = getattr(product_return, "damage_assessment", None)
        if assessment is not None and assessment.approved and assessment.estimated_cost > 0:
            apply_damage_assessment(assessment)

    logger.info("Return %s completed for rental %s", product_return.pk, rental_request.pk)
    notify_return_confirmed(product_return)
    return product_return


@transaction.atomic
def assess_damage(product_return: ProductReturn, assessed_by, **data: Any) -> DamageAssessment:  # type: ignore
    if DamageAssessment.objects.filter(product_return=product_return).exists():
        raise DuplicateAssessmentError("This return already has a damage assessment.")

    assessment = DamageAssessment.objects.create(
        product_return=product_return,
        assessed_by=assessed_by,
        **data,
    )
    if assessment.estimated_cost > 0:
        apply_damage_assessment(assessment)
    return assessment
