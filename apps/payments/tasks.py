"""Celery tasks for the payments domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import expire_payment_attempts

logger = logging.getLogger(__name__)


@shared_task(name="payments.expire_payment_attempt")
def expire_payment_attempt(attempt_id: int) -> int:
    """Expire a single attempt once its countdown has elapsed.

    Does nothing if the attempt was completed, extended or already expired.
    """
    return expire_payment_attempts(attempt_id=attempt_id)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="payments.cleanup_expired_payment_attempts")
def cleanup_expired_payment_attempts() -> dict[str, int]:
    """
    Sweep for payment attempts whose expiry task never ran.

    Runs every minute through Celery Beat.

    Returns:
        dict: {"expired": number of attempts expired}
    """
    expired = expire_payment_attempts()
    if expired:
        logger.info("Cleanup expired %s payment attempt(s)", expired)
    return {"expired": expired}
