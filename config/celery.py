import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("rentify")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Safety net for payment attempts whose countdown task was lost
    "cleanup-expired-payment-attempts": {
        "task": "payments.cleanup_expired_payment_attempts",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # Sent invoices past their due date become overdue
    "check-overdue-invoices": {
        "task": "invoices.check_overdue_invoices",
        "schedule": 60.0 * 60,
    },
}

app.conf.timezone = "UTC"
