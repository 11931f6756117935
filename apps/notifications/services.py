"""Notification services for in-app notifications and email delivery.

Every helper here is called from domain services after the main change has
been saved. Failures are logged and swallowed so a broken mail server never
rolls back a payment or a return.
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Any

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.db import transaction  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils.html import format_html, strip_tags  # type: ignore

from .models import Notification

if TYPE_CHECKING:  # pragma: no cover
    from apps.users.models import CustomUser
    from apps.rentals.models import RentalRequest

logger = logging.getLogger(__name__)


# ============================================================================
# EMAIL NOTIFICATIONS
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send a transactional email.

    Args:
        recipient_email: Recipient address
        subject: Email subject
        template_name: Django template path (optional)
        context: Context used to render the template
        html_message: Pre-rendered HTML body (optional)

    Returns:
        bool: True if the email was handed over to the backend
    """
    try:
        if html_message:
            text_message = html.unescape(strip_tags(html_message))
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = html.unescape(strip_tags(html_message))
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info("Email sent to %s: %s", recipient_email, subject)
        return True

    except Exception as e:
        logger.error("Failed to send email to %s: %s", recipient_email, e, exc_info=True)
        return False


# ============================================================================
# IN-APP NOTIFICATIONS
# ============================================================================

def create_notification(
    user: "CustomUser",
    type: str,
    title: str,
    message: str,
    rental_request: "RentalRequest | None" = None,
    data: dict[str, Any] | None = None,
) -> Notification | None:
    """Create an in-app notification, returning None if it could not be stored."""
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                user=user,
                type=type,
                title=title,
                message=message,
                rental_request=rental_request,
                data=data or {},
            )
    except Exception as e:
        logger.error("Failed to create notification for %s: %s", user.email, e, exc_info=True)
        return None

    logger.info("Notification %s created for user %s: %s", type, user.pk, title)
    return notification


def get_unread_count(user: "CustomUser") -> int:
    return Notification.objects.filter(user=user, is_read=False).count()


def _notify(
    user: "CustomUser",
    type: str,
    title: str,
    message: str,
    *,
    rental_request: "RentalRequest | None" = None,
    data: dict[str, Any] | None = None,
    send_email: bool = True,
) -> dict[str, bool]:
    """Deliver one event in-app and, optionally, by email."""
    results = {
        "in_app": create_notification(user, type, title, message, rental_request, data) is not None,
        "email": False,
    }
    if send_email and user.email:
        html_message = format_html(
            """
    <html>
    <body>
        <h2>Hello, {name}!</h2>
        <p>{message}</p>
        <p><a href="{frontend_url}/dashboard">Open your dashboard</a></p>
        <p>Best regards,<br>The Rentify team</p>
    </body>
    </html>
    """,
            name=user.display_name,
            message=message,
            frontend_url=settings.FRONTEND_URL,
        )
        results["email"] = send_email_notification(
            recipient_email=user.email,
            subject=title,
            template_name=None,
            context={"message": message},
            html_message=html_message,
        )
    return results


def _rental_data(rental_request: "RentalRequest", **extra: Any) -> dict[str, Any]:
    data = {
        "rental_request_id": rental_request.pk,
        "product_id": rental_request.product_id,
        "product_title": rental_request.product.title,
    }
    data.update(extra)
    return data


# ============================================================================
# RENTAL EVENTS
# ============================================================================

def notify_new_rental_request(rental_request: "RentalRequest") -> dict[str, bool]:
    """Tell the product owner that somebody wants to rent their product."""
    product = rental_request.product
    customer = rental_request.customer
    message = (
        f"{customer.display_name} requested to rent \"{product.title}\" from "
        f"{rental_request.start_date:%Y-%m-%d %H:%M} to {rental_request.end_date:%Y-%m-%d %H:%M} "
        f"for ${rental_request.price}."
    )
    return _notify(
        product.owner,
        Notification.Type.NEW_REQUEST,
        f"New rental request for {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request, customer_id=customer.pk),
    )


def notify_rental_status_update(
    rental_request: "RentalRequest",
    old_status: str,
    new_status: str,
    actor: "CustomUser",
) -> dict[str, bool]:
    """Tell the other party of the rental that its status changed."""
    product = rental_request.product
    if actor.pk == rental_request.customer_id:
        recipient = product.owner
    else:
        recipient = rental_request.customer

    if new_status == "accepted":
        notification_type = Notification.Type.APPROVED
    elif new_status == "rejected":
        notification_type = Notification.Type.REJECTED
    else:
        notification_type = Notification.Type.STATUS_UPDATE

    message = (
        f"The rental of \"{product.title}\" changed from {old_status} to {new_status} "
        f"by {actor.display_name}."
    )
    return _notify(
        recipient,
        notification_type,
        f"Rental {new_status}: {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request, old_status=old_status, new_status=new_status),
    )


# ============================================================================
# PAYMENT EVENTS
# ============================================================================

def notify_payment_completed(payment) -> dict[str, bool]:  # type: ignore
    """Owner side: money for a rental arrived."""
    rental_request = payment.rental_request
    product = rental_request.product
    message = (
        f"{rental_request.customer.display_name} paid ${payment.amount} for "
        f"\"{product.title}\"."
    )
    return _notify(
        product.owner,
        Notification.Type.PAYMENT_COMPLETED,
        f"Payment received for {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request, payment_id=payment.pk, amount=str(payment.amount)),
    )


def notify_payment_confirmed(payment) -> dict[str, bool]:  # type: ignore
    """Customer side: their payment went through."""
    rental_request = payment.rental_request
    product = rental_request.product
    message = (
        f"Your payment of ${payment.amount} for \"{product.title}\" is confirmed. "
        f"The rental starts on {rental_request.start_date:%Y-%m-%d %H:%M}."
    )
    return _notify(
        rental_request.customer,
        Notification.Type.PAYMENT_CONFIRMED,
        f"Payment confirmed for {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request, payment_id=payment.pk, amount=str(payment.amount)),
    )


def notify_payment_expired(rental_request: "RentalRequest") -> dict[str, bool]:
    product = rental_request.product
    minutes = settings.PAYMENT_ATTEMPT_TTL_MINUTES
    message = (
        f"Your payment window for \"{product.title}\" expired after {minutes} minutes. "
        "You can start the payment again if the dates are still free."
    )
    return _notify(
        rental_request.customer,
        Notification.Type.PAYMENT_EXPIRED,
        f"Payment expired for {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request),
    )


def notify_receipt_uploaded(payment, amount_valid: bool) -> dict[str, bool]:  # type: ignore
    """Owner side: the customer uploaded a receipt for an offline payment."""
    rental_request = payment.rental_request
    product = rental_request.product
    check = "matches" if amount_valid else "does not match"
    message = (
        f"{rental_request.customer.display_name} uploaded a receipt for \"{product.title}\". "
        f"The receipt amount ${payment.receipt_amount} {check} the expected ${payment.amount}. "
        "Please verify the offline payment."
    )
    return _notify(
        product.owner,
        Notification.Type.GENERAL,
        f"Receipt uploaded for {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request, payment_id=payment.pk, amount_valid=amount_valid),
    )


# ============================================================================
# RETURN EVENTS
# ============================================================================

def notify_return_initiated(product_return) -> dict[str, bool]:  # type: ignore
    rental_request = product_return.rental_request
    product = rental_request.product
    message = (
        f"A return of \"{product.title}\" was initiated"
        + (
            f" for {product_return.return_date:%Y-%m-%d %H:%M}."
            if product_return.return_date
            else "."
        )
    )
    return _notify(
        product.owner,
        Notification.Type.RETURN_INITIATED,
        f"Return initiated: {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request, return_id=product_return.pk),
    )


def notify_return_confirmed(product_return) -> dict[str, bool]:  # type: ignore
    rental_request = product_return.rental_request
    product = rental_request.product
    message = f"The owner confirmed the return of \"{product.title}\". Thank you for renting!"
    return _notify(
        rental_request.customer,
        Notification.Type.RETURN_CONFIRMED,
        f"Return confirmed: {product.title}",
        message,
        rental_request=rental_request,
        data=_rental_data(rental_request, return_id=product_return.pk),
    )


# ============================================================================
# INVOICE EVENTS
# ============================================================================

def notify_invoice_emailed(invoice, recipient_email: str) -> dict[str, bool]:  # type: ignore
    """In-app record for the customer that an invoice was sent to them."""
    rental_request = invoice.rental_request
    return _notify(
        rental_request.customer,
        Notification.Type.INVOICE_EMAILED,
        f"Invoice {invoice.invoice_number}",
        f"Invoice {invoice.invoice_number} for ${invoice.amount} was sent to {recipient_email}.",
        rental_request=rental_request,
        data=_rental_data(rental_request, invoice_id=invoice.pk, recipient_email=recipient_email),
        send_email=False,
    )


def notify_invoice_paid(invoice) -> dict[str, bool]:  # type: ignore
    rental_request = invoice.rental_request
    return _notify(
        rental_request.product.owner,
        Notification.Type.INVOICE_PAID,
        f"Invoice {invoice.invoice_number} paid",
        f"Invoice {invoice.invoice_number} for ${invoice.amount} has been paid.",
        rental_request=rental_request,
        data=_rental_data(rental_request, invoice_id=invoice.pk),
        send_email=False,
    )
