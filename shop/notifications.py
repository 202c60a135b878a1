"""
Transactional order email.

Sending is best-effort: ``notify_*`` never raise. Delivery runs on a daemon
thread unless ``SHOP_NOTIFY_ASYNC`` is off, in which case it runs inline and
the outcome (True/False) is returned to the caller.
"""
import logging
import threading

from anymail.message import AnymailMessage
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    'confirmed': {
        'subject': 'Order Confirmed',
        'heading': 'Your Order Has Been Confirmed!',
        'message': "Great news! We've confirmed your order and it's now being prepared for processing.",
    },
    'processing': {
        'subject': 'Order Being Processed',
        'heading': 'Your Order Is Being Processed',
        'message': 'Your order is currently being prepared and packaged with care.',
    },
    'shipped': {
        'subject': 'Order Shipped',
        'heading': 'Your Order Is On Its Way!',
        'message': 'Exciting news! Your order has been shipped and is on its way to you.',
    },
    'delivered': {
        'subject': 'Order Delivered',
        'heading': 'Your Order Has Been Delivered!',
        'message': 'Your order has been successfully delivered. We hope you love your purchase!',
    },
    'cancelled': {
        'subject': 'Order Cancelled',
        'heading': 'Your Order Has Been Cancelled',
        'message': 'Your order has been cancelled. If you have any questions, please contact our support team.',
    },
}


def status_message(status):
    return STATUS_MESSAGES.get(status) or {
        'subject': 'Order Status Update',
        'heading': 'Your Order Status Has Been Updated',
        'message': f"Your order status has been updated to: {status}.",
    }


def _store_name():
    return getattr(settings, 'STORE_NAME', 'StyleStore')


def _send(subject, to, template, ctx):
    plain = render_to_string(f"shop/emails/{template}.txt", ctx)
    html = render_to_string(f"shop/emails/{template}.html", ctx)

    msg = AnymailMessage(
        subject=subject,
        body=plain,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to],
    )
    msg.attach_alternative(html, "text/html")
    msg.send()


def send_order_confirmation(order, items):
    if not order.shipping_email:
        logger.info("Order %s has no email address, skipping confirmation", order.pk)
        return
    ctx = {
        'order': order,
        'items': items,
        'name': order.shipping_name or 'Customer',
        'store_name': _store_name(),
        'site_url': getattr(settings, 'SITE_URL', ''),
    }
    _send(f"Order Confirmed - #{order.short_id}", order.shipping_email, 'order_confirmation', ctx)


def send_order_status_update(order, new_status):
    if not order.shipping_email:
        logger.info("Order %s has no email address, skipping status update", order.pk)
        return
    info = status_message(new_status)
    ctx = {
        'order': order,
        'status': new_status,
        'info': info,
        'name': order.shipping_name or 'Customer',
        'store_name': _store_name(),
    }
    _send(f"{info['subject']} - Order #{order.short_id}", order.shipping_email, 'order_status_update', ctx)


def admin_recipients():
    raw = getattr(settings, 'ADMIN_NOTIFICATION_EMAILS', None) or []
    if isinstance(raw, str):
        raw = raw.split(",")
    seen = set()
    recipients = []
    for address in raw:
        address = address.strip()
        if address and address.lower() not in seen:
            seen.add(address.lower())
            recipients.append(address)
    return recipients


def send_admin_new_order(order):
    recipients = admin_recipients()
    if not recipients:
        logger.debug("No admin recipients configured, skipping new order notice for %s", order.pk)
        return
    send_mail(
        subject=f"New Order - #{order.short_id}",
        message=(
            f"A new order has been placed.\n\n"
            f"Order ID: {order.pk}\n"
            f"Name: {order.shipping_name or 'Customer'}\n"
            f"Email: {order.shipping_email or 'Unknown'}\n"
            f"Delivery: {order.delivery_method}\n"
            f"Total: {order.total}\n"
            f"---\n"
            f"Please review it in the Django admin panel."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=recipients,
        fail_silently=False,
    )


def deliver(label, send, *args):
    """Runs ``send`` and reports whether it succeeded. Never raises."""
    try:
        send(*args)
    except Exception:
        logger.exception("%s failed", label)
        return False
    logger.info("%s sent", label)
    return True


def dispatch(label, send, *args):
    if not getattr(settings, 'SHOP_NOTIFY_ASYNC', True):
        return deliver(label, send, *args)

    try:
        threading.Thread(target=deliver, args=(label, send) + args, daemon=True).start()
        logger.info("Started thread for %s", label)
    except Exception:
        logger.exception("Failed to start thread for %s", label)
    return None


def notify_order_confirmation(order):
    items = list(order.items.all())
    return dispatch(f"Order confirmation for order {order.pk}", send_order_confirmation, order, items)


def notify_status_update(order, new_status):
    return dispatch(f"Status update ({new_status}) for order {order.pk}", send_order_status_update, order, new_status)


def notify_admins_new_order(order):
    return dispatch(f"Admin new order notice for order {order.pk}", send_admin_new_order, order)
