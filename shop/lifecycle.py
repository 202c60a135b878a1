"""
Order status lifecycle.

pending -> confirmed -> processing -> shipped -> delivered, with cancelled
reachable from anywhere. Transitions are not guarded: an admin may set any
status from any status.
"""
import logging

from . import notifications
from .exceptions import InvalidStatus
from .models import Order

logger = logging.getLogger(__name__)

STATUSES = tuple(value for value, _ in Order.STATUS_CHOICES)
TERMINAL_STATUSES = frozenset({Order.DELIVERED, Order.CANCELLED})


def is_terminal(status):
    return status in TERMINAL_STATUSES


def update_order_status(order_id, status):
    if status not in STATUSES:
        raise InvalidStatus(status)

    order = Order.objects.get(pk=order_id)
    previous = order.status
    order.status = status
    order.save(update_fields=['status', 'updated_at'])
    logger.info("Order %s status changed %s -> %s", order.pk, previous, status)

    notifications.notify_status_update(order, status)
    return order


def bulk_update_status(orders, status):
    return [update_order_status(order.pk, status) for order in orders]
