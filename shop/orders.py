"""
Order composer: turns a cart and checkout selections into a stored order.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction

from . import notifications
from .exceptions import EmptyCart, Unauthenticated
from .models import Order, OrderItem
from .pricing import ZERO, round2

logger = logging.getLogger(__name__)

STANDARD = 'standard'
EXPRESS = 'express'

SHIPPING_COSTS = {
    STANDARD: Decimal('0.00'),
    EXPRESS: Decimal('15.00'),
}

DELIVERY_CHOICES = [
    (STANDARD, 'Standard delivery (5-7 business days)'),
    (EXPRESS, 'Express delivery (1-2 business days)'),
]

TAX_RATE = Decimal('0.08')
DEFAULT_COUNTRY = 'United States'


@dataclass(frozen=True)
class ShippingInfo:
    name: str
    email: str
    address: str
    city: str
    state: str
    zip_code: str
    phone: str = ''
    country: str = DEFAULT_COUNTRY


@dataclass(frozen=True)
class OrderQuote:
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal


def shipping_cost_for(delivery_method):
    # Unknown methods ship for free.
    return SHIPPING_COSTS.get(delivery_method, ZERO)


def quote(cart, delivery_method=STANDARD):
    subtotal = round2(cart.total_price)
    shipping_cost = shipping_cost_for(delivery_method)
    tax = round2(subtotal * TAX_RATE)
    return OrderQuote(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        total=subtotal + shipping_cost + tax,
    )


def place_order(user, cart, shipping, delivery_method=STANDARD, notes=''):
    """
    Stores the order and its line snapshots in one transaction, then sends
    the confirmation email. The email is best-effort and never fails the
    order. Clearing the cart is left to the caller.
    """
    if user is None or not user.is_authenticated:
        raise Unauthenticated()
    if not cart:
        raise EmptyCart()

    totals = quote(cart, delivery_method)

    with transaction.atomic():
        order = Order.objects.create(
            user=user,
            subtotal=totals.subtotal,
            shipping_cost=totals.shipping_cost,
            tax=totals.tax,
            total=totals.total,
            shipping_name=shipping.name,
            shipping_email=shipping.email,
            shipping_phone=shipping.phone or '',
            shipping_address=shipping.address,
            shipping_city=shipping.city,
            shipping_state=shipping.state,
            shipping_zip=shipping.zip_code,
            shipping_country=shipping.country or DEFAULT_COUNTRY,
            delivery_method=delivery_method,
            notes=notes or '',
        )

        for line in cart:
            OrderItem.objects.create(
                order=order,
                product_id=line.product.id,
                product_name=line.product.name,
                product_image=line.product.images[0] if line.product.images else '',
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=round2(line.line_total),
                size=line.size,
                color=line.color,
            )

    logger.info("Order %s placed by user %s: %s items, total %s",
                order.pk, user.pk, cart.total_items, order.total)

    notifications.notify_order_confirmation(order)
    notifications.notify_admins_new_order(order)
    return order
