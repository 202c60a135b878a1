"""
Price resolution shared by the catalog, the cart and the order composer.

All money values are ``Decimal`` with cent precision. Anything exposing
``price`` and ``sale_price`` attributes (a ``Product`` row or a projected
catalog product) can be priced.
"""
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value):
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def effective_price(product):
    """
    Returns the sale price when one is set, otherwise the base price.
    """
    if product.sale_price:
        return to_decimal(product.sale_price)
    return to_decimal(product.price)


def discount_percent(product):
    price = to_decimal(product.price)
    sale = to_decimal(product.sale_price)
    if sale and price and sale < price:
        pct = (1 - sale / price) * 100
        return int(pct.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    return 0


def resolve_sale_price(price, discount_percentage):
    """
    Derives the sale price from a discount percentage entered by an admin.

    Only 0 < pct < 100 counts as a discount; anything else means no sale
    price at all.
    """
    if not price or not discount_percentage:
        return None
    pct = to_decimal(discount_percentage)
    if pct <= 0 or pct >= 100:
        return None
    return round2(to_decimal(price) * (1 - pct / 100))
