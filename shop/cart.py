"""
Shopping cart ledger.

A ``Cart`` is an immutable snapshot: ``add``, ``update_quantity``,
``remove`` and ``clear`` return a new cart and leave the receiver alone.
Lines hold a reference to the live product, so prices are read from it
each time a total is computed.

Lines are keyed by (product id, size, color); no two lines share a key.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Tuple

from . import catalog
from .pricing import ZERO, effective_price

logger = logging.getLogger(__name__)

SESSION_KEY = 'cart'


def line_key(product_id, size, color):
    return (str(product_id), size or '', color or '')


@dataclass(frozen=True)
class CartLine:
    product: Any
    size: str
    color: str
    quantity: int = 1

    @property
    def key(self):
        return line_key(self.product.id, self.size, self.color)

    @property
    def unit_price(self):
        return effective_price(self.product)

    @property
    def line_total(self):
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Cart:
    lines: Tuple[CartLine, ...] = ()

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)

    def find(self, product_id, size, color):
        key = line_key(product_id, size, color)
        for line in self.lines:
            if line.key == key:
                return line
        return None

    def add(self, product, size, color, quantity=1):
        key = line_key(product.id, size, color)
        lines = []
        merged = False
        for line in self.lines:
            if line.key == key:
                line = replace(line, quantity=line.quantity + quantity)
                merged = True
            lines.append(line)
        if not merged:
            lines.append(CartLine(product, size or '', color or '', quantity))
        return Cart(tuple(lines))

    def update_quantity(self, product_id, size, color, quantity):
        if quantity <= 0:
            return self.remove(product_id, size, color)
        key = line_key(product_id, size, color)
        return Cart(tuple(
            replace(line, quantity=quantity) if line.key == key else line
            for line in self.lines
        ))

    def remove(self, product_id, size, color):
        key = line_key(product_id, size, color)
        return Cart(tuple(line for line in self.lines if line.key != key))

    def clear(self):
        return Cart()

    @property
    def total_items(self):
        return sum(line.quantity for line in self.lines)

    @property
    def total_price(self):
        return sum((line.line_total for line in self.lines), ZERO)


class SessionCart:
    """
    Keeps a ``Cart`` in the Django session between requests.

    The session only stores (product id, size, color, quantity) rows; products
    are re-read from the catalog on ``load`` and lines whose product is gone
    or hidden are dropped.
    """

    def __init__(self, request):
        self.session = request.session

    def rows(self):
        return self.session.get(SESSION_KEY) or []

    def count(self):
        return sum(int(row.get('quantity', 0)) for row in self.rows())

    def load(self):
        rows = self.rows()
        products = catalog.products_by_id({row['product_id'] for row in rows})
        cart = Cart()
        for row in rows:
            product = products.get(row['product_id'])
            if product is None:
                logger.info("Dropping cart line for unavailable product %s", row['product_id'])
                continue
            cart = cart.add(product, row.get('size', ''), row.get('color', ''), int(row['quantity']))
        return cart

    def save(self, cart):
        self.session[SESSION_KEY] = [
            {
                'product_id': str(line.product.id),
                'size': line.size,
                'color': line.color,
                'quantity': line.quantity,
            }
            for line in cart
        ]
        self.session.modified = True

    def clear(self):
        self.save(Cart())
