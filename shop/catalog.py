"""
Read side of the catalog.

Stored ``Product``/``Category`` rows are projected into plain
``CatalogProduct``/``CatalogCategory`` values for listings, filters and the
cart. Storefront queries only ever see visible products; admin callers pass
``include_hidden=True``.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from django.core.exceptions import ValidationError

from . import cache
from .models import Category, Product
from .pricing import discount_percent, effective_price, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = 'accessories'
DEFAULT_COLOR_HEX = '#808080'

SORT_OPTIONS = ('featured', 'price-low', 'price-high', 'newest')


# ------------------------------
# COLORS
# ------------------------------
@dataclass(frozen=True)
class ParsedColor:
    name: str
    hex: str


@dataclass(frozen=True)
class RawColor:
    """A color stored as a bare name, with no hex code."""
    name: str

    @property
    def hex(self):
        return DEFAULT_COLOR_HEX


Color = Union[ParsedColor, RawColor]


def parse_color(raw) -> Color:
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return RawColor(str(raw))
    if not isinstance(data, dict) or not data.get('name'):
        return RawColor(str(raw))
    return ParsedColor(name=str(data['name']), hex=data.get('hex') or DEFAULT_COLOR_HEX)


def encode_color(name, hex_code=None):
    if not hex_code:
        return name
    return json.dumps({'name': name, 'hex': hex_code}, separators=(',', ':'))


# ------------------------------
# PROJECTIONS
# ------------------------------
@dataclass
class CatalogCategory:
    id: int
    name: str
    slug: str
    description: str = ''
    image: str = ''


@dataclass
class CatalogProduct:
    id: str
    name: str
    price: Decimal
    description: str = ''
    sale_price: Optional[Decimal] = None
    discount_percentage: Optional[Decimal] = None
    images: List[str] = field(default_factory=list)
    category: str = DEFAULT_CATEGORY
    category_name: str = ''
    sizes: List[str] = field(default_factory=list)
    colors: List[Color] = field(default_factory=list)
    stock: int = 0
    featured: bool = False
    is_new: bool = False
    is_visible: bool = True
    created_at: Optional[datetime] = None

    @property
    def sku(self):
        return f"SKU-{self.id[:8].upper()}"

    @property
    def primary_image(self):
        return self.images[0] if self.images else ''

    @property
    def effective_price(self):
        return effective_price(self)

    @property
    def discount_percent(self):
        return discount_percent(self)

    @property
    def on_sale(self):
        return bool(self.sale_price)

    @property
    def in_stock(self):
        return self.stock > 0


def project_category(category: Category) -> CatalogCategory:
    return CatalogCategory(
        id=category.pk,
        name=category.name,
        slug=category.slug,
        description=category.description or '',
        image=category.image or '',
    )


def project_product(product: Product) -> CatalogProduct:
    category = product.category
    return CatalogProduct(
        id=str(product.pk),
        name=product.name,
        description=product.description or '',
        price=to_decimal(product.price),
        sale_price=to_decimal(product.sale_price) if product.sale_price else None,
        discount_percentage=to_decimal(product.discount_percentage),
        images=list(product.images or []),
        category=category.slug if category else DEFAULT_CATEGORY,
        category_name=category.name if category else '',
        sizes=list(product.sizes or []),
        colors=[parse_color(raw) for raw in product.colors or []],
        stock=product.stock,
        featured=product.featured,
        is_new=product.is_new,
        is_visible=product.is_visible,
        created_at=product.created_at,
    )


# ------------------------------
# QUERIES
# ------------------------------
def _products(include_hidden=False, **filters):
    qs = Product.objects.select_related('category').filter(**filters)
    if not include_hidden:
        qs = qs.filter(is_visible=True)
    return qs.order_by('-created_at')


def _valid_ids(ids):
    valid = []
    for value in ids:
        try:
            valid.append(uuid.UUID(str(value)))
        except ValueError:
            logger.debug("Ignoring malformed product id %r", value)
    return valid


def list_products(include_hidden=False):
    return cache.cached(
        'products', f"all:{include_hidden}",
        lambda: [project_product(p) for p in _products(include_hidden)],
    )


def get_product(product_id, include_hidden=False):
    try:
        product = _products(include_hidden, pk=product_id).first()
    except (ValueError, ValidationError):
        return None
    return project_product(product) if product else None


def products_by_id(ids, include_hidden=False):
    rows = _products(include_hidden, pk__in=_valid_ids(ids))
    return {str(p.pk): project_product(p) for p in rows}


def featured_products():
    return cache.cached(
        'products', 'featured',
        lambda: [project_product(p) for p in _products(featured=True)],
    )


def new_arrivals():
    return cache.cached(
        'products', 'new',
        lambda: [project_product(p) for p in _products(is_new=True)],
    )


def related_products(product, limit=4):
    related = [
        p for p in list_products()
        if p.category == product.category and p.id != product.id
    ]
    return related[:limit]


def list_categories():
    return cache.cached(
        'categories', 'all',
        lambda: [project_category(c) for c in Category.objects.order_by('name')],
    )


def filter_products(products, category=None, special=None, search=None,
                    min_price=None, max_price=None, sizes=None, sort='featured'):
    """
    Applies the shop page filters to already projected products.

    ``special`` is ``"new"`` or ``"sale"``; ``sort`` is one of
    ``SORT_OPTIONS`` and falls back to featured-first.
    """
    result = list(products)

    if category:
        result = [p for p in result if p.category == category]

    if special == 'new':
        result = [p for p in result if p.is_new]
    elif special == 'sale':
        result = [p for p in result if p.sale_price]

    if search:
        needle = search.lower()
        result = [
            p for p in result
            if needle in p.name.lower() or needle in p.description.lower()
        ]

    if min_price is not None:
        result = [p for p in result if p.effective_price >= to_decimal(min_price)]
    if max_price is not None:
        result = [p for p in result if p.effective_price <= to_decimal(max_price)]

    if sizes:
        wanted = set(sizes)
        result = [p for p in result if wanted.intersection(p.sizes)]

    if sort == 'price-low':
        result.sort(key=lambda p: p.effective_price)
    elif sort == 'price-high':
        result.sort(key=lambda p: p.effective_price, reverse=True)
    elif sort == 'newest':
        result.sort(key=lambda p: not p.is_new)
    else:
        result.sort(key=lambda p: not p.featured)

    return result
