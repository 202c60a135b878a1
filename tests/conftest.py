from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache as django_cache

from shop.models import Category, Order, Product
from shop.orders import ShippingInfo


@pytest.fixture(autouse=True)
def shop_settings(settings):
    settings.SHOP_NOTIFY_ASYNC = False
    settings.ADMIN_SETUP_CODE = 'let-me-in'
    settings.ADMIN_NOTIFICATION_EMAILS = []
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    django_cache.clear()
    yield settings
    django_cache.clear()


@pytest.fixture
def item():
    """Builds an in-memory product carrying only what pricing and the cart read."""
    def build(id='p1', price='50.00', sale_price=None, name=None):
        return SimpleNamespace(
            id=id,
            name=name or f"Product {id}",
            price=Decimal(price),
            sale_price=Decimal(sale_price) if sale_price is not None else None,
            images=[f"https://img.example/{id}.jpg"],
        )
    return build


@pytest.fixture
def category(db):
    return Category.objects.create(name='Women', slug='women', description='Womenswear')


@pytest.fixture
def make_product(db):
    def make(**kwargs):
        fields = {
            'name': 'Linen Shirt',
            'description': 'Breathable summer linen',
            'price': Decimal('50.00'),
            'images': ['https://img.example/linen.jpg'],
            'sizes': ['S', 'M', 'L'],
            'colors': ['{"name":"Navy","hex":"#1a2a4a"}', 'Red'],
            'stock': 30,
        }
        fields.update(kwargs)
        return Product.objects.create(**fields)
    return make


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username='ana@example.com',
        email='ana@example.com',
        password='secret123',
        first_name='Ana',
        last_name='Lee',
    )


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username='boss@example.com',
        email='boss@example.com',
        password='secret123',
        is_staff=True,
    )


@pytest.fixture
def shipping():
    return ShippingInfo(
        name='Ana Lee',
        email='ana@example.com',
        phone='555-0100',
        address='1 Main St',
        city='Springfield',
        state='IL',
        zip_code='62701',
    )


@pytest.fixture
def make_order(db):
    def make(**kwargs):
        fields = {
            'subtotal': Decimal('100.00'),
            'shipping_cost': Decimal('0.00'),
            'tax': Decimal('8.00'),
            'total': Decimal('108.00'),
            'shipping_name': 'Ana Lee',
            'shipping_email': 'ana@example.com',
            'shipping_address': '1 Main St',
            'shipping_city': 'Springfield',
            'shipping_state': 'IL',
            'shipping_zip': '62701',
        }
        fields.update(kwargs)
        return Order.objects.create(**fields)
    return make
