from decimal import Decimal
from unittest import mock

import pytest
from django.contrib.auth.models import AnonymousUser
from django.core import mail
from django.db import DatabaseError

from shop import catalog
from shop.cart import Cart
from shop.exceptions import EmptyCart, Unauthenticated
from shop.models import Order, OrderItem
from shop.orders import EXPRESS, STANDARD, place_order, quote, shipping_cost_for


@pytest.fixture
def two_line_cart(item):
    return (
        Cart()
        .add(item('a', price='50.00'), 'M', 'Red', 2)
        .add(item('b', price='30.00', sale_price='20.00'), 'S', 'Blue', 1)
    )


def test_quote_standard(two_line_cart):
    totals = quote(two_line_cart, STANDARD)

    assert totals.subtotal == Decimal('120.00')
    assert totals.shipping_cost == Decimal('0.00')
    assert totals.tax == Decimal('9.60')
    assert totals.total == Decimal('129.60')


def test_quote_express(two_line_cart):
    totals = quote(two_line_cart, EXPRESS)

    assert totals.shipping_cost == Decimal('15.00')
    assert totals.total == Decimal('144.60')


def test_unknown_delivery_method_ships_free():
    assert shipping_cost_for('drone') == Decimal('0.00')


def test_quote_rounds_subtotal_half_up(item):
    totals = quote(Cart().add(item(price='33.335'), 'M', '', 1))

    assert totals.subtotal == Decimal('33.34')
    assert totals.tax == Decimal('2.67')


# -------------------------------
# Placing orders
# -------------------------------
@pytest.fixture
def stored_cart(make_product):
    shirt = make_product(name='Linen Shirt', price=Decimal('50.00'))
    jeans = make_product(
        name='Slim Jeans', price=Decimal('30.00'), sale_price=Decimal('20.00'),
        images=['https://img.example/jeans.jpg', 'https://img.example/jeans-2.jpg'],
    )
    return (
        Cart()
        .add(catalog.get_product(shirt.pk), 'M', 'Red', 2)
        .add(catalog.get_product(jeans.pk), '32', 'Blue', 1)
    )


@pytest.mark.django_db
def test_place_order_stores_totals_and_snapshots(user, shipping, stored_cart):
    order = place_order(user, stored_cart, shipping, STANDARD, notes='Leave at door')

    order.refresh_from_db()
    assert order.user == user
    assert order.status == Order.PENDING
    assert order.subtotal == Decimal('120.00')
    assert order.tax == Decimal('9.60')
    assert order.total == order.subtotal + order.shipping_cost + order.tax
    assert order.shipping_zip == '62701'
    assert order.shipping_country == 'United States'
    assert order.notes == 'Leave at door'

    items = {item.product_name: item for item in order.items.all()}
    assert set(items) == {'Linen Shirt', 'Slim Jeans'}
    assert items['Slim Jeans'].unit_price == Decimal('20.00')
    assert items['Slim Jeans'].product_image == 'https://img.example/jeans.jpg'
    assert items['Linen Shirt'].total_price == Decimal('100.00')
    assert items['Linen Shirt'].size == 'M'
    for item in items.values():
        assert item.total_price == item.unit_price * item.quantity


@pytest.mark.django_db
def test_item_snapshot_survives_product_changes(user, shipping, stored_cart):
    order = place_order(user, stored_cart, shipping)
    item = order.items.get(product_name='Linen Shirt')

    product = item.product
    product.name = 'Renamed Shirt'
    product.price = Decimal('99.00')
    product.save()

    item.refresh_from_db()
    assert item.product_name == 'Linen Shirt'
    assert item.unit_price == Decimal('50.00')


@pytest.mark.django_db
def test_place_order_sends_confirmation(user, shipping, stored_cart):
    order = place_order(user, stored_cart, shipping)

    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.subject == f"Order Confirmed - #{order.short_id}"
    assert message.to == ['ana@example.com']
    assert 'Linen Shirt' in message.body


@pytest.mark.django_db
@pytest.mark.parametrize('anonymous', [None, AnonymousUser()])
def test_place_order_requires_login(anonymous, shipping, stored_cart):
    with pytest.raises(Unauthenticated):
        place_order(anonymous, stored_cart, shipping)

    assert not Order.objects.exists()


@pytest.mark.django_db
def test_place_order_rejects_empty_cart(user, shipping):
    with pytest.raises(EmptyCart):
        place_order(user, Cart(), shipping)

    assert not Order.objects.exists()


@pytest.mark.django_db
def test_place_order_is_all_or_nothing(user, shipping, stored_cart):
    with mock.patch.object(OrderItem.objects, 'create', side_effect=DatabaseError('disk full')):
        with pytest.raises(DatabaseError):
            place_order(user, stored_cart, shipping)

    assert not Order.objects.exists()
    assert not OrderItem.objects.exists()
    assert len(mail.outbox) == 0


@pytest.mark.django_db
def test_email_failure_does_not_fail_order(user, shipping, stored_cart, caplog):
    with mock.patch('shop.notifications.AnymailMessage.send', side_effect=RuntimeError('smtp down')):
        order = place_order(user, stored_cart, shipping)

    assert Order.objects.filter(pk=order.pk).exists()
    assert order.items.count() == 2
    assert 'failed' in caplog.text


@pytest.mark.django_db
def test_admins_are_told_about_new_orders(user, shipping, stored_cart, settings):
    settings.ADMIN_NOTIFICATION_EMAILS = ['ops@stylestore.example', 'OPS@stylestore.example', 'owner@stylestore.example']

    order = place_order(user, stored_cart, shipping)

    assert len(mail.outbox) == 2
    notice = mail.outbox[1]
    assert notice.subject == f"New Order - #{order.short_id}"
    assert notice.to == ['ops@stylestore.example', 'owner@stylestore.example']
    assert str(order.total) in notice.body
