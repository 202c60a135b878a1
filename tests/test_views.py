import json
from decimal import Decimal
import uuid

import pytest
from django.contrib.auth import get_user_model
from django.core import mail
from django.urls import reverse

from shop.models import Order, UserRole

CHECKOUT = {
    'first_name': 'Ana',
    'last_name': 'Lee',
    'email': 'ana@example.com',
    'phone': '555-0100',
    'address': '1 Main St',
    'city': 'Springfield',
    'state': 'IL',
    'zip_code': '62701',
    'country': 'United States',
    'delivery_method': 'standard',
}


def add(client, product, quantity=1, size='M', color='Red'):
    return client.post(
        reverse('add_to_cart', args=[product.pk]),
        {'size': size, 'color': color, 'quantity': quantity},
    )


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type='application/json')


# -------------------------------
# Storefront
# -------------------------------
@pytest.mark.django_db
def test_home_and_listing(client, make_product, category):
    make_product(name='Featured Coat', featured=True, category=category)
    make_product(name='Secret Sample', is_visible=False)

    assert client.get(reverse('home')).status_code == 200

    response = client.get(reverse('products'), {'category': 'women'})
    assert response.status_code == 200
    assert [p.name for p in response.context['products']] == ['Featured Coat']
    assert b'Secret Sample' not in response.content


@pytest.mark.django_db
def test_hidden_product_detail_is_404(client, make_product):
    hidden = make_product(is_visible=False)
    assert client.get(reverse('product_detail', args=[hidden.pk])).status_code == 404
    assert client.get(reverse('product_detail', args=[uuid.uuid4()])).status_code == 404


@pytest.mark.django_db
def test_product_detail(client, make_product):
    product = make_product(sale_price=Decimal('40.00'))
    response = client.get(reverse('product_detail', args=[product.pk]))

    assert response.status_code == 200
    assert b'$40.00' in response.content
    assert response.context['product'].sku.startswith('SKU-')


# -------------------------------
# Cart
# -------------------------------
@pytest.mark.django_db
def test_add_to_cart_merges_lines(client, make_product):
    product = make_product()

    response = add(client, product, quantity=2)
    assert response.status_code == 302
    assert response.url == reverse('cart')
    add(client, product, quantity=1)
    add(client, product, quantity=1, size='L')

    rows = client.session['cart']
    assert len(rows) == 2
    assert rows[0]['quantity'] == 3

    response = client.get(reverse('cart'))
    assert response.context['cart'].total_items == 4
    assert response.context['cart_count'] == 4


@pytest.mark.django_db
def test_add_to_cart_rejects_bad_quantity(client, make_product):
    product = make_product()
    response = add(client, product, quantity=0)

    assert response.url == reverse('product_detail', args=[product.pk])
    assert 'cart' not in client.session


@pytest.mark.django_db
def test_update_cart_item(client, make_product):
    product = make_product(price=Decimal('25.00'))
    add(client, product)
    line = {'product_id': str(product.pk), 'size': 'M', 'color': 'Red'}

    response = post_json(client, reverse('update_cart_item'), {**line, 'quantity': 4})
    assert response.json() == {'status': 'success', 'cart_count': 4, 'total_price': '100.00'}

    response = post_json(client, reverse('update_cart_item'), {**line, 'quantity': 0})
    assert response.json()['cart_count'] == 0
    assert client.session['cart'] == []


@pytest.mark.django_db
def test_update_cart_item_bad_request(client):
    response = client.post(reverse('update_cart_item'), data='nope', content_type='application/json')
    assert response.status_code == 400


@pytest.mark.django_db
def test_remove_from_cart(client, make_product):
    product = make_product()
    add(client, product)

    client.post(reverse('remove_from_cart'), {'product_id': str(product.pk), 'size': 'M', 'color': 'Red'})

    assert client.session['cart'] == []


# -------------------------------
# Checkout
# -------------------------------
@pytest.mark.django_db
def test_checkout_with_empty_cart_redirects(client):
    response = client.get(reverse('checkout'))
    assert response.url == reverse('products')


@pytest.mark.django_db
def test_checkout_requires_login(client, make_product):
    add(client, make_product())

    response = client.post(reverse('checkout'), CHECKOUT)

    assert response.url == f"{reverse('login')}?next={reverse('checkout')}"
    assert not Order.objects.exists()
    assert len(client.session['cart']) == 1


@pytest.mark.django_db
def test_checkout_places_order(client, user, make_product):
    client.force_login(user)
    add(client, make_product(price=Decimal('50.00')), quantity=2)

    response = client.post(reverse('checkout'), {**CHECKOUT, 'delivery_method': 'express'})

    assert response.url == reverse('order_confirmation')
    order = Order.objects.get()
    assert order.user == user
    assert order.total == Decimal('123.00')
    assert client.session['cart'] == []
    assert len(mail.outbox) == 1

    response = client.get(reverse('order_confirmation'))
    assert response.context['order'] == order
    assert order.short_id.encode() in response.content


@pytest.mark.django_db
def test_orders_are_private(client, user, make_order):
    other = get_user_model().objects.create_user(username='bo@example.com', password='secret123')
    mine = make_order(user=user)
    theirs = make_order(user=other)
    client.force_login(user)

    response = client.get(reverse('my_orders'))
    assert list(response.context['orders']) == [mine]
    assert client.get(reverse('order_detail', args=[mine.pk])).status_code == 200
    assert client.get(reverse('order_detail', args=[theirs.pk])).status_code == 404


# -------------------------------
# Accounts
# -------------------------------
@pytest.mark.django_db
def test_register_logs_in(client):
    response = client.post(reverse('register'), {
        'first_name': 'Bo', 'last_name': 'Chen', 'email': 'Bo@Example.com',
        'password': 'secret123', 'confirm_password': 'secret123',
    })

    assert response.url == reverse('home')
    user = get_user_model().objects.get(username='bo@example.com')
    assert user.profile.full_name == 'Bo Chen'
    assert int(client.session['_auth_user_id']) == user.pk


@pytest.mark.django_db
def test_login_with_email(client, user):
    response = client.post(reverse('login'), {'email': 'ANA@example.com', 'password': 'secret123'})
    assert response.url == reverse('home')

    client.post(reverse('logout'))
    response = client.post(reverse('login'), {'email': 'ana@example.com', 'password': 'wrong-pass'})
    assert response.status_code == 200
    assert '_auth_user_id' not in client.session


@pytest.mark.django_db
def test_wishlist_toggle_view(client, user, make_product):
    product = make_product()
    client.force_login(user)

    client.post(reverse('toggle_wishlist', args=[product.pk]))
    response = client.get(reverse('wishlist'))
    assert [p.id for p in response.context['products']] == [str(product.pk)]


@pytest.mark.django_db
def test_admin_setup(client, user):
    client.force_login(user)

    response = client.post(reverse('admin_setup'), {'setup_code': 'wrong'})
    assert response.status_code == 403

    response = client.post(reverse('admin_setup'), {'setup_code': 'let-me-in'})
    assert response.url == reverse('dashboard')
    assert UserRole.objects.filter(user=user, role=UserRole.ADMIN).exists()


# -------------------------------
# Back-office
# -------------------------------
@pytest.mark.django_db
def test_dashboard_is_staff_only(client, user):
    assert client.get(reverse('dashboard')).status_code == 302
    client.force_login(user)
    assert client.get(reverse('dashboard')).status_code == 302


@pytest.mark.django_db
def test_dashboard_summary(client, staff_user, make_order):
    make_order()
    client.force_login(staff_user)

    data = client.get(reverse('dashboard')).json()

    assert data['order_count'] == 1
    assert data['monthly']['this_month_revenue'] == '108.00'


@pytest.mark.django_db
def test_revenue_chart(client, staff_user, make_order):
    make_order(total=Decimal('42.00'))
    client.force_login(staff_user)

    data = client.get(reverse('revenue_chart'), {'days': 14}).json()
    assert len(data['series']) == 14
    assert data['total_orders'] == 1
    assert data['total_revenue'] == '42.00'

    assert client.get(reverse('revenue_chart'), {'days': 9}).status_code == 400
    assert client.get(reverse('revenue_chart'), {'days': 'week'}).status_code == 400


@pytest.mark.django_db
def test_admin_order_status(client, staff_user, make_order):
    order = make_order()
    client.force_login(staff_user)
    url = reverse('admin_order_status', args=[order.pk])

    response = post_json(client, url, {'status': 'shipped'})
    assert response.json()['status'] == 'shipped'
    assert len(mail.outbox) == 1

    assert post_json(client, url, {'status': 'lost'}).status_code == 400
    missing = reverse('admin_order_status', args=[uuid.uuid4()])
    assert post_json(client, missing, {'status': 'shipped'}).status_code == 404


@pytest.mark.django_db(transaction=True)
def test_admin_orders_list(client, staff_user, make_order):
    make_order(status=Order.SHIPPED)
    make_order()
    client.force_login(staff_user)

    data = client.get(reverse('admin_orders'), {'status': 'shipped'}).json()
    assert [o['status'] for o in data['orders']] == ['shipped']

    make_order(status=Order.SHIPPED)
    data = client.get(reverse('admin_orders'), {'status': 'shipped'}).json()
    assert len(data['orders']) == 2


@pytest.mark.django_db
def test_admin_customers(client, staff_user, user):
    client.force_login(staff_user)

    data = client.get(reverse('admin_customers'), {'q': 'ana'}).json()

    assert data['count'] == 2
    assert [c['email'] for c in data['customers']] == ['ana@example.com']


@pytest.mark.django_db
def test_toggle_product_visibility(client, staff_user, make_product):
    product = make_product()
    client.force_login(staff_user)
    url = reverse('admin_product_visibility', args=[product.pk])

    assert post_json(client, url, {'is_visible': False}).json() == {'id': str(product.pk), 'is_visible': False}
    product.refresh_from_db()
    assert not product.is_visible
    assert client.get(reverse('product_detail', args=[product.pk])).status_code == 404

    assert post_json(client, url, {'is_visible': 'no'}).status_code == 400


@pytest.mark.django_db
@pytest.mark.parametrize('body', ['[1, 2]', '"abc"', '5', 'null'])
def test_json_endpoints_require_an_object(client, staff_user, make_order, make_product, body):
    order = make_order()
    product = make_product()

    response = client.post(reverse('update_cart_item'), data=body, content_type='application/json')
    assert response.status_code == 400

    client.force_login(staff_user)
    for url in (reverse('admin_order_status', args=[order.pk]),
                reverse('admin_product_visibility', args=[product.pk])):
        assert client.post(url, data=body, content_type='application/json').status_code == 400

    order.refresh_from_db()
    product.refresh_from_db()
    assert order.status == Order.PENDING
    assert product.is_visible
