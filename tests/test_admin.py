from unittest import mock

import pytest
from django.contrib import admin
from django.core import mail
from django.urls import reverse

from shop.admin import ProductAdmin
from shop.models import Order, Product


@pytest.mark.django_db
def test_order_action_notifies_customers(admin_client, make_order):
    orders = [make_order(), make_order()]

    response = admin_client.post(reverse('admin:shop_order_changelist'), {
        'action': 'mark_as_shipped',
        '_selected_action': [str(order.pk) for order in orders],
    })

    assert response.status_code == 302
    assert Order.objects.filter(status=Order.SHIPPED).count() == 2
    assert len(mail.outbox) == 2


@pytest.mark.django_db
def test_product_visibility_action(admin_client, make_product):
    product = make_product()

    admin_client.post(reverse('admin:shop_product_changelist'), {
        'action': 'make_hidden',
        '_selected_action': [str(product.pk)],
    })

    product.refresh_from_db()
    assert not product.is_visible


@pytest.mark.django_db
def test_admin_pages_render(admin_client, make_product, make_order):
    product = make_product()
    order = make_order()

    assert admin_client.get(reverse('admin:shop_product_change', args=[product.pk])).status_code == 200
    assert admin_client.get(reverse('admin:shop_order_change', args=[order.pk])).status_code == 200
    assert admin_client.get(reverse('admin:shop_order_add')).status_code == 403


@pytest.mark.django_db
def test_deleting_product_removes_uploaded_images(make_product):
    url = 'https://res.cloudinary.com/demo/image/upload/v1/product-images/products/1-abc.png'
    product = make_product(images=[url])

    with mock.patch('shop.storage.delete_product_image', return_value=True) as delete:
        ProductAdmin(Product, admin.site).delete_model(None, product)

    delete.assert_called_once_with(url)
    assert not Product.objects.exists()
