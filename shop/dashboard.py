"""
Back-office JSON endpoints used by the admin dashboard.
"""
import json
import logging

from django.contrib.admin.views.decorators import staff_member_required
from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from . import accounts, analytics, cache, lifecycle
from .exceptions import InvalidStatus
from .models import Order, Product

logger = logging.getLogger(__name__)


def _json(data, status=200):
    return JsonResponse(data, status=status, encoder=DjangoJSONEncoder, safe=False)


def _body(request):
    try:
        payload = json.loads(request.body or b'{}')
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _serialize_order(order):
    return {
        'id': str(order.pk),
        'short_id': order.short_id,
        'status': order.status,
        'user_id': order.user_id,
        'subtotal': order.subtotal,
        'shipping_cost': order.shipping_cost,
        'tax': order.tax,
        'total': order.total,
        'shipping_name': order.shipping_name,
        'shipping_email': order.shipping_email,
        'shipping_city': order.shipping_city,
        'shipping_country': order.shipping_country,
        'delivery_method': order.delivery_method,
        'created_at': order.created_at,
        'updated_at': order.updated_at,
        'items': [
            {
                'product_id': str(item.product_id) if item.product_id else None,
                'product_name': item.product_name,
                'quantity': item.quantity,
                'unit_price': item.unit_price,
                'total_price': item.total_price,
                'size': item.size,
                'color': item.color,
            }
            for item in order.items.all()
        ],
    }


@staff_member_required
def dashboard(request):
    return _json(analytics.dashboard_summary())


@staff_member_required
def revenue_chart(request):
    try:
        days = int(request.GET.get('days', 7))
        series = cache.cached('revenue-chart', days, lambda: analytics.revenue_series(days))
    except ValueError as e:
        return _json({'error': str(e)}, status=400)
    return _json({
        'days': days,
        'total_revenue': sum(bucket['revenue'] for bucket in series),
        'total_orders': sum(bucket['orders'] for bucket in series),
        'series': series,
    })


@staff_member_required
def orders_list(request):
    status = request.GET.get('status')

    def load():
        qs = Order.objects.prefetch_related('items').order_by('-created_at')
        if status:
            qs = qs.filter(status=status)
        return [_serialize_order(order) for order in qs]

    return _json({'orders': cache.cached('admin-orders', status or 'all', load)})


@staff_member_required
@require_POST
def update_order_status(request, pk):
    payload = _body(request)
    if payload is None:
        return _json({'error': 'Invalid JSON'}, status=400)
    get_object_or_404(Order, pk=pk)
    try:
        order = lifecycle.update_order_status(pk, payload.get('status'))
    except InvalidStatus as e:
        return _json({'error': str(e)}, status=400)
    return _json({'id': str(order.pk), 'status': order.status, 'updated_at': order.updated_at})


@staff_member_required
def customers(request):
    query = request.GET.get('q', '').strip()
    return _json({
        'count': analytics.customer_count(),
        'customers': [
            {
                'user_id': profile.user_id,
                'full_name': profile.full_name,
                'email': profile.email,
                'phone': profile.phone,
                'created_at': profile.created_at,
            }
            for profile in accounts.search_customers(query)
        ],
    })


@staff_member_required
@require_POST
def toggle_product_visibility(request, pk):
    payload = _body(request)
    if payload is None or not isinstance(payload.get('is_visible'), bool):
        return _json({'error': 'is_visible must be true or false'}, status=400)
    product = get_object_or_404(Product, pk=pk)
    product.is_visible = payload['is_visible']
    product.save(update_fields=['is_visible', 'updated_at'])
    logger.info("Product %s visibility set to %s", product.pk, product.is_visible)
    return _json({'id': str(product.pk), 'is_visible': product.is_visible})
