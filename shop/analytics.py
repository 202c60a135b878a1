"""
Back-office aggregates computed from stored orders and products.
"""
import logging
from collections import OrderedDict
from datetime import datetime, time, timedelta

from django.utils import timezone

from . import cache
from .models import Order, OrderItem, Product, Profile
from .pricing import ZERO

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 20
REVENUE_WINDOWS = (7, 14, 30)
TOP_SELLERS = 4


def percent_change(current, previous):
    if previous > 0:
        return round(float((current - previous) / previous * 100), 1)
    return 100 if current > 0 else 0


def _month_start(moment):
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _previous_month_start(month_start):
    return _month_start(month_start - timedelta(days=1))


def _next_month_start(month_start):
    return _month_start(month_start + timedelta(days=32))


def _orders_between(start, end):
    qs = Order.objects.filter(created_at__gte=start, created_at__lt=end)
    return list(qs.values_list('total', flat=True))


def monthly_stats(now=None):
    """
    Revenue and order count for the current calendar month against the
    previous one, in the configured time zone.
    """
    now = timezone.localtime(now or timezone.now())
    this_month = _month_start(now)
    last_month = _previous_month_start(this_month)

    this_totals = _orders_between(this_month, _next_month_start(this_month))
    last_totals = _orders_between(last_month, this_month)

    this_revenue = sum(this_totals, ZERO)
    last_revenue = sum(last_totals, ZERO)

    return {
        'this_month_revenue': this_revenue,
        'last_month_revenue': last_revenue,
        'this_month_order_count': len(this_totals),
        'last_month_order_count': len(last_totals),
        'revenue_change': percent_change(this_revenue, last_revenue),
        'order_change': percent_change(len(this_totals), len(last_totals)),
    }


def revenue_series(days=7, now=None):
    """
    One bucket per calendar day for the last ``days`` days, oldest first,
    including today. Days without orders are present with zero revenue.
    """
    if days not in REVENUE_WINDOWS:
        raise ValueError(f"Unsupported revenue window: {days} days")

    today = timezone.localtime(now or timezone.now()).date()
    first_day = today - timedelta(days=days - 1)
    start = timezone.make_aware(datetime.combine(first_day, time.min))
    end = timezone.make_aware(datetime.combine(today + timedelta(days=1), time.min))

    buckets = OrderedDict()
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        buckets[day] = {
            'date': day,
            'display_date': day.strftime('%b %d'),
            'orders': 0,
            'revenue': ZERO,
        }

    orders = Order.objects.filter(created_at__gte=start, created_at__lt=end)
    for created_at, total in orders.values_list('created_at', 'total'):
        day = timezone.localtime(created_at).date()
        bucket = buckets.get(day)
        if bucket is None:
            continue
        bucket['orders'] += 1
        bucket['revenue'] += total

    return list(buckets.values())


def top_selling_products(limit=TOP_SELLERS):
    sales = {}
    rows = OrderItem.objects.values_list(
        'product_id', 'product_name', 'product_image', 'quantity', 'total_price')
    for product_id, name, image, quantity, total_price in rows:
        key = str(product_id) if product_id else name
        entry = sales.setdefault(key, {
            'product_id': str(product_id) if product_id else None,
            'product_name': name,
            'product_image': image,
            'total_quantity': 0,
            'total_revenue': ZERO,
        })
        entry['total_quantity'] += quantity
        entry['total_revenue'] += total_price or ZERO

    ranked = sorted(sales.values(), key=lambda e: e['total_quantity'], reverse=True)
    return ranked[:limit]


def low_stock_products():
    return list(Product.objects.filter(stock__lt=LOW_STOCK_THRESHOLD).order_by('stock', 'name'))


def customer_count():
    return Profile.objects.count()


def dashboard_summary(now=None):
    """Everything the dashboard landing page needs, cached per resource."""
    month = timezone.localtime(now or timezone.now()).strftime('%Y-%m')
    return {
        'monthly': cache.cached('monthly-stats', month, lambda: monthly_stats(now)),
        'top_selling': cache.cached('top-selling-products', 'top', top_selling_products),
        'low_stock': [
            {'id': str(p.pk), 'name': p.name, 'stock': p.stock}
            for p in low_stock_products()
        ],
        'customer_count': customer_count(),
        'product_count': Product.objects.count(),
        'visible_product_count': Product.objects.filter(is_visible=True).count(),
        'order_count': Order.objects.count(),
        'pending_order_count': Order.objects.filter(status=Order.PENDING).count(),
    }
