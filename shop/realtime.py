"""
In-process change feed for orders, products and order items.

Model signals publish ``Change`` events to subscribers registered with
``subscribe(table, event, callback)`` once the surrounding transaction
commits. Every change also invalidates the
cached queries tagged with the affected resources, so readers refetch
rather than patch.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

from django.db import transaction
from django.db.models.signals import post_delete, post_save

from . import cache
from .models import Category, Order, OrderItem, Product

logger = logging.getLogger(__name__)

INSERT = 'insert'
UPDATE = 'update'
DELETE = 'delete'
EVENTS = (INSERT, UPDATE, DELETE)

TABLES = {
    Order: 'orders',
    Product: 'products',
    OrderItem: 'order_items',
}

INVALIDATES = {
    'orders': ('admin-orders', 'user-orders', 'monthly-stats', 'revenue-chart'),
    'products': ('products', 'top-selling-products'),
    'order_items': ('admin-orders', 'products', 'top-selling-products'),
    'categories': ('categories', 'products'),
}


@dataclass(frozen=True)
class Change:
    table: str
    event: str
    record: Any


class Subscription:
    def __init__(self, feed, table, event, callback):
        self.feed = feed
        self.table = table
        self.event = event
        self.callback = callback

    def unsubscribe(self):
        self.feed.remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.unsubscribe()


class ChangeFeed:
    def __init__(self):
        self._subscribers = defaultdict(list)

    def subscribe(self, table, event, callback):
        if table not in INVALIDATES or event not in EVENTS:
            raise ValueError(f"Cannot subscribe to {event!r} on {table!r}")
        subscription = Subscription(self, table, event, callback)
        self._subscribers[(table, event)].append(subscription)
        return subscription

    def remove(self, subscription):
        subscribers = self._subscribers[(subscription.table, subscription.event)]
        if subscription in subscribers:
            subscribers.remove(subscription)

    def subscriber_count(self, table, event):
        return len(self._subscribers[(table, event)])

    def publish(self, table, event, record):
        cache.invalidate(*INVALIDATES.get(table, ()))
        change = Change(table, event, record)
        for subscription in list(self._subscribers[(table, event)]):
            try:
                subscription.callback(change)
            except Exception:
                logger.exception("Subscriber for %s %s failed", event, table)


feed = ChangeFeed()
subscribe = feed.subscribe


def _publish_on_commit(table, event, instance):
    # Rolled back writes are never announced.
    transaction.on_commit(lambda: feed.publish(table, event, instance))


def _on_save(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    _publish_on_commit(TABLES[sender], INSERT if created else UPDATE, instance)


def _on_delete(sender, instance, **kwargs):
    _publish_on_commit(TABLES[sender], DELETE, instance)


def _on_category_change(sender, instance, **kwargs):
    _publish_on_commit('categories', UPDATE, instance)


def connect():
    for model in TABLES:
        post_save.connect(_on_save, sender=model, dispatch_uid=f"shop-realtime-save-{model.__name__}")
        post_delete.connect(_on_delete, sender=model, dispatch_uid=f"shop-realtime-delete-{model.__name__}")
    post_save.connect(_on_category_change, sender=Category, dispatch_uid='shop-realtime-save-Category')
    post_delete.connect(_on_category_change, sender=Category, dispatch_uid='shop-realtime-delete-Category')
