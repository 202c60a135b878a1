"""
Query cache keyed by logical resource name.

Every resource ("products", "admin-orders", ...) carries a version token.
Cached queries embed the token in their key, so invalidating a resource
replaces the token and every query tagged with it misses on the next read.
"""
import logging
import uuid

from django.core.cache import cache as backend

logger = logging.getLogger(__name__)

TIMEOUT = 300


def _version_key(resource):
    return f"shop:version:{resource}"


def _version(resource):
    return backend.get_or_set(_version_key(resource), uuid.uuid4().hex, None)


def cached(resource, key, compute, timeout=TIMEOUT):
    cache_key = f"shop:{resource}:{_version(resource)}:{key}"
    value = backend.get(cache_key)
    if value is None:
        value = compute()
        backend.set(cache_key, value, timeout)
    return value


def invalidate(*resources):
    for resource in resources:
        backend.set(_version_key(resource), uuid.uuid4().hex, None)
    logger.debug("Invalidated cached queries for %s", ", ".join(resources))
