import logging

from .exceptions import Unauthenticated
from .models import WishlistItem

logger = logging.getLogger(__name__)


def _require_user(user):
    if user is None or not user.is_authenticated:
        raise Unauthenticated('Must be logged in')


def product_ids(user):
    if user is None or not user.is_authenticated:
        return set()
    return {str(pk) for pk in WishlistItem.objects.filter(user=user).values_list('product_id', flat=True)}


def is_in_wishlist(user, product_id):
    return str(product_id) in product_ids(user)


def toggle(user, product_id):
    """Adds or removes the product; returns True when it is now wishlisted."""
    _require_user(user)
    deleted, _ = WishlistItem.objects.filter(user=user, product_id=product_id).delete()
    if deleted:
        return False
    WishlistItem.objects.create(user=user, product_id=product_id)
    return True
