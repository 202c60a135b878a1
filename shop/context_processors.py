from .cart import SessionCart


def cart(request):
    """
    Exposes the number of items in the session cart to every template.
    """
    return {'cart_count': SessionCart(request).count()}
