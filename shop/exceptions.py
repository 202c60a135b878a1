class ShopError(Exception):
    """Base class for errors raised by the shop."""


class Unauthenticated(ShopError):
    def __init__(self, message='You must be logged in to place an order'):
        super().__init__(message)


class EmptyCart(ShopError):
    def __init__(self, message='Your cart is empty'):
        super().__init__(message)


class InvalidStatus(ShopError):
    def __init__(self, status):
        self.status = status
        super().__init__(f"Unknown order status: {status!r}")


class AdminSetupError(ShopError):
    status_code = 400


class AdminSetupNotConfigured(AdminSetupError):
    status_code = 500

    def __init__(self, message='Admin setup not configured'):
        super().__init__(message)


class InvalidSetupCode(AdminSetupError):
    status_code = 403

    def __init__(self, message='Invalid setup code'):
        super().__init__(message)
