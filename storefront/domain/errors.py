# storefront/domain/errors.py


class StorefrontError(Exception):
    """Base class for errors the api turns into a user facing message."""

    status_code = 400


class CheckoutValidationError(StorefrontError):
    pass


class EmptyCartError(StorefrontError):
    def __init__(self, message: str = "Your cart is empty"):
        super().__init__(message)


class CheckoutStageError(StorefrontError):
    status_code = 409


class PaymentInProgressError(StorefrontError):
    status_code = 409

    def __init__(self, message: str = "A payment is already being processed"):
        super().__init__(message)


class AuthError(StorefrontError):
    status_code = 401


class PaymentBridgeError(StorefrontError):
    status_code = 502


class OrderCreationError(StorefrontError):
    status_code = 502

    def __init__(self, message: str, payment_reference: str | None = None, order_id: str | None = None):
        super().__init__(message)
        self.payment_reference = payment_reference
        # set when the order row was written and only its items failed
        self.order_id = order_id


class WebhookSignatureError(StorefrontError):
    status_code = 401


class WebhookConfigError(StorefrontError):
    status_code = 500
