"""Domain exceptions raised by the cart and order services.

Every error carries a ``status_code`` so the HTTP layer can translate it
without knowing the individual classes.
"""


class ShopError(Exception):
    """Base exception for all shop errors."""

    status_code = 400


class NotFoundError(ShopError):
    """Raised when a product, cart item or order does not exist for the caller."""

    status_code = 404


class ForbiddenError(ShopError):
    """Raised when the caller does not own the resource."""

    status_code = 403


class InvalidInputError(ShopError):
    """Raised when input is out of the allowed bounds. Always before any write."""

    status_code = 400


class EmptyCartError(InvalidInputError):
    def __init__(self):
        super().__init__("Cart is empty. Cannot create order.")


class InsufficientStockError(ShopError):
    """Raised when the requested quantity exceeds the available stock."""

    status_code = 400

    def __init__(self, product_name: str, available: int, required: int):
        self.product_name = product_name
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Available: {available}, Required: {required}"
        )


class BusinessRuleViolation(ShopError):
    status_code = 400


class QuantityLimitExceeded(BusinessRuleViolation):
    """Raised when a cart line would exceed the per-product cap."""

    status_code = 409

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Maximum {limit} items per product allowed")


class InvalidTransitionError(BusinessRuleViolation):
    """Raised when an order or payment status change is not on the legal path."""

    def __init__(self, kind: str, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change {kind} from {current} to {requested}")


class ConflictError(ShopError):
    """Raised when a concurrent request modified the same cart first."""

    status_code = 409


class TransientStoreError(ShopError):
    """Raised when the store fails for reasons unrelated to the request."""

    status_code = 503

    def __init__(self):
        super().__init__("Temporary storage failure, please retry the request")
