"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the HTTP and CLI layers can catch them uniformly and display
user-friendly messages.  Each class carries a ``kind`` string that the
checkout orchestrator reports alongside the failed state.
"""


class DomainException(Exception):
    """Base class for all domain errors."""

    kind = "domain"


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    kind = "validation"


class EmptyCartError(ValidationError):
    """Checkout was attempted with no line items."""

    def __init__(self, message: str = "Cart is empty") -> None:
        super().__init__(message)


class CouponInvalidError(ValidationError):
    """A coupon exists but its stored state cannot be applied."""

    kind = "coupon_invalid"


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""

    kind = "not_found"


class ProductNotFoundError(EntityNotFoundError):

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InsufficientStockError(DomainException):
    """Stock for a product cannot cover the requested quantity."""

    kind = "insufficient_stock"

    def __init__(self, product_id: str, product_name: str | None = None) -> None:
        self.product_id = product_id
        super().__init__(f"Insufficient stock for {product_name or product_id}")


class CouponReusedError(DomainException):
    """The user already redeemed this coupon on a non-cancelled order."""

    kind = "coupon_reused"

    def __init__(self, message: str = "You have already used this coupon code.") -> None:
        super().__init__(message)


class PersistenceError(DomainException):
    """A write to the order store failed."""

    kind = "persistence"


class PaymentGatewayError(DomainException):
    """The payment processor rejected or failed to open a session."""

    kind = "payment_gateway"


class UnauthenticatedError(DomainException):
    """No verified identity accompanies the request."""

    kind = "unauthenticated"

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)
