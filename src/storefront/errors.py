"""Custom exceptions for storefront."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


class InvalidInputError(StorefrontError):
    """Raised when a field is malformed or out of range."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class DuplicateEmailError(StorefrontError):
    """Raised when registering an email that is already taken."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email already registered: {email}")


class InvalidCredentialsError(StorefrontError):
    """Raised when login fails. Does not say which part was wrong."""

    def __init__(self):
        super().__init__("Invalid email or password")


class UserNotFoundError(StorefrontError):
    """Raised when a user ID doesn't exist."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class ProductNotFoundError(StorefrontError):
    """Raised when an order references a product that no longer exists."""

    def __init__(self, product_id: str, name: str | None = None):
        self.product_id = product_id
        self.name = name
        label = name or product_id
        super().__init__(f"Product not found: {label}")


class InsufficientStockError(StorefrontError):
    """Raised when an order asks for more than is in stock."""

    def __init__(self, product_id: str, name: str, requested: int, available: int):
        self.product_id = product_id
        self.name = name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {name}: requested={requested}, available={available}"
        )


class OrderNotFoundError(StorefrontError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class InvalidStatusTransitionError(StorefrontError):
    """Raised in strict mode when a status change is not allowed."""

    def __init__(self, order_id: str, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move order {order_id[:8]} from {current} to {requested}"
        )


class EmptyCartError(StorefrontError):
    """Raised when checking out an empty cart."""

    def __init__(self):
        super().__init__("Cart is empty. Add some items before checkout.")


class NotAuthenticatedError(StorefrontError):
    """Raised when an operation needs a logged-in user."""

    def __init__(self):
        super().__init__("Login required")


class PermissionDeniedError(StorefrontError):
    """Raised when a non-admin calls an admin-only operation."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Access denied: {action} is for admins only")


class PersistenceError(StorefrontError):
    """Raised when a snapshot write fails and the change was rolled back."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Could not write snapshot to {path}; change was not applied")
