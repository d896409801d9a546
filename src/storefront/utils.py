"""Utility functions for storefront."""

import math
import re
from typing import TYPE_CHECKING

from .errors import InvalidInputError

if TYPE_CHECKING:
    from .models import Order, Product


def require_text(field: str, value: str | None) -> str:
    """
    Strip a required text field.

    Raises:
        InvalidInputError: If the value is missing or blank.
    """
    if value is None or not value.strip():
        raise InvalidInputError(field, "is required")
    return value.strip()


def normalize_email(email: str | None) -> str:
    """
    Lower-case and strip an email address.

    Raises:
        InvalidInputError: If the value is blank or has no '@'.
    """
    email = require_text("email", email).lower()
    if "@" not in email:
        raise InvalidInputError("email", f"'{email}' is not an email address")
    return email


def validate_price(price: float) -> float:
    """Price must be a finite number >= 0."""
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise InvalidInputError("price", f"'{price}' is not a number")
    if math.isnan(value) or math.isinf(value):
        raise InvalidInputError("price", "must be a finite number")
    if value < 0:
        raise InvalidInputError("price", "cannot be negative")
    return value


def validate_stock(stock: int) -> int:
    """Stock must be a whole number >= 0."""
    if isinstance(stock, bool) or not isinstance(stock, int):
        raise InvalidInputError("stock", f"'{stock}' is not a whole number")
    if stock < 0:
        raise InvalidInputError("stock", "cannot be negative")
    return stock


def validate_quantity(quantity: int) -> int:
    """Quantity must be a whole number >= 1."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInputError("quantity", f"'{quantity}' is not a whole number")
    if quantity < 1:
        raise InvalidInputError("quantity", "must be at least 1")
    return quantity


def format_money(amount: float) -> str:
    return f"${amount:.2f}"


def truncate_id(entity_id: str) -> str:
    """Truncate an ID for display."""
    return entity_id[:8]


def format_product(product: "Product") -> str:
    """Format a product for display."""
    stock = f"{product.stock} in stock" if product.stock > 0 else "out of stock"
    return (
        f"{truncate_id(product.id)}  {product.name} [{product.category}] "
        f"{format_money(product.price)} ({stock})"
    )


def format_order(order: "Order", verbose: bool = False) -> str:
    """Format an order for display."""
    result = (
        f"{truncate_id(order.id)}  {order.created_at}  {order.status.value:<9}  "
        f"{format_money(order.total)}"
    )
    if verbose:
        for item in order.items:
            result += (
                f"\n         {item.quantity} x {item.product_name} "
                f"@ {format_money(item.price)}"
            )
    return result


def parse_order_line(line: str) -> tuple[str, int]:
    """
    Parse an order line into (product_ref, quantity).

    Formats:
    - 3f2a9c1e (one unit)
    - 3f2a9c1e:5

    Raises:
        InvalidInputError: If the line format is invalid.
    """
    match = re.match(r"^([0-9A-Za-z-]+)(?::(\d+))?$", line.strip())
    if not match:
        raise InvalidInputError(
            "order line", f"'{line}' (expected 'product_id' or 'product_id:quantity')"
        )
    quantity = int(match.group(2)) if match.group(2) else 1
    return match.group(1), validate_quantity(quantity)
