"""
Order placement and status lifecycle.

Placement is two-pass under the store lock: every line is checked against
current stock before any stock is touched, so an order either takes all of
its stock or none of it.
"""

import logging
from typing import TYPE_CHECKING, Sequence

from .errors import (
    EmptyCartError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    PersistenceError,
    ProductNotFoundError,
)
from .models import STATUS_TRANSITIONS, CartItem, Order, OrderItem, OrderStatus, User
from .utils import validate_quantity

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


class OrderService:
    """Turns requested lines into committed orders and moves orders through their statuses."""

    def __init__(self, store: "Store", strict_transitions: bool = False):
        """
        Args:
            store: The shared store.
            strict_transitions: If True, only PENDING->SHIPPED/CANCELLED and
                SHIPPED->DELIVERED are allowed. Otherwise any status may be set.
        """
        self.store = store
        self.strict_transitions = strict_transitions

    def place_order(self, user: User, items: Sequence[OrderItem | CartItem]) -> Order:
        """
        Validate every line, decrement stock, record the order and persist.

        Each line keeps the product name and unit price it carries, so a
        cart is charged what it showed when the items were added.
        Several lines for the same product are checked against stock together.

        Raises:
            EmptyCartError: If there are no lines.
            InvalidInputError: If a line quantity is < 1.
            ProductNotFoundError: If a line's product no longer exists.
            InsufficientStockError: If a product has less stock than requested.
            PersistenceError: If the snapshot could not be written; stock and
                the order list are restored first.
        """
        if not items:
            raise EmptyCartError()
        for item in items:
            validate_quantity(item.quantity)

        with self.store.transaction() as data:
            products = {p.id: p for p in data.products}

            # Pass 1: read-only validation of every line.
            requested: dict[str, int] = {}
            for item in items:
                product = products.get(item.product_id)
                if product is None:
                    raise ProductNotFoundError(item.product_id, item.product_name)
                requested[product.id] = requested.get(product.id, 0) + item.quantity
                if requested[product.id] > product.stock:
                    raise InsufficientStockError(
                        product.id, product.name, requested[product.id], product.stock
                    )

            # Pass 2: commit.
            previous_stock = {pid: products[pid].stock for pid in requested}
            for pid, quantity in requested.items():
                products[pid].stock -= quantity

            order_items = [
                OrderItem(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    price=item.price,
                )
                for item in items
            ]
            order = Order.create(user.id, order_items)
            data.orders.append(order)

            if not self.store.save():
                data.orders.remove(order)
                for pid, stock in previous_stock.items():
                    products[pid].stock = stock
                raise PersistenceError(str(self.store.snapshot_path))

        logger.info(
            "Placed order %s for user %s: %d line(s), total %.2f",
            order.id, user.id, len(order.items), order.total,
        )
        return order

    def get_order(self, order_id: str) -> Order | None:
        with self.store.transaction() as data:
            for order in data.orders:
                if order.id == order_id:
                    return order
        return None

    def get_orders_for_user(self, user_id: str) -> list[Order]:
        with self.store.transaction() as data:
            return [o for o in data.orders if o.user_id == user_id]

    def get_all_orders(self) -> list[Order]:
        with self.store.transaction() as data:
            return list(data.orders)

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order | None:
        """
        Set an order's status and persist.

        Returns the updated order, or None if no order has this ID.

        Raises:
            InvalidStatusTransitionError: In strict mode, if the move is not allowed.
        """
        status = OrderStatus(status)
        with self.store.transaction() as data:
            for i, order in enumerate(data.orders):
                if order.id != order_id:
                    continue
                if (
                    self.strict_transitions
                    and status != order.status
                    and status not in STATUS_TRANSITIONS[order.status]
                ):
                    raise InvalidStatusTransitionError(
                        order.id, order.status.value, status.value
                    )
                updated = order.with_status(status)
                data.orders[i] = updated
                self.store.save()
                logger.info(
                    "Order %s: %s -> %s", order.id, order.status.value, status.value
                )
                return updated
        return None
