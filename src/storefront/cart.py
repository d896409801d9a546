"""Per-session shopping cart. Never persisted."""

from .models import CartItem, OrderItem, Product
from .utils import validate_quantity


class Cart:
    """
    Products chosen in one session, keyed by product ID in the order added.

    Each line keeps the name and price the product had when it was first
    added. The cart does not check stock; checkout does.
    """

    def __init__(self) -> None:
        self._items: dict[str, CartItem] = {}

    def add_item(self, product: Product, quantity: int = 1) -> CartItem:
        """
        Add a product, merging into its existing line if there is one.

        Raises:
            InvalidInputError: If quantity < 1.
        """
        validate_quantity(quantity)
        item = self._items.get(product.id)
        if item is None:
            item = CartItem(
                product_id=product.id,
                product_name=product.name,
                price=product.price,
                quantity=quantity,
            )
            self._items[product.id] = item
        else:
            item.quantity += quantity
        return item

    def remove_item(self, product_id: str) -> None:
        self._items.pop(product_id, None)

    def set_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line. Unknown IDs are ignored."""
        item = self._items.get(product_id)
        if item is None:
            return
        if quantity <= 0:
            del self._items[product_id]
        else:
            item.quantity = quantity

    def get_item(self, product_id: str) -> CartItem | None:
        return self._items.get(product_id)

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    def total_items(self) -> int:
        return sum(i.quantity for i in self._items.values())

    def total_price(self) -> float:
        return sum(i.subtotal for i in self._items.values())

    def is_empty(self) -> bool:
        return not self._items

    def clear(self) -> None:
        self._items.clear()

    def to_order_items(self) -> list[OrderItem]:
        """Order request lines for checkout."""
        return [
            OrderItem(
                product_id=i.product_id,
                product_name=i.product_name,
                quantity=i.quantity,
                price=i.price,
            )
            for i in self._items.values()
        ]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._items
