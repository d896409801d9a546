"""A logged-in session: the current user and their cart."""

import logging
from typing import TYPE_CHECKING

from .cart import Cart
from .errors import EmptyCartError, NotAuthenticatedError, ProductNotFoundError
from .models import CartItem, Order, User

if TYPE_CHECKING:
    from .auth import AuthService
    from .catalog import CatalogService
    from .orders import OrderService

logger = logging.getLogger(__name__)


class Session:
    """
    One user's session. The cart lives exactly as long as the login.

    Sessions are not thread-safe; each belongs to a single caller.
    """

    def __init__(
        self,
        auth: "AuthService",
        catalog: "CatalogService",
        orders: "OrderService",
    ):
        self.auth = auth
        self.catalog = catalog
        self.orders = orders
        self.user: User | None = None
        self.cart = Cart()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def login(self, email: str, password: str) -> User:
        """
        Authenticate and start with an empty cart.

        Raises:
            InvalidCredentialsError: If email or password is wrong.
        """
        user = self.auth.login(email, password)
        self.user = user
        self.cart.clear()
        return user

    def logout(self) -> None:
        self.user = None
        self.cart.clear()

    def refresh(self) -> User | None:
        """Re-read the logged-in user; logs out if the account no longer exists."""
        if self.user is None:
            return None
        user = self.auth.get_user(self.user.id)
        if user is None:
            logger.info("User %s no longer exists; ending session", self.user.id)
            self.logout()
        else:
            self.user = user
        return self.user

    def require_user(self) -> User:
        if self.user is None:
            raise NotAuthenticatedError()
        return self.user

    def add_to_cart(self, product_id: str, quantity: int = 1) -> CartItem:
        """
        Look up a product and add it to the cart at its current price.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            InvalidInputError: If quantity < 1.
        """
        product = self.catalog.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return self.cart.add_item(product, quantity)

    def checkout(self) -> Order:
        """
        Place an order for everything in the cart, then empty the cart.

        The cart is left untouched if placement fails.

        Raises:
            NotAuthenticatedError: If nobody is logged in.
            EmptyCartError: If the cart is empty.
            ProductNotFoundError, InsufficientStockError, PersistenceError:
                From OrderService.place_order.
        """
        user = self.require_user()
        if self.cart.is_empty():
            raise EmptyCartError()

        order = self.orders.place_order(user, self.cart.to_order_items())
        self.cart.clear()
        logger.debug("Checked out cart for %s into order %s", user.email, order.id)
        return order
