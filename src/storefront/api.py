"""FastAPI REST API for storefront."""

import os
import secrets
import threading
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .auth import AuthService
from .catalog import CatalogService
from .errors import (
    DuplicateEmailError,
    EmptyCartError,
    InsufficientStockError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidStatusTransitionError,
    NotAuthenticatedError,
    OrderNotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ProductNotFoundError,
    StorefrontError,
    UserNotFoundError,
)
from .models import Order, OrderStatus, Product, User
from .orders import OrderService
from .session import Session
from .store import Store

# Idle lifetime of an API session token, in seconds
SESSION_TTL = float(os.environ.get("STOREFRONT_SESSION_TTL", 3600))


# --- Pydantic Schemas ---


class ProductSchema(BaseModel):
    id: str
    name: str
    description: str
    price: float
    stock: int
    category: str


class ProductCreateRequest(BaseModel):
    name: str
    description: str = ""
    price: float
    stock: int
    category: str = ""


class ProductUpdateRequest(BaseModel):
    """Only the fields that are set are changed."""

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    category: Optional[str] = None


class ProductListResponse(BaseModel):
    products: list[ProductSchema]
    count: int


class UserSchema(BaseModel):
    id: str
    name: str
    email: str
    role: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str = Field(..., description="Send as X-Session-Token on later requests")
    user: UserSchema


class CartItemSchema(BaseModel):
    product_id: str
    product_name: str
    price: float
    quantity: int
    subtotal: float


class CartSchema(BaseModel):
    items: list[CartItemSchema]
    total_items: int
    total_price: float


class CartAddRequest(BaseModel):
    product_id: str
    quantity: int = 1


class CartQuantityRequest(BaseModel):
    quantity: int


class OrderItemSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    price: float


class OrderSchema(BaseModel):
    id: str
    user_id: str
    created_at: str
    items: list[OrderItemSchema]
    total: float
    status: OrderStatus


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int


class OrderStatusRequest(BaseModel):
    status: OrderStatus


# --- Helper Functions ---


class Services:
    """
    Everything one running app shares: the store, the services and open sessions.

    A session token expires after session_ttl seconds without use. Expired
    tokens are dropped whenever a token is resolved or a new one is issued.
    """

    def __init__(
        self,
        store: Store,
        strict_transitions: bool = False,
        session_ttl: float = SESSION_TTL,
    ):
        self.store = store
        self.auth = AuthService(store)
        self.catalog = CatalogService(store)
        self.orders = OrderService(store, strict_transitions=strict_transitions)
        self.session_ttl = session_ttl
        self.sessions: dict[str, Session] = {}
        self._last_seen: dict[str, float] = {}
        self._sessions_lock = threading.Lock()

    def login(self, email: str, password: str) -> tuple[str, Session]:
        """Log in a fresh session and register it under a new token."""
        session = Session(self.auth, self.catalog, self.orders)
        session.login(email, password)
        token = secrets.token_urlsafe(24)
        with self._sessions_lock:
            self._expire_sessions()
            self.sessions[token] = session
            self._last_seen[token] = time.monotonic()
        return token, session

    def logout(self, token: str) -> None:
        with self._sessions_lock:
            session = self.sessions.pop(token, None)
            self._last_seen.pop(token, None)
        if session is not None:
            session.logout()

    def resolve(self, token: str) -> Session | None:
        """
        Look up a live session and refresh its user from the store.

        Returns None for unknown or expired tokens and for users that
        have since been removed.
        """
        with self._sessions_lock:
            self._expire_sessions()
            session = self.sessions.get(token)
            if session is None:
                return None
            self._last_seen[token] = time.monotonic()
        if session.refresh() is None:
            self.logout(token)
            return None
        return session

    def _expire_sessions(self) -> None:
        cutoff = time.monotonic() - self.session_ttl
        for token in [t for t, seen in self._last_seen.items() if seen <= cutoff]:
            self.sessions.pop(token).logout()
            del self._last_seen[token]


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_session(request: Request, token: Optional[str]) -> Session:
    """Resolve a session token to a logged-in session."""
    session = get_services(request).resolve(token or "")
    if session is None:
        raise NotAuthenticatedError()
    return session


def require_admin(request: Request, token: Optional[str], action: str) -> User:
    user = get_session(request, token).require_user()
    if not user.is_admin:
        raise PermissionDeniedError(action)
    return user


def product_to_schema(product: Product) -> ProductSchema:
    return ProductSchema(**product.to_dict())


def user_to_schema(user: User) -> UserSchema:
    return UserSchema(id=user.id, name=user.name, email=user.email, role=user.role.value)


def order_to_schema(order: Order) -> OrderSchema:
    return OrderSchema(
        id=order.id,
        user_id=order.user_id,
        created_at=order.created_at,
        items=[OrderItemSchema(**i.to_dict()) for i in order.items],
        total=order.total,
        status=order.status,
    )


def cart_to_schema(session: Session) -> CartSchema:
    cart = session.cart
    return CartSchema(
        items=[
            CartItemSchema(
                product_id=i.product_id,
                product_name=i.product_name,
                price=i.price,
                quantity=i.quantity,
                subtotal=i.subtotal,
            )
            for i in cart.items
        ],
        total_items=cart.total_items(),
        total_price=cart.total_price(),
    )


# --- FastAPI App ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    InvalidInputError: 400,
    EmptyCartError: 400,
    InvalidCredentialsError: 401,
    NotAuthenticatedError: 401,
    PermissionDeniedError: 403,
    ProductNotFoundError: 404,
    OrderNotFoundError: 404,
    UserNotFoundError: 404,
    DuplicateEmailError: 409,
    InsufficientStockError: 409,
    InvalidStatusTransitionError: 409,
    PersistenceError: 503,
}


def create_app(
    data_dir: Path | None = None,
    strict_transitions: bool | None = None,
    session_ttl: float = SESSION_TTL,
) -> FastAPI:
    """
    Build the API app. The store is opened on startup and flushed on shutdown.

    Args:
        data_dir: Override data directory (for testing).
        strict_transitions: Enforce the order status table. Defaults to the
            STOREFRONT_STRICT_STATUS environment variable.
        session_ttl: Idle seconds before a session token expires.
    """
    if strict_transitions is None:
        strict_transitions = os.environ.get("STOREFRONT_STRICT_STATUS", "") == "1"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = Store.open(data_dir)
        app.state.services = Services(
            store, strict_transitions=strict_transitions, session_ttl=session_ttl
        )
        yield
        store.close()

    app = FastAPI(
        title="storefront API",
        description="REST API for the store catalog, carts and orders",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        """Map StorefrontError subclasses to appropriate HTTP responses."""
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error_type": type(exc).__name__},
        )

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    # --- Health ---

    @app.get("/api/health")
    def health_check(request: Request):
        services = get_services(request)
        return {
            "status": "ok",
            "product_count": len(services.catalog.list_all()),
            "order_count": len(services.orders.get_all_orders()),
        }

    # --- Catalog ---

    @app.get("/api/products", response_model=ProductListResponse)
    def list_products(
        request: Request,
        q: str = Query(default="", description="Substring of name or description"),
        category: str = Query(default=""),
    ):
        products = get_services(request).catalog.search(q, category)
        return ProductListResponse(
            products=[product_to_schema(p) for p in products],
            count=len(products),
        )

    @app.get("/api/categories")
    def list_categories(request: Request) -> list[str]:
        return get_services(request).catalog.categories()

    @app.get("/api/products/{product_id}", response_model=ProductSchema)
    def get_product(request: Request, product_id: str):
        product = get_services(request).catalog.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product_to_schema(product)

    @app.post("/api/products", response_model=ProductSchema, status_code=201)
    def create_product(
        request: Request,
        body: ProductCreateRequest,
        x_session_token: Optional[str] = Header(default=None),
    ):
        require_admin(request, x_session_token, "adding products")
        product = get_services(request).catalog.add(
            body.name, body.description, body.price, body.stock, body.category
        )
        return product_to_schema(product)

    @app.patch("/api/products/{product_id}", response_model=ProductSchema)
    def update_product(
        request: Request,
        product_id: str,
        body: ProductUpdateRequest,
        x_session_token: Optional[str] = Header(default=None),
    ):
        require_admin(request, x_session_token, "editing products")
        fields = body.model_dump(exclude_unset=True)
        product = get_services(request).catalog.update_product(product_id, **fields)
        return product_to_schema(product)

    @app.delete("/api/products/{product_id}", response_model=ProductSchema)
    def delete_product(
        request: Request,
        product_id: str,
        x_session_token: Optional[str] = Header(default=None),
    ):
        require_admin(request, x_session_token, "removing products")
        catalog = get_services(request).catalog
        product = catalog.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        catalog.remove(product_id)
        return product_to_schema(product)

    # --- Users & Sessions ---

    @app.post("/api/users", response_model=UserSchema, status_code=201)
    def register(request: Request, body: RegisterRequest):
        user = get_services(request).auth.register(body.name, body.email, body.password)
        return user_to_schema(user)

    @app.post("/api/sessions", response_model=LoginResponse, status_code=201)
    def login(request: Request, body: LoginRequest):
        token, session = get_services(request).login(body.email, body.password)
        return LoginResponse(token=token, user=user_to_schema(session.require_user()))

    @app.delete("/api/sessions", status_code=204)
    def logout(request: Request, x_session_token: Optional[str] = Header(default=None)):
        get_services(request).logout(x_session_token or "")

    @app.get("/api/me", response_model=UserSchema)
    def whoami(request: Request, x_session_token: Optional[str] = Header(default=None)):
        return user_to_schema(get_session(request, x_session_token).require_user())

    # --- Cart ---

    @app.get("/api/cart", response_model=CartSchema)
    def get_cart(request: Request, x_session_token: Optional[str] = Header(default=None)):
        return cart_to_schema(get_session(request, x_session_token))

    @app.post("/api/cart/items", response_model=CartSchema)
    def add_cart_item(
        request: Request,
        body: CartAddRequest,
        x_session_token: Optional[str] = Header(default=None),
    ):
        session = get_session(request, x_session_token)
        session.add_to_cart(body.product_id, body.quantity)
        return cart_to_schema(session)

    @app.put("/api/cart/items/{product_id}", response_model=CartSchema)
    def set_cart_quantity(
        request: Request,
        product_id: str,
        body: CartQuantityRequest,
        x_session_token: Optional[str] = Header(default=None),
    ):
        session = get_session(request, x_session_token)
        session.cart.set_quantity(product_id, body.quantity)
        return cart_to_schema(session)

    @app.delete("/api/cart/items/{product_id}", response_model=CartSchema)
    def remove_cart_item(
        request: Request,
        product_id: str,
        x_session_token: Optional[str] = Header(default=None),
    ):
        session = get_session(request, x_session_token)
        session.cart.remove_item(product_id)
        return cart_to_schema(session)

    @app.post("/api/checkout", response_model=OrderSchema, status_code=201)
    def checkout(request: Request, x_session_token: Optional[str] = Header(default=None)):
        order = get_session(request, x_session_token).checkout()
        return order_to_schema(order)

    # --- Orders ---

    @app.get("/api/orders", response_model=OrderListResponse)
    def list_my_orders(request: Request, x_session_token: Optional[str] = Header(default=None)):
        user = get_session(request, x_session_token).require_user()
        orders = get_services(request).orders.get_orders_for_user(user.id)
        return OrderListResponse(orders=[order_to_schema(o) for o in orders], count=len(orders))

    @app.get("/api/admin/orders", response_model=OrderListResponse)
    def list_all_orders(request: Request, x_session_token: Optional[str] = Header(default=None)):
        require_admin(request, x_session_token, "listing all orders")
        orders = get_services(request).orders.get_all_orders()
        return OrderListResponse(orders=[order_to_schema(o) for o in orders], count=len(orders))

    @app.get("/api/orders/{order_id}", response_model=OrderSchema)
    def get_order(
        request: Request,
        order_id: str,
        x_session_token: Optional[str] = Header(default=None),
    ):
        user = get_session(request, x_session_token).require_user()
        order = get_services(request).orders.get_order(order_id)
        # Other users' orders look the same as missing ones.
        if order is None or (order.user_id != user.id and not user.is_admin):
            raise OrderNotFoundError(order_id)
        return order_to_schema(order)

    @app.patch("/api/orders/{order_id}/status", response_model=OrderSchema)
    def update_order_status(
        request: Request,
        order_id: str,
        body: OrderStatusRequest,
        x_session_token: Optional[str] = Header(default=None),
    ):
        require_admin(request, x_session_token, "changing order status")
        order = get_services(request).orders.update_order_status(order_id, body.status)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order_to_schema(order)


app = create_app()
