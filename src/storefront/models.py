"""Data models for storefront."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
import uuid

SCHEMA_VERSION = 1


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new entity ID."""
    return str(uuid.uuid4())


class Role(str, Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# Allowed moves when strict transitions are enabled.
STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


@dataclass
class User:
    """A registered account. Email is stored lower-cased."""

    id: str
    name: str
    email: str
    password_hash: str
    role: Role = Role.CUSTOMER
    created_at: str = field(default_factory=_utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "password_hash": self.password_hash,
            "role": self.role.value,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            password_hash=data["password_hash"],
            role=Role(data.get("role", Role.CUSTOMER.value)),
            created_at=data.get("created_at", ""),
        )

    @classmethod
    def create(cls, name: str, email: str, password_hash: str, role: Role) -> "User":
        """Create a new user with generated ID."""
        return cls(
            id=_generate_id(),
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role,
        )

    def __str__(self) -> str:
        return f"{self.name} <{self.email}> ({self.role.value})"


@dataclass
class Product:
    """A catalog entry. Stock is never negative."""

    id: str
    name: str
    description: str
    price: float
    stock: int
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            price=float(data["price"]),
            stock=int(data["stock"]),
            category=data.get("category", ""),
        )

    @classmethod
    def create(
        cls, name: str, description: str, price: float, stock: int, category: str
    ) -> "Product":
        """Create a new product with generated ID."""
        return cls(
            id=_generate_id(),
            name=name,
            description=description,
            price=price,
            stock=stock,
            category=category,
        )


@dataclass(frozen=True)
class OrderItem:
    """One order line: product name and unit price as they were when ordered."""

    product_id: str
    product_name: str
    quantity: int
    price: float

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=data["product_id"],
            product_name=data["product_name"],
            quantity=int(data["quantity"]),
            price=float(data["price"]),
        )


@dataclass(frozen=True)
class Order:
    """
    A placed order.

    Items and total are fixed at creation. Status changes produce a new
    Order via with_status(); nothing else about an order ever changes.
    """

    id: str
    user_id: str
    created_at: str
    items: tuple[OrderItem, ...]
    total: float
    status: OrderStatus = OrderStatus.PENDING

    def with_status(self, status: OrderStatus) -> "Order":
        return Order(
            id=self.id,
            user_id=self.user_id,
            created_at=self.created_at,
            items=self.items,
            total=self.total,
            status=status,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": self.created_at,
            "items": [i.to_dict() for i in self.items],
            "total": self.total,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            created_at=data.get("created_at", ""),
            items=tuple(OrderItem.from_dict(i) for i in data.get("items", [])),
            total=float(data["total"]),
            status=OrderStatus(data.get("status", OrderStatus.PENDING.value)),
        )

    @classmethod
    def create(cls, user_id: str, items: list[OrderItem]) -> "Order":
        """Create a PENDING order; the total is computed once, here."""
        total = round(sum(i.subtotal for i in items), 2)
        return cls(
            id=_generate_id(),
            user_id=user_id,
            created_at=_utc_now(),
            items=tuple(items),
            total=total,
            status=OrderStatus.PENDING,
        )


@dataclass
class CartItem:
    """A cart line. Name and price are captured when the product is added."""

    product_id: str
    product_name: str
    price: float
    quantity: int

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


@dataclass
class Snapshot:
    """Full persisted state: every user, product and order."""

    users: list[User] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "users": [u.to_dict() for u in self.users],
            "products": [p.to_dict() for p in self.products],
            "orders": [o.to_dict() for o in self.orders],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        return cls(
            users=[User.from_dict(u) for u in data.get("users", [])],
            products=[Product.from_dict(p) for p in data.get("products", [])],
            orders=[Order.from_dict(o) for o in data.get("orders", [])],
            schema_version=data["schema_version"],
        )
