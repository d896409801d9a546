"""Product catalog."""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from .errors import InvalidInputError, ProductNotFoundError
from .models import Product
from .utils import require_text, validate_price, validate_stock

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)

# Fields update_product() accepts.
EDITABLE_FIELDS = ("name", "description", "price", "stock", "category")


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate a product patch and return the cleaned values."""
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidInputError(", ".join(sorted(unknown)), "not an editable product field")

    cleaned: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "name":
            cleaned[key] = require_text("name", value)
        elif key == "price":
            cleaned[key] = validate_price(value)
        elif key == "stock":
            cleaned[key] = validate_stock(value)
        else:
            cleaned[key] = (value or "").strip()
    return cleaned


class CatalogService:
    """
    Product CRUD and search.

    Every product handed out is a copy. Editing a returned Product changes
    nothing until it is passed back through update() or update_product().
    """

    def __init__(self, store: "Store"):
        self.store = store

    def list_all(self) -> list[Product]:
        """All products, in catalog order."""
        with self.store.transaction() as data:
            return [replace(p) for p in data.products]

    def add(
        self,
        name: str,
        description: str,
        price: float,
        stock: int,
        category: str,
    ) -> Product:
        """
        Create and persist a product.

        Raises:
            InvalidInputError: If name is blank or price/stock is negative.
        """
        fields = _clean_fields(
            {
                "name": name,
                "description": description,
                "price": price,
                "stock": stock,
                "category": category,
            }
        )
        product = Product.create(**fields)
        with self.store.transaction() as data:
            data.products.append(product)
            self.store.save()
        logger.info("Added product %s (%s)", product.name, product.id)
        return replace(product)

    def update_product(self, product_id: str, **fields: Any) -> Product:
        """
        Apply a field-level patch to a product and persist it.

        Args:
            product_id: Product ID.
            **fields: Any of name, description, price, stock, category.

        Returns:
            A fresh copy of the updated product.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            InvalidInputError: If a field is unknown or its value invalid.
        """
        cleaned = _clean_fields(fields)
        with self.store.transaction() as data:
            for product in data.products:
                if product.id == product_id:
                    for key, value in cleaned.items():
                        setattr(product, key, value)
                    self.store.save()
                    return replace(product)
        raise ProductNotFoundError(product_id)

    def update(self, product: Product) -> Product:
        """Write every editable field of a caller-held copy back to the catalog."""
        return self.update_product(
            product.id,
            **{key: getattr(product, key) for key in EDITABLE_FIELDS},
        )

    def remove(self, product_id: str) -> None:
        """Delete a product. No-op if it doesn't exist."""
        with self.store.transaction() as data:
            before = len(data.products)
            data.products[:] = [p for p in data.products if p.id != product_id]
            if len(data.products) != before:
                logger.info("Removed product %s", product_id)
            self.store.save()

    def find_by_id(self, product_id: str) -> Product | None:
        with self.store.transaction() as data:
            for product in data.products:
                if product.id == product_id:
                    return replace(product)
        return None

    def search(self, query: str | None = "", category: str | None = "") -> list[Product]:
        """
        Case-insensitive substring match on name or description.

        A non-empty category must also match exactly (ignoring case).
        An empty query matches every product.
        """
        q = (query or "").lower()
        cat = (category or "").lower()
        with self.store.transaction() as data:
            return [
                replace(p)
                for p in data.products
                if (q in p.name.lower() or q in p.description.lower())
                and (not cat or p.category.lower() == cat)
            ]

    def categories(self) -> list[str]:
        """Distinct categories, sorted."""
        with self.store.transaction() as data:
            return sorted({p.category for p in data.products if p.category})
