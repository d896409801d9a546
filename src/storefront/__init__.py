"""storefront - single-store retail backend: catalog, carts and orders."""

__version__ = "0.1.0"
