"""Pytest fixtures for storefront tests."""

import tempfile
from pathlib import Path

import pytest

from storefront.auth import AuthService
from storefront.catalog import CatalogService
from storefront.orders import OrderService
from storefront.store import Store


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """A store seeded with the default data."""
    return Store.open(temp_dir)


@pytest.fixture
def auth(store):
    return AuthService(store)


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def orders(store):
    return OrderService(store)


@pytest.fixture
def customer(auth):
    """The seeded customer account."""
    return auth.login("ali@example.com", "pass")


@pytest.fixture
def admin(auth):
    """The seeded admin account."""
    return auth.login("admin@shop.com", "admin123")


@pytest.fixture
def product_named(catalog):
    """Look up a catalog product by exact name."""

    def _find(name: str):
        for p in catalog.list_all():
            if p.name == name:
                return p
        raise AssertionError(f"No product named {name!r}")

    return _find
