"""Tests for Store snapshot persistence."""

import json
import logging

from storefront.auth import verify_password
from storefront.models import OrderItem, OrderStatus, Role
from storefront.orders import OrderService
from storefront.seed import DEFAULT_PRODUCTS
from storefront.store import SNAPSHOT_FILE, Store


class TestStoreSeeding:
    def test_open_seeds_when_no_snapshot(self, temp_dir):
        store = Store.open(temp_dir)

        assert store.exists()
        assert len(store.data.users) == 2
        assert len(store.data.products) == 8
        assert store.data.orders == []

    def test_seed_accounts(self, temp_dir):
        store = Store.open(temp_dir)
        admin, customer = store.data.users

        assert admin.email == "admin@shop.com"
        assert admin.role == Role.ADMIN
        assert verify_password("admin123", admin.password_hash)
        assert customer.email == "ali@example.com"
        assert customer.role == Role.CUSTOMER
        assert verify_password("pass", customer.password_hash)

    def test_seed_catalog_values(self, temp_dir):
        store = Store.open(temp_dir)
        seeded = [
            (p.name, p.description, p.price, p.stock, p.category)
            for p in store.data.products
        ]
        assert seeded == DEFAULT_PRODUCTS

        cake = store.data.products[0]
        assert cake.name == "Chocolate Cake"
        assert cake.price == 25.0
        assert cake.stock == 15

    def test_load_or_seed_reports_seeding(self, temp_dir):
        assert Store(temp_dir).load_or_seed() is True
        assert Store(temp_dir).load_or_seed() is False


class TestStoreLoad:
    def test_reopen_keeps_identities(self, temp_dir):
        first = Store.open(temp_dir)
        second = Store.open(temp_dir)

        assert [u.id for u in second.data.users] == [u.id for u in first.data.users]
        assert [p.id for p in second.data.products] == [p.id for p in first.data.products]

    def test_load_missing_returns_none(self, temp_dir):
        assert Store(temp_dir).load() is None

    def test_corrupt_snapshot_falls_back_to_seed(self, temp_dir, caplog):
        (temp_dir / SNAPSHOT_FILE).write_text("{not json")

        with caplog.at_level(logging.WARNING, logger="storefront.store"):
            store = Store.open(temp_dir)

        assert len(store.data.products) == 8
        assert "Could not read snapshot" in caplog.text
        # The fresh seed replaced the corrupt file
        json.loads((temp_dir / SNAPSHOT_FILE).read_text())

    def test_incomplete_snapshot_falls_back_to_seed(self, temp_dir):
        (temp_dir / SNAPSHOT_FILE).write_text(
            json.dumps({"schema_version": 1, "products": [{"name": "no id"}]})
        )

        store = Store.open(temp_dir)
        assert len(store.data.products) == 8

    def test_other_schema_version_falls_back_to_seed(self, temp_dir):
        (temp_dir / SNAPSHOT_FILE).write_text(
            json.dumps({"schema_version": 99, "users": [], "products": [], "orders": []})
        )

        store = Store.open(temp_dir)
        assert len(store.data.users) == 2


class TestStoreSave:
    def test_roundtrip_preserves_data(self, temp_dir):
        store = Store.open(temp_dir)
        orders = OrderService(store)
        customer = store.data.users[1]
        cake = store.data.products[0]

        order = orders.place_order(customer, [OrderItem(cake.id, cake.name, 2, cake.price)])
        orders.update_order_status(order.id, OrderStatus.SHIPPED)

        reloaded = Store.open(temp_dir)

        assert reloaded.data.users == store.data.users
        assert reloaded.data.products == store.data.products
        assert reloaded.data.orders == store.data.orders
        assert reloaded.data.orders[0].status == OrderStatus.SHIPPED
        assert reloaded.data.products[0].stock == 13

    def test_save_leaves_no_temp_files(self, temp_dir):
        store = Store.open(temp_dir)
        store.save()

        leftovers = [p.name for p in temp_dir.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_save_failure_is_logged_not_raised(self, temp_dir, monkeypatch, caplog):
        store = Store.open(temp_dir)
        before = (temp_dir / SNAPSHOT_FILE).read_text()

        def fail(data):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write", fail)
        store.data.products[0].name = "Renamed"

        with caplog.at_level(logging.ERROR, logger="storefront.store"):
            assert store.save() is False

        assert "Failed to save snapshot" in caplog.text
        # Memory keeps the change, disk keeps the old snapshot intact
        assert store.data.products[0].name == "Renamed"
        assert (temp_dir / SNAPSHOT_FILE).read_text() == before

    def test_close_flushes(self, temp_dir):
        with Store.open(temp_dir) as store:
            store.data.products[0].stock = 3

        assert Store.open(temp_dir).data.products[0].stock == 3

    def test_reset_discards_state(self, temp_dir):
        store = Store.open(temp_dir)
        store.data.products.clear()
        store.save()

        assert store.reset() is True
        assert len(Store.open(temp_dir).data.products) == 8
