"""Integration tests for CLI."""

import json
import subprocess
import sys
from pathlib import Path


def run_storefront(args: list[str], data_dir: Path) -> subprocess.CompletedProcess:
    """Run storefront CLI command against a data directory."""
    return subprocess.run(
        [sys.executable, "-m", "storefront.cli", "--data-dir", str(data_dir)] + args,
        capture_output=True,
        text=True,
    )


def product_ids(data_dir: Path) -> dict[str, str]:
    result = run_storefront(["products", "list", "--json"], data_dir)
    return {p["name"]: p["id"] for p in json.loads(result.stdout)}


class TestCLIIntegration:
    """Integration tests for CLI commands."""

    def test_init_creates_snapshot(self, temp_dir):
        result = run_storefront(["init"], temp_dir)

        assert result.returncode == 0
        assert "Initialized" in result.stdout
        assert (temp_dir / "store.json").exists()

    def test_init_twice_requires_force(self, temp_dir):
        run_storefront(["init"], temp_dir)

        result = run_storefront(["init"], temp_dir)
        assert result.returncode == 1
        assert "already exists" in result.stderr

        result = run_storefront(["init", "--force"], temp_dir)
        assert result.returncode == 0

    def test_products_list_seeds_on_first_use(self, temp_dir):
        result = run_storefront(["products", "list"], temp_dir)

        assert result.returncode == 0
        assert "Products (8)" in result.stdout
        assert "Chocolate Cake" in result.stdout

    def test_products_search(self, temp_dir):
        result = run_storefront(["products", "search", "cake", "--category", "Slices"], temp_dir)

        assert result.returncode == 0
        assert "Red Velvet Slice" in result.stdout
        assert "Chocolate Cake" not in result.stdout

    def test_products_add_and_remove(self, temp_dir):
        result = run_storefront(
            ["products", "add", "Eclair", "--price", "4.5", "--stock", "3", "--category", "Pastries"],
            temp_dir,
        )
        assert result.returncode == 0
        assert "Added product" in result.stdout

        eclair = product_ids(temp_dir)["Eclair"]
        result = run_storefront(["products", "remove", eclair[:8]], temp_dir)
        assert result.returncode == 0
        assert "Eclair" not in product_ids(temp_dir)

    def test_products_update(self, temp_dir):
        cake = product_ids(temp_dir)["Chocolate Cake"]

        result = run_storefront(
            ["products", "update", cake[:8], "--desc", "Dark and rich", "--price", "27.5"],
            temp_dir,
        )
        assert result.returncode == 0
        assert "Updated product" in result.stdout

        products = json.loads(run_storefront(["products", "list", "--json"], temp_dir).stdout)
        updated = next(p for p in products if p["id"] == cake)
        assert updated["description"] == "Dark and rich"
        assert updated["price"] == 27.5
        assert updated["name"] == "Chocolate Cake"

    def test_empty_json_listings(self, temp_dir):
        result = run_storefront(["products", "search", "no-such-thing", "--json"], temp_dir)
        assert result.returncode == 0
        assert json.loads(result.stdout) == []

        result = run_storefront(["orders", "list", "--json"], temp_dir)
        assert result.returncode == 0
        assert json.loads(result.stdout) == []

    def test_products_add_negative_stock_fails(self, temp_dir):
        result = run_storefront(
            ["products", "add", "Bad", "--price", "1", "--stock", "-1"], temp_dir
        )
        assert result.returncode == 1
        assert "Invalid stock" in result.stderr

    def test_register_duplicate_email(self, temp_dir):
        result = run_storefront(["users", "register", "Bea", "bea@example.com", "pw"], temp_dir)
        assert result.returncode == 0

        result = run_storefront(["users", "register", "Bea", "BEA@example.com", "pw"], temp_dir)
        assert result.returncode == 1
        assert "already registered" in result.stderr

    def test_place_order_and_update_status(self, temp_dir):
        cake = product_ids(temp_dir)["Chocolate Cake"]

        result = run_storefront(
            ["orders", "place", "--email", "ali@example.com", "--password", "pass", f"{cake[:8]}:5"],
            temp_dir,
        )
        assert result.returncode == 0
        assert "Total: $125.00" in result.stdout

        result = run_storefront(
            ["orders", "place", "--email", "ali@example.com", "--password", "pass", f"{cake}:20"],
            temp_dir,
        )
        assert result.returncode == 1
        assert "Insufficient stock" in result.stderr

        orders = json.loads(run_storefront(["orders", "list", "--json"], temp_dir).stdout)
        assert len(orders) == 1
        order_id = orders[0]["id"]

        result = run_storefront(["orders", "status", order_id[:8], "SHIPPED"], temp_dir)
        assert result.returncode == 0
        assert "SHIPPED" in result.stdout

        mine = json.loads(
            run_storefront(["orders", "list", "--user", "ali@example.com", "--json"], temp_dir).stdout
        )
        assert mine[0]["status"] == "SHIPPED"

        products = json.loads(run_storefront(["products", "list", "--json"], temp_dir).stdout)
        assert next(p for p in products if p["id"] == cake)["stock"] == 10

    def test_strict_status_rejects_skip(self, temp_dir):
        cake = product_ids(temp_dir)["Chocolate Cake"]
        run_storefront(
            ["orders", "place", "--email", "ali@example.com", "--password", "pass", cake],
            temp_dir,
        )
        order_id = json.loads(run_storefront(["orders", "list", "--json"], temp_dir).stdout)[0]["id"]

        result = run_storefront(["orders", "status", order_id, "DELIVERED", "--strict"], temp_dir)
        assert result.returncode == 1
        assert "Cannot move order" in result.stderr

    def test_wrong_password(self, temp_dir):
        cake = product_ids(temp_dir)["Chocolate Cake"]
        result = run_storefront(
            ["orders", "place", "--email", "ali@example.com", "--password", "nope", cake],
            temp_dir,
        )
        assert result.returncode == 1
        assert "Invalid email or password" in result.stderr
