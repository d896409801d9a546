"""Tests for CatalogService."""

import pytest

from storefront.catalog import CatalogService
from storefront.errors import InvalidInputError, ProductNotFoundError
from storefront.store import Store


class TestCatalogReads:
    def test_list_all_returns_copies(self, catalog):
        products = catalog.list_all()
        products[0].stock = 0
        products.clear()

        fresh = catalog.list_all()
        assert len(fresh) == 8
        assert fresh[0].stock == 15

    def test_find_by_id(self, catalog, product_named):
        cake = product_named("Chocolate Cake")

        found = catalog.find_by_id(cake.id)
        assert found == cake
        assert found is not cake

    def test_find_by_id_missing(self, catalog):
        assert catalog.find_by_id("nope") is None

    def test_categories(self, catalog):
        assert catalog.categories() == ["Cakes", "Cupcakes", "Pastries", "Slices", "Tarts"]


class TestCatalogSearch:
    def test_empty_query_matches_all(self, catalog):
        assert len(catalog.search("", "")) == 8
        assert len(catalog.search(None, None)) == 8

    def test_matches_name_case_insensitive(self, catalog):
        names = [p.name for p in catalog.search("CAKE", "")]
        assert "Chocolate Cake" in names
        assert "Carrot Cake" in names
        assert "Lemon Cheesecake" in names

    def test_matches_description(self, catalog):
        names = [p.name for p in catalog.search("coffee", "")]
        assert names == ["Tiramisu"]

    def test_category_is_exact_and_case_insensitive(self, catalog):
        cakes = catalog.search("", "cakes")
        assert {p.category for p in cakes} == {"Cakes"}
        assert len(cakes) == 4

        assert catalog.search("", "Cake") == []

    def test_query_and_category_intersect(self, catalog):
        names = [p.name for p in catalog.search("cake", "Slices")]
        assert names == ["Red Velvet Slice"]


class TestCatalogWrites:
    def test_add_persists(self, temp_dir, catalog):
        product = catalog.add("Eclair", "Chocolate eclair", 4.5, 20, "Pastries")

        assert product.id
        reloaded = CatalogService(Store.open(temp_dir))
        assert reloaded.find_by_id(product.id) == product

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"price": -1.0}, "price"),
            ({"stock": -1}, "stock"),
            ({"name": "   "}, "name"),
        ],
    )
    def test_add_rejects_invalid_input(self, catalog, kwargs, field):
        args = {"name": "Eclair", "description": "", "price": 4.5, "stock": 1, "category": ""}
        args.update(kwargs)

        with pytest.raises(InvalidInputError) as exc_info:
            catalog.add(**args)

        assert exc_info.value.field == field
        assert len(catalog.list_all()) == 8

    def test_add_allows_zero_price_and_stock(self, catalog):
        product = catalog.add("Sample", "Free sample", 0, 0, "Samples")
        assert product.price == 0.0
        assert product.stock == 0

    def test_update_product_patches_fields(self, catalog, product_named):
        cake = product_named("Chocolate Cake")

        updated = catalog.update_product(cake.id, price=27.5, stock=20)

        assert updated.price == 27.5
        assert updated.stock == 20
        assert updated.name == "Chocolate Cake"
        assert catalog.find_by_id(cake.id) == updated

    def test_update_product_validates(self, catalog, product_named):
        cake = product_named("Chocolate Cake")

        with pytest.raises(InvalidInputError):
            catalog.update_product(cake.id, stock=-5)
        with pytest.raises(InvalidInputError):
            catalog.update_product(cake.id, id="other")

        assert catalog.find_by_id(cake.id).stock == 15

    def test_update_product_missing(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.update_product("nope", price=1.0)

    def test_held_copy_changes_nothing_until_update(self, catalog, product_named):
        cake = product_named("Chocolate Cake")
        cake.name = "Dark Chocolate Cake"

        assert catalog.find_by_id(cake.id).name == "Chocolate Cake"

        catalog.update(cake)
        assert catalog.find_by_id(cake.id).name == "Dark Chocolate Cake"

    def test_remove(self, temp_dir, catalog, product_named):
        tart = product_named("Strawberry Tart")

        catalog.remove(tart.id)

        assert catalog.find_by_id(tart.id) is None
        assert CatalogService(Store.open(temp_dir)).find_by_id(tart.id) is None

    def test_remove_missing_is_noop(self, catalog):
        catalog.remove("nope")
        assert len(catalog.list_all()) == 8
