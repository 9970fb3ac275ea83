import json

from invoicing.models.customer import Customer
from invoicing.models.product import Product
from invoicing.services.catalog_service import CatalogService


def test_find_product_by_name_sku_or_barcode(catalog):
    assert catalog.find_product("Paracetamol 500mg").id == 1
    assert catalog.find_product("ETH-96").id == 2
    assert catalog.find_product(" 6221000000011 ").id == 1
    assert catalog.find_product("paracetamol 500mg") is None
    assert catalog.find_product("") is None


def test_search_hides_inactive_products(catalog):
    assert [p.id for p in catalog.search("")] == [1, 2]
    assert [p.id for p in catalog.search("solv")] == [2]
    assert catalog.search("ascorbic") == []
    assert len(catalog.list_products()) == 3


def test_invalid_product_rows_are_skipped(tmp_path):
    (tmp_path / "products.json").write_text(json.dumps([
        {"id": 1, "name": "Ok"},
        {"id": "x", "name": "Broken"},
        {"id": 2, "name": "Negative", "selling_price": "-1"},
    ]), encoding="utf-8")
    assert [p.name for p in CatalogService(base_dir=tmp_path).list_products()] == ["Ok"]


def test_added_product_is_found(catalog):
    catalog.add_product(Product(id=9, name="Glycerin", sku="GLY"))
    assert catalog.get_product(9).name == "Glycerin"
    assert catalog.find_product("GLY").id == 9
    assert catalog.get_product(10) is None


def test_customer_lookup(customers):
    assert customers.get_customer(7).company == "Nile Pharma SAE"
    assert customers.get_customer(99) is None
    assert customers.find_customer_by_name("  NILE pharma ").id == 7
    assert customers.find_customer_by_name("delta laboratories").id == 8
    assert customers.find_customer_by_name("Nile") is None


def test_added_customer_is_listed(customers):
    customers.add_customer(Customer(id=10, name="Cairo Meds", email="buy@cairomeds.com"))
    assert [c.id for c in customers.list_customers()] == [7, 8, 10]
    assert customers.find_customer_by_name("cairo meds").id == 10
