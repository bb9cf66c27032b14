import pytest

from datamapper.migration.exceptions import HierarchyPersistenceError
from datamapper.storage.base import StoreError
from datamapper.storage.memory import InMemoryTargetStore
from datamapper.transform.product_hierarchy import (
    ProductHierarchyBuilder,
    category_from_collection,
    inventory_values,
    unit_product_id,
)


def test_two_items_with_stock_three_and_two(target_store, inventory_docs):
    result = ProductHierarchyBuilder(target_store, "acme").build("acme_inventory", inventory_docs)

    assert result.brands_created == 1
    assert result.categories_created == 1
    assert result.units_generated == 5
    assert result.units_inserted == 5
    assert result.errors == []

    units = target_store.tables["product"]
    assert len(units) == 5
    assert len({u["product_id"] for u in units}) == 5

    brand = target_store.tables["product_brand"][0]
    assert brand["brand_name"] == "Omron"
    assert brand["unit_price"] == 1299.50
    category = target_store.tables["product_category"][0]
    assert category["category_name"] == "Diagnostics"
    assert {u["brand_id"] for u in units} == {brand["brand_id"]}
    assert {u["category_id"] for u in units} == {category["category_id"]}

    thermometers = [u for u in units if u["product_name"] == "Digital Thermometer"]
    assert len(thermometers) == 3
    assert thermometers[0]["selling_price"] == 1299.50
    assert thermometers[0]["price"] == 900.0
    assert thermometers[0]["status"] == "Active"


def test_rerun_reuses_entities_and_units(target_store, inventory_docs):
    ProductHierarchyBuilder(target_store, "acme").build("acme_inventory", inventory_docs)
    again = ProductHierarchyBuilder(target_store, "acme").build("acme_inventory", inventory_docs)

    assert again.brands_created == 0
    assert again.brands_reused == 1
    assert again.categories_reused == 1
    assert len(target_store.tables["product_brand"]) == 1
    assert len(target_store.tables["product_category"]) == 1
    assert len(target_store.tables["product"]) == 5


def test_other_business_gets_its_own_entities(target_store, inventory_docs):
    ProductHierarchyBuilder(target_store, "acme").build("acme_inventory", inventory_docs)
    other = ProductHierarchyBuilder(target_store, "other").build("other_inventory", inventory_docs)

    assert other.brands_created == 1
    assert len(target_store.tables["product_brand"]) == 2


def test_unit_ids_are_deterministic():
    first = unit_product_id("acme", "A1", "BP Monitor", "Omron", 1)
    assert first == unit_product_id("acme", "A1", "BP Monitor", "Omron", 1)
    assert first != unit_product_id("acme", "A1", "BP Monitor", "Omron", 2)
    assert first.startswith("PROD_") and len(first) == 21


@pytest.mark.parametrize("stock,expected_units", [
    ("0", 0),
    ("-2", 0),
    ("many", 1),
    (None, 1),
    ("4", 4),
])
def test_stock_expansion(target_store, stock, expected_units):
    doc = {"_id": 1, "Item name": "Gloves", "Brand": "Safe", "Type": "Consumables"}
    if stock is not None:
        doc["Stock"] = stock
    result = ProductHierarchyBuilder(target_store, "acme").build("acme_inventory", [doc])
    assert result.units_generated == expected_units


def test_missing_category_comes_from_collection_name(target_store):
    docs = [{"_id": 1, "Item name": "Littmann Classic", "Brand": "3M", "Stock": "1"}]
    ProductHierarchyBuilder(target_store, "acme").build("acme_stethoscope", docs)
    assert target_store.tables["product_category"][0]["category_name"] == "Medical Equipment"


def test_brand_defaults_to_category(target_store):
    docs = [{"_id": 1, "Product": "Anatomy Atlas", "Category": "Books", "Stock": "1"}]
    ProductHierarchyBuilder(target_store, "acme").build("acme_main", docs)
    assert target_store.tables["product_brand"][0]["brand_name"] == "Books"


def test_name_fallbacks(target_store):
    builder = ProductHierarchyBuilder(target_store, "acme")
    assert builder.extract_item({"Colour": "Blue", "Size": "M"}, "acme_dress").item_name == "Blue - M"
    assert builder.extract_item({"Product no.": "77"}, "acme_dress").item_name == "Product 77"
    assert builder.extract_item({"Remarks": "nothing useful"}, "acme_dress") is None


def test_rows_without_product_fields_are_skipped(target_store, inventory_docs):
    docs = inventory_docs + [{"_id": 3, "Remarks": "blank row"}]
    result = ProductHierarchyBuilder(target_store, "acme").build("acme_inventory", docs)
    assert result.skipped_rows == 1
    assert result.units_generated == 5


@pytest.mark.parametrize("collection_id,expected", [
    ("acme_books", "Books"),
    ("acme_bp-machine", "Medical Equipment"),
    ("acme_dress", "Medical Apparel"),
    ("acme_main", "General Merchandise"),
    ("acme_surgical", "surgical"),
    ("inventory", None),
])
def test_category_from_collection(collection_id, expected):
    assert category_from_collection(collection_id) == expected


def test_inventory_values_follow_the_alias_table():
    doc = {"_id": 9, "item  NAME": " Gloves ", "Brand": "", "Vendor": "Acme", "Qty": "2"}
    assert inventory_values(doc) == {"name": "Gloves", "stock": "2"}


def test_common_inventory_headers_are_recognized(target_store):
    docs = [{"SKU": "P-1", "Item": "Ballpoint Pen", "Brand": "Bic", "Qty": "3", "MRP": "20"}]
    result = ProductHierarchyBuilder(target_store, "acme").build("acme_stationery", docs)

    assert result.units_generated == 3
    units = target_store.tables["product"]
    assert {u["product_name"] for u in units} == {"Ballpoint Pen"}
    assert {u["selling_price"] for u in units} == {20.0}
    assert {u["price"] for u in units} == {None}
    assert units[0]["product_id"] == unit_product_id("acme", "P-1", "Ballpoint Pen", "Bic", 1)
    assert target_store.tables["product_brand"][0]["brand_name"] == "Bic"


def test_cost_and_selling_price_come_from_separate_fields(target_store):
    builder = ProductHierarchyBuilder(target_store, "acme")
    item = builder.extract_item(
        {"Product name": "Stethoscope", "Cost per unit": "1,100", "Selling Price": "1,500", "Quantity": "2"},
        "acme_instrument",
    )
    assert item.cost == 1100.0
    assert item.selling_price == 1500.0
    assert item.stock == 2
    assert item.category_name == "Medical Equipment"


def test_selling_price_beats_a_generic_price_column():
    values = inventory_values({"Price": "100", "Cost": "80", "Selling Price": "150"})
    assert values["price"] == "150"
    assert values["cost"] == "80"


def test_preview_expands_units_without_writing(target_store, inventory_docs):
    builder = ProductHierarchyBuilder(target_store, "acme")
    units = builder.preview("acme_inventory", inventory_docs)

    assert len(units) == 5
    assert {u["category_id"] for u in units} == {None}
    assert all(not rows for rows in target_store.tables.values())

    builder.build("acme_inventory", inventory_docs)
    again = builder.preview("acme_inventory", inventory_docs)
    written = target_store.tables["product"]
    assert [u["product_id"] for u in again] == [u["product_id"] for u in written]
    assert {u["brand_id"] for u in again} == {written[0]["brand_id"]}


class FailingInsertStore(InMemoryTargetStore):
    def insert(self, table, rows):
        raise StoreError(f"cannot write {table}")


class FailingUpsertStore(InMemoryTargetStore):
    def upsert(self, table, rows, conflict_key):
        raise StoreError("disk full")


def test_entity_insert_failure_aborts_the_build(inventory_docs):
    builder = ProductHierarchyBuilder(FailingInsertStore(), "acme")
    with pytest.raises(HierarchyPersistenceError):
        builder.build("acme_inventory", inventory_docs)


def test_unit_batch_failure_is_recorded(inventory_docs):
    store = FailingUpsertStore()
    result = ProductHierarchyBuilder(store, "acme", batch_size=2).build("acme_inventory", inventory_docs)

    assert result.units_generated == 5
    assert result.units_inserted == 0
    assert [e.error_type for e in result.errors] == ["BATCH_ERROR"] * 3
