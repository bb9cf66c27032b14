import pytest

from datamapper.analysis.model import FieldDescriptor
from datamapper.mapping.rule_engine import RuleEngine, calculate_similarity, clamp


@pytest.fixture
def engine():
    return RuleEngine()


def _targets(table_mapping):
    return {m.source_field: m.target_field for m in table_mapping.field_mappings}


def test_similarity_scores():
    assert calculate_similarity("price", "price") == 1.0
    assert calculate_similarity("name", "product_name") == 0.8
    assert calculate_similarity("", "price") == 0.0
    assert calculate_similarity("prise", "price") == pytest.approx(0.8)


def test_clamp():
    assert clamp(2.0, 0.4, 0.95) == 0.95
    assert clamp(0.1, 0.4, 0.95) == 0.4
    assert clamp(0.5, 0.4, 0.95) == 0.5


def test_inventory_sheet_maps_to_product(engine, analyze, inventory_docs):
    analysis = analyze("acme_inventory", inventory_docs)

    table, confidence, score = engine.detect_table(analysis)
    assert table == "product"
    assert confidence == 0.95
    assert score == 38

    result = engine.map_collection(analysis)
    assert result.method == "rule"
    assert result.table_names == ["product"]
    product = result.get_table("product")
    assert _targets(product) == {
        "Item ID": "product_id",
        "Item name": "product_name",
        "Type": "category_id",
        "Brand": "brand_id",
        "Price": "price",
        "Status": "status",
    }
    assert product.get_source_for("status") == "Status"
    assert {r.related_table for r in product.relationships} == {"product_category", "product_brand"}

    unmapped = {u.field_name: u.reason for u in result.unmapped_fields}
    assert set(unmapped) == {"Cost", "Stock"}
    assert unmapped["Cost"] == "Column 'price' already mapped"


def test_confidences_follow_match_kind(engine, analyze, inventory_docs):
    product = engine.map_collection(analyze("acme_inventory", inventory_docs)).get_table("product")
    by_source = {m.source_field: m for m in product.field_mappings}

    assert by_source["Price"].confidence == 0.95
    assert by_source["Item name"].confidence == 0.85
    assert by_source["Price"].transform_kind == "currency_format"
    assert by_source["Item ID"].transform_kind == "id_generation"


def test_vendor_sheet_maps_to_supplier(engine, analyze, vendor_docs):
    analysis = analyze("acme_vendors", vendor_docs)

    table, confidence, score = engine.detect_table(analysis)
    assert table == "supplier"
    assert score == 26
    assert confidence == pytest.approx(26 / 30)

    supplier = engine.map_collection(analysis).get_table("supplier")
    assert _targets(supplier) == {
        "Vendor": "supplier_name",
        "Contact": "contact_person",
        "Address": "address",
        "Email": "email",
    }


def test_shared_subtype_resolves_on_order_tables(engine, analyze):
    docs = [{
        "Order": "SO-1",
        "Product": "Widget",
        "Status": "Delivered",
        "Order date": "2024-01-02",
        "Price": "500",
        "Sales platform": "Daraz",
    }]
    analysis = analyze("acme_sales", docs)

    assert engine.detect_table(analysis)[0] == "sales_order"
    targets = _targets(engine.map_collection(analysis).get_table("sales_order"))
    assert targets["Order"] == "sales_order_id"
    assert targets["Order date"] == "order_date"
    assert targets["Price"] == "total_amount"


def test_unrecognizable_collection_defaults_to_generic_table(engine, analyze):
    analysis = analyze("acme_misc", [{"Foo": "1", "Bar": "2"}])

    assert engine.detect_table(analysis) == ("product", 0.4, 0)
    result = engine.map_collection(analysis)
    assert result.tables == []
    assert [u.field_name for u in result.unmapped_fields] == ["Foo", "Bar"]


def test_mapping_is_deterministic(engine, analyze, inventory_docs):
    first = engine.map_collection(analyze("acme_inventory", inventory_docs))
    second = RuleEngine().map_collection(analyze("acme_inventory", inventory_docs))
    assert first.to_dict() == second.to_dict()


def test_suggestions_are_ranked_and_capped(engine):
    suggestions = engine.suggest_columns("Product nam", "product")
    assert suggestions[0] == "product_name"
    assert len(suggestions) <= 3


def test_keyword_heuristic_for_unclassified_field(engine):
    descriptor = FieldDescriptor(
        name="Shipped on date",
        normalized_name="shipped_on_date",
        semantic_category="unknown",
        semantic_subtype="unknown",
        inferred_type="date",
    )
    mapping = engine.map_field(descriptor, "sales_order")
    assert mapping.target_field == "order_date"
    assert mapping.confidence == 0.7
