from datamapper.mapping.model import FieldMapping, TableMapping
from datamapper.transform.document_transformer import DocumentTransformer, product_id_for
from datamapper.transform.validator import RecordValidator, dedup_key, missing_fields


def _table(name, pairs):
    return TableMapping(
        table_name=name,
        confidence=0.9,
        field_mappings=[FieldMapping(source_field=s, target_field=t, confidence=0.9) for s, t in pairs],
    )


SUPPLIER_MAPPING = _table("supplier", [("Vendor", "supplier_name"), ("Address", "address")])


def test_supplier_record_is_coerced_and_enhanced():
    doc = {
        "_id": "acme_vendors:1",
        "Vendor": "  Acme Medical ",
        "Address": "Dhaka",
        "Mail": "Sales@AcmeMedical.com",
        "Mobile": "+880 1711-000000",
        "Contact person": "Rahim Uddin",
    }
    record = DocumentTransformer("acme").transform(doc, SUPPLIER_MAPPING)

    assert record == {
        "business_id": "acme",
        "supplier_name": "Acme Medical",
        "address": "Dhaka",
        "email": "sales@acmemedical.com",
        "phone": "+8801711000000",
        "contact_person": "Rahim Uddin",
    }


def test_enhancement_never_overwrites_mapped_values():
    mapping = _table("supplier", [("Vendor", "supplier_name"), ("Email", "email")])
    doc = {"Vendor": "Acme", "Email": "primary@acme.com", "Other email": "secondary@acme.com"}

    record = DocumentTransformer("acme").transform(doc, mapping)

    assert record["email"] == "primary@acme.com"


def test_dates_and_amounts_are_not_taken_for_phones():
    doc = {"Vendor": "Acme", "Since": "2024-01-05", "Credit limit": "1500000", "Opened": "05-01-2024"}

    record = DocumentTransformer("acme").transform(doc, SUPPLIER_MAPPING)

    assert record == {"business_id": "acme", "supplier_name": "Acme"}


def test_phone_is_found_next_to_a_date():
    doc = {"Vendor": "Acme", "Since": "2024-01-05", "Hotline": "01711000000"}

    record = DocumentTransformer("acme").transform(doc, SUPPLIER_MAPPING)

    assert record["phone"] == "01711000000"


def test_entity_without_natural_key_is_skipped():
    doc = {"Vendor": "", "Address": "Dhaka"}
    assert DocumentTransformer("acme").transform(doc, SUPPLIER_MAPPING) is None


def test_record_with_only_business_id_is_skipped():
    mapping = _table("purchase_order", [("Total", "total_amount")])
    assert DocumentTransformer("acme").transform({"Total": "n/a"}, mapping) is None


def test_transactional_record_values():
    mapping = _table("purchase_order", [
        ("PO", "purchase_order_id"),
        ("Date", "order_date"),
        ("Total", "total_amount"),
        ("Supplier", "supplier_id"),
    ])
    doc = {"PO": "17", "Date": "2024-03-01", "Total": "12,000 Tk", "Supplier": "Acme Medical"}

    record = DocumentTransformer("acme").transform(doc, mapping)

    assert record["purchase_order_id"] == 17
    assert record["order_date"] == "2024-03-01T00:00:00"
    assert record["total_amount"] == 12000.0
    assert isinstance(record["supplier_id"], int)


def test_product_record_gets_key_and_created_date():
    mapping = _table("product", [("Item name", "product_name"), ("Price", "selling_price")])
    doc = {"_id": 5, "Item name": "BP Monitor", "Price": "4,500"}

    record = DocumentTransformer("acme").transform(doc, mapping)

    assert record["product_id"] == product_id_for("acme", "BP Monitor", 5)
    assert record["product_id"].startswith("PROD_")
    assert record["selling_price"] == 4500.0
    assert "created_date" in record


def test_transform_documents_collects_records():
    docs = [{"Vendor": "Acme"}, {"Vendor": None}, {"Vendor": "Beta"}]
    records, errors = DocumentTransformer("acme").transform_documents(docs, SUPPLIER_MAPPING)

    assert [r["supplier_name"] for r in records] == ["Acme", "Beta"]
    assert errors == []


def test_validator_drops_duplicates_and_invalid_records():
    records = [
        {"business_id": "acme", "supplier_name": "Acme", "email": "a@acme.com"},
        {"business_id": "acme", "supplier_name": " ACME ", "email": "A@acme.com"},
        {"business_id": "acme", "supplier_name": "Beta"},
        {"business_id": "acme", "address": "Dhaka"},
    ]
    report = RecordValidator().validate("supplier", records)

    assert [r["supplier_name"] for r in report.clean] == ["Acme", "Beta"]
    assert report.duplicate_count == 1
    assert report.invalid_count == 1
    assert report.errors[0].error_type == "VALIDATION_ERROR"
    assert report.errors[0].index == 3
    assert len(records) - report.invalid_count - len(report.clean) == report.duplicate_count


def test_validator_requires_business_id():
    assert missing_fields("purchase_order", {"total_amount": 5.0}) == ["business_id"]


def test_tables_without_dedup_fields_compare_whole_records():
    first = {"business_id": "acme", "capital_id": 1, "investor_id": 3}
    same = {"investor_id": 3, "capital_id": 1, "business_id": "acme"}
    other = {"business_id": "acme", "capital_id": 2, "investor_id": 3}

    assert dedup_key("investors_capital", first) == dedup_key("investors_capital", same)
    assert dedup_key("investors_capital", first) != dedup_key("investors_capital", other)
