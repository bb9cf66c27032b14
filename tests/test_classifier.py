import pytest

from datamapper.mapping.classifier import (
    SchemaClassifier,
    extract_json_object,
    parse_mapping_response,
    strip_code_fences,
)
from datamapper.mapping.prompt import build_messages
from datamapper.mapping.validation import clamp_confidence, validate_mapping
from datamapper.migration.exceptions import ClassifierResponseError

SUPPLIER_RESPONSE = {
    "tables": [{
        "table_name": "supplier",
        "confidence": 0.9,
        "reasoning": "vendor sheet",
        "field_mappings": [
            {"source_field": "Vendor", "target_field": "supplier_name", "confidence": 0.95},
            {"source_field": "Email", "target_field": "email", "confidence": 0.9},
        ],
    }],
    "unmapped_fields": [{"field_name": "Website", "reason": "no column"}],
}


@pytest.fixture
def vendor_analysis(analyze, vendor_docs):
    return analyze("acme_vendors", vendor_docs)


def test_profit_margin_is_removed_with_its_table(make_client, migration_config, vendor_analysis, fake_sleep):
    client = make_client({"test/model-a": [{
        "tables": [{
            "table_name": "sales_order",
            "field_mappings": [{"source_field": "X", "target_field": "profit_margin"}],
        }],
    }]})
    classifier = SchemaClassifier(client, migration_config, sleep=fake_sleep)

    result = classifier.classify(vendor_analysis)

    assert result.tables == []
    assert result.method == "llm"
    assert [u.field_name for u in result.unmapped_fields] == ["X"]
    assert "non-existent column" in result.unmapped_fields[0].reason
    assert client.calls == ["test/model-a"]


def test_valid_response_is_accepted(make_client, migration_config, vendor_analysis, fake_sleep):
    client = make_client({"test/model-a": [SUPPLIER_RESPONSE]})
    classifier = SchemaClassifier(client, migration_config, sleep=fake_sleep)

    result = classifier.determine_mapping(vendor_analysis)

    assert result.method == "llm"
    assert result.model == "test/model-a"
    supplier = result.get_table("supplier")
    assert supplier.get_source_for("supplier_name") == "Vendor"
    assert supplier.reasoning == "vendor sheet"
    assert [u.field_name for u in result.unmapped_fields] == ["Website"]


def test_fenced_response_is_parsed(make_client, migration_config, vendor_analysis, fake_sleep):
    fenced = (
        "Here is the mapping:\n```json\n"
        '{"tables": [{"table_name": "supplier", "field_mappings": '
        '[{"source_field": "Vendor", "target_field": "supplier_name"}]}]}\n'
        "```"
    )
    client = make_client({"test/model-a": [fenced]})
    result = SchemaClassifier(client, migration_config, sleep=fake_sleep).classify(vendor_analysis)

    assert result.table_names == ["supplier"]
    assert result.get_table("supplier").field_mappings[0].confidence == 0.5


def test_rotates_after_exhausting_attempts(make_client, migration_config, vendor_analysis, fake_sleep, sleeps):
    client = make_client({
        "test/model-a": [RuntimeError("boom"), RuntimeError("boom again")],
        "test/model-b": [SUPPLIER_RESPONSE],
    })
    result = SchemaClassifier(client, migration_config, sleep=fake_sleep).classify(vendor_analysis)

    assert client.calls == ["test/model-a", "test/model-a", "test/model-b"]
    assert sleeps == [1.0]
    assert result.model == "test/model-b"


def test_malformed_json_counts_as_a_failed_attempt(make_client, migration_config, vendor_analysis, fake_sleep):
    client = make_client({"test/model-a": ["not json at all", SUPPLIER_RESPONSE]})
    result = SchemaClassifier(client, migration_config, sleep=fake_sleep).classify(vendor_analysis)

    assert client.calls == ["test/model-a", "test/model-a"]
    assert result.table_names == ["supplier"]


def test_rate_limit_skips_retries(make_client, migration_config, vendor_analysis, fake_sleep, sleeps):
    client = make_client({
        "test/model-a": [RuntimeError("Error 429: rate limit exceeded")],
        "test/model-b": [SUPPLIER_RESPONSE],
    })
    result = SchemaClassifier(client, migration_config, sleep=fake_sleep).classify(vendor_analysis)

    assert client.calls == ["test/model-a", "test/model-b"]
    assert sleeps == []
    assert result.model == "test/model-b"


def test_all_models_failing_falls_back_to_rules(make_client, migration_config, vendor_analysis, fake_sleep, sleeps):
    client = make_client({
        "test/model-a": [RuntimeError("down"), RuntimeError("down")],
        "test/model-b": [RuntimeError("down"), RuntimeError("down")],
    })
    result = SchemaClassifier(client, migration_config, sleep=fake_sleep).classify(vendor_analysis)

    assert result is not None
    assert result.method == "rule"
    assert result.table_names == ["supplier"]
    assert len(client.calls) == 4
    assert sleeps == [1.0, 1.0]


def test_no_client_uses_rules(migration_config, vendor_analysis):
    result = SchemaClassifier(None, migration_config).classify(vendor_analysis)
    assert result.method == "rule"
    assert result.model is None


def test_rotation_restarts_on_every_call(make_client, migration_config, vendor_analysis, fake_sleep):
    client = make_client({
        "test/model-a": [RuntimeError("x"), RuntimeError("x"), SUPPLIER_RESPONSE],
        "test/model-b": [SUPPLIER_RESPONSE],
    })
    classifier = SchemaClassifier(client, migration_config, sleep=fake_sleep)

    assert classifier.classify(vendor_analysis).model == "test/model-b"
    assert classifier.classify(vendor_analysis).model == "test/model-a"


def test_unknown_table_and_business_id_are_reported():
    result = validate_mapping({
        "tables": [
            {"table_name": "ledger", "field_mappings": [{"source_field": "Debit", "target_field": "amount"}]},
            {"table_name": "customer", "confidence": 7, "field_mappings": [
                {"source_field": "Name", "target_field": "customer_name"},
                {"source_field": "Shop", "target_field": "business_id"},
            ]},
        ],
    })

    assert result.table_names == ["customer"]
    assert result.get_table("customer").confidence == 1.0
    reasons = {u.field_name: u.reason for u in result.unmapped_fields}
    assert reasons == {
        "Debit": "unknown table 'ledger'",
        "Shop": "business_id is assigned by the pipeline",
    }


def test_transform_kind_is_derived_from_the_column():
    result = validate_mapping({"tables": [{"table_name": "purchase_order", "field_mappings": [
        {"source_field": "Date", "target_field": "order_date"},
        {"source_field": "Total", "target_field": "total_amount"},
        {"source_field": "Status", "target_field": "status"},
    ]}]})
    kinds = {m.source_field: m.transform_kind for m in result.tables[0].field_mappings}
    assert kinds == {"Date": "date_format", "Total": "currency_format", "Status": "none"}


@pytest.mark.parametrize("raw,expected", [
    (0.7, 0.7),
    ("0.3", 0.3),
    (-1, 0.0),
    (3, 1.0),
    (None, 0.5),
    ("high", 0.5),
    (True, 0.5),
])
def test_clamp_confidence(raw, expected):
    assert clamp_confidence(raw) == expected


def test_extract_json_object_ignores_braces_in_strings():
    text = 'prefix {"a": "has } and {", "b": {"c": 1}} trailing {"d": 2}'
    assert extract_json_object(text) == '{"a": "has } and {", "b": {"c": 1}}'


def test_strip_code_fences():
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert strip_code_fences('```json {"tables": []}```') == '{"tables": []}'
    assert strip_code_fences("{}") == "{}"


def test_single_line_fenced_response_is_parsed(make_client, migration_config, vendor_analysis, fake_sleep):
    one_line = (
        '```json {"tables": [{"table_name": "supplier", "field_mappings": '
        '[{"source_field": "Vendor", "target_field": "supplier_name", "confidence": 0.9}]}]}```'
    )
    client = make_client({"test/model-a": [one_line]})
    result = SchemaClassifier(client, migration_config, sleep=fake_sleep).classify(vendor_analysis)

    assert result.method == "llm"
    assert result.table_names == ["supplier"]
    assert client.calls == ["test/model-a"]


@pytest.mark.parametrize("text", [
    "",
    "no braces here",
    '{"unbalanced": 1',
    '{"tables": "not a list"}',
    '{"other": []}',
])
def test_parse_mapping_response_rejects(text):
    with pytest.raises(ClassifierResponseError):
        parse_mapping_response(text)


def test_prompt_lists_catalog_fields_and_samples(vendor_analysis):
    messages = build_messages(vendor_analysis, sample_records=1)

    assert [m["role"] for m in messages] == ["system", "user"]
    prompt = messages[1]["content"]
    assert "supplier: supplier_id, supplier_name, contact_person, email, phone, address" in prompt
    assert "- Vendor (text) [vendor:name]: examples [Acme Medical, Beta Supplies]" in prompt
    assert "Sample 1:" in prompt and "Sample 2:" not in prompt
    assert '"_id"' not in prompt
