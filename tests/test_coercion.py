import pytest

from datamapper.schema.columns import column_kind
from datamapper.transform.coercion import (
    INT32_MAX,
    clean_phone,
    coerce_value,
    generate_id,
    normalize_email,
    parse_currency,
    parse_date,
    parse_quantity,
    stable_hash,
)


@pytest.mark.parametrize("value,expected", [
    ("1,299.50 ৳", 1299.50),
    ("$1,000", 1000.0),
    ("1,000 Tk", 1000.0),
    ("BDT 250", 250.0),
    (42, 42.0),
    (3.5, 3.5),
    ("-15.25", -15.25),
    ("abc", None),
    ("", None),
    (None, None),
    (True, None),
])
def test_parse_currency(value, expected):
    assert parse_currency(value) == expected


@pytest.mark.parametrize("value,expected", [
    ("2024-01-15", "2024-01-15T00:00:00"),
    ("01/15/2024", "2024-01-15T00:00:00"),
    ("Jan 5, 2024", "2024-01-05T00:00:00"),
    ("not a date", None),
    ("", None),
    (20240115, None),
])
def test_parse_date(value, expected):
    assert parse_date(value) == expected


def test_email_and_phone():
    assert normalize_email("  Sales@Acme.COM ") == "sales@acme.com"
    assert normalize_email("not-an-email") is None
    assert clean_phone("+880 1711-000000") == "+8801711000000"
    assert clean_phone("(017) 11 000") == "01711000"
    assert clean_phone("n/a") is None


def test_quantity():
    assert parse_quantity("12 pcs") == 12
    assert parse_quantity("1,500") == 1500
    assert parse_quantity("none") is None


def test_generate_id_keeps_small_integers_and_hashes_the_rest():
    assert generate_id(17) == 17
    assert generate_id("42") == 42
    assert generate_id(7.0) == 7
    hashed = generate_id("SUP-001")
    assert hashed == stable_hash("SUP-001")
    assert 0 <= hashed <= INT32_MAX
    assert generate_id(2 ** 40) == stable_hash(str(2 ** 40))
    assert generate_id("") is None


def test_stable_hash_is_deterministic():
    assert stable_hash("Acme Medical") == stable_hash("Acme Medical")
    assert stable_hash("Acme Medical") != stable_hash("Beta Supplies")


@pytest.mark.parametrize("column,kind", [
    ("product_id", "key"),
    ("supplier_id", "id"),
    ("order_date", "date"),
    ("product_received_date", "date"),
    ("total_amount", "currency"),
    ("unit_cost", "currency"),
    ("net_capital", "currency"),
    ("email", "email"),
    ("phone", "phone"),
    ("quantity_ordered", "quantity"),
    ("supplier_name", "text"),
    ("business_id", "text"),
])
def test_column_kind(column, kind):
    assert column_kind(column) == kind


def test_coerce_value_by_column():
    assert coerce_value("selling_price", "4,500") == 4500.0
    assert coerce_value("product_id", "  A1 ") == "A1"
    assert coerce_value("product_id", "x" * 150) == "x" * 100
    assert coerce_value("supplier_name", "  Acme ") == "Acme"
    assert coerce_value("supplier_name", "   ") is None
    assert coerce_value("status", 3) == 3
