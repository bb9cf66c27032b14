"""
Table Detection Rules

Declarative rules the RuleEngine scores a collection against, plus the
per-table column lookups used when mapping individual fields. Loaded once at
import and never mutated.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from datamapper.schema.columns import column_kind


@dataclass(frozen=True)
class TableDetectionRule:
    table: str
    priority: int
    required_fields: Tuple[str, ...]
    optional_fields: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()


# Scoring weights
REQUIRED_PRESENT = 10
REQUIRED_MISSING = -5
OPTIONAL_PRESENT = 3
KEYWORD_IN_COLLECTION = 5
KEYWORD_IN_FIELDS = 2

TABLE_DETECTION_RULES: List[TableDetectionRule] = [
    TableDetectionRule(
        table="product",
        priority=10,
        required_fields=("name", "price"),
        optional_fields=("stock", "status", "type", "category"),
        keywords=("item", "product", "inventory", "stock", "sku"),
    ),
    TableDetectionRule(
        table="supplier",
        priority=9,
        required_fields=("name",),
        optional_fields=("contact", "address", "type", "vendor"),
        keywords=("vendor", "supplier", "provider"),
    ),
    TableDetectionRule(
        table="purchase_order",
        priority=8,
        required_fields=("order", "order_date"),
        optional_fields=("cost", "status", "supplier", "arrive_by"),
        keywords=("purchase", "po", "order", "buying"),
    ),
    TableDetectionRule(
        table="sales_order",
        priority=8,
        required_fields=("order", "order_date"),
        optional_fields=("price", "status", "customer", "product"),
        keywords=("sale", "sales", "selling", "order"),
    ),
    TableDetectionRule(
        table="customer",
        priority=7,
        required_fields=("name",),
        optional_fields=("email", "phone", "address"),
        keywords=("customer", "client", "buyer"),
    ),
    TableDetectionRule(
        table="investor",
        priority=6,
        required_fields=("name",),
        optional_fields=("amount", "date", "terms", "roi"),
        keywords=("investor", "investment", "capital", "partner"),
    ),
]

# semantic category -> subtype -> column, for the table that category feeds
CATEGORY_COLUMN_MAP: Dict[str, Dict[str, Dict[str, str]]] = {
    "product": {
        "inventory": {
            "id": "product_id",
            "name": "product_name",
            "type": "category_id",
            "brand": "brand_id",
            "price": "selling_price",
            "cost": "price",
            "status": "status",
            "notes": "description",
            "location": "stored_location",
        },
    },
    "supplier": {
        "vendor": {
            "name": "supplier_name",
            "contact": "contact_person",
            "address": "address",
        },
        "customer": {"email": "email", "phone": "phone"},
    },
    "purchase_order": {
        "purchase_order": {
            "order": "purchase_order_id",
            "status": "status",
            "order_date": "order_date",
            "arrive_by": "delivery_date",
            "cost": "total_amount",
            "notes": "notes",
        },
        "vendor": {"name": "supplier_id"},
    },
    "sales_order": {
        "sales_order": {
            "order": "sales_order_id",
            "product": "customer_id",
            "status": "status",
            "order_date": "order_date",
            "price": "total_amount",
            "contact": "customer_id",
            "received": "product_received_date",
        },
        "customer": {"name": "customer_id"},
    },
    "customer": {
        "customer": {
            "name": "customer_name",
            "email": "email",
            "phone": "phone",
            "address": "billing_address",
            "type": "customer_type",
        },
    },
    "investor": {
        "investor": {
            "name": "investor_name",
            "date": "initial_investment_date",
            "terms": "investment_terms",
        },
        "customer": {"email": "email", "phone": "phone"},
        "vendor": {"contact": "contact_person", "address": "address"},
    },
}

# Order tables receive money on total_amount rather than price
ORDER_TABLES = ("purchase_order", "sales_order")


def keyword_column_hint(keyword: str, table: str):
    """
    Heuristic column for a normalized field name containing `keyword`.

    Returns None when the keyword carries no hint for this table.
    """
    is_order = table in ORDER_TABLES
    hints = {
        "id": f"{table}_id",
        "name": f"{table}_name",
        "amount": "total_amount" if is_order else "price",
        "total": "total_amount",
        "cost": "price" if table == "product" else "total_amount",
        "price": "selling_price" if table == "product" else "total_amount",
        "date": "order_date",
        "status": "status",
        "description": "description",
        "notes": "notes" if table == "purchase_order" else "description",
        "remarks": "description",
    }
    return hints.get(keyword)


KEYWORD_ORDER: Tuple[str, ...] = (
    "id", "name", "amount", "total", "cost", "price", "date",
    "status", "description", "notes", "remarks",
)


_TRANSFORM_BY_KIND = {
    "date": "date_format",
    "currency": "currency_format",
    "id": "id_generation",
    "key": "id_generation",
}


def transform_kind_for(column: str) -> str:
    """Transformation the DocumentTransformer will apply for a target column."""
    return _TRANSFORM_BY_KIND.get(column_kind(column), "none")
