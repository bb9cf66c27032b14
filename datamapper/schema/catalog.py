"""
Target Catalog Definition

Defines the fixed relational schema that all business documents are mapped to.
The column lists here are the whitelist: a mapping may only target a column
that appears in its table's list.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

BUSINESS_ID = "business_id"


@dataclass(frozen=True)
class TableSpec:
    """Definition of one target table"""

    table_name: str
    columns: Tuple[str, ...]
    description: str
    primary_key: Optional[str] = None
    auto_increment: bool = True  # surrogate key assigned by the store
    natural_key: Optional[str] = None  # business-meaningful identity column
    required_fields: Tuple[str, ...] = ()
    dedup_fields: Tuple[str, ...] = ()
    contact_enhanced: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for LLM prompt"""
        return {
            "name": self.table_name,
            "description": self.description,
            "columns": [c for c in self.columns if c != BUSINESS_ID],
        }

    @property
    def is_entity(self) -> bool:
        return self.natural_key is not None


TABLE_SPECS: List[TableSpec] = [
    TableSpec(
        table_name="product_category",
        columns=("business_id", "category_id", "category_name", "description"),
        description="Defines high-level product groupings (e.g., Electronics, Groceries).",
        primary_key="category_id",
        natural_key="category_name",
        required_fields=("category_name",),
        dedup_fields=("category_name",),
    ),
    TableSpec(
        table_name="product_brand",
        columns=("business_id", "brand_id", "brand_name", "description", "unit_price"),
        description="Represents product brands (e.g., Nestle, Unilever). Has unit_price for brand-level pricing.",
        primary_key="brand_id",
        natural_key="brand_name",
        required_fields=("brand_name",),
        dedup_fields=("brand_name",),
    ),
    TableSpec(
        table_name="supplier",
        columns=(
            "business_id", "supplier_id", "supplier_name", "contact_person",
            "email", "phone", "address",
        ),
        description="Vendor providing products.",
        primary_key="supplier_id",
        natural_key="supplier_name",
        required_fields=("supplier_name",),
        dedup_fields=("supplier_name", "email"),
        contact_enhanced=True,
    ),
    TableSpec(
        table_name="customer",
        columns=(
            "business_id", "customer_id", "customer_name", "email", "phone",
            "billing_address", "shipping_address", "customer_type",
        ),
        description="Buyer or client of the business.",
        primary_key="customer_id",
        natural_key="customer_name",
        required_fields=("customer_name",),
        dedup_fields=("customer_name", "email", "phone"),
    ),
    TableSpec(
        table_name="investor",
        columns=(
            "business_id", "investor_id", "investor_name", "contact_person",
            "email", "phone", "address", "initial_investment_date",
            "investment_terms", "status",
        ),
        description="Party investing in the company.",
        primary_key="investor_id",
        natural_key="investor_name",
        required_fields=("investor_name",),
        dedup_fields=("investor_name", "email"),
        contact_enhanced=True,
    ),
    TableSpec(
        table_name="investment",
        columns=(
            "business_id", "investment_id", "investor_id", "investment_amount",
            "investment_date",
        ),
        description="Tracks monetary contributions from investors.",
        primary_key="investment_id",
        required_fields=("investor_id",),
        dedup_fields=("investor_id", "investment_date", "investment_amount"),
    ),
    TableSpec(
        table_name="investors_capital",
        columns=(
            "business_id", "capital_id", "investor_id", "calculation_date",
            "current_capital", "total_invested", "total_returned", "net_capital",
            "current_roi", "profit_share_paid", "last_profit_calculation_date",
            "notes",
        ),
        description="Periodic financial record of investor capital and returns.",
        primary_key="capital_id",
        required_fields=("investor_id",),
    ),
    TableSpec(
        table_name="product",
        columns=(
            "business_id", "product_id", "product_name", "description",
            "category_id", "brand_id", "supplier_id", "price", "selling_price",
            "status", "created_date", "expense", "stored_location",
        ),
        description=(
            "Specific item sold. Has 'price' (cost) and 'selling_price' (retail price), "
            "plus 'expense' for additional costs."
        ),
        primary_key="product_id",
        auto_increment=False,
        required_fields=("product_id", "product_name"),
        dedup_fields=("product_name", "brand_id", "supplier_id"),
    ),
    TableSpec(
        table_name="purchase_order",
        columns=(
            "business_id", "purchase_order_id", "supplier_id", "order_date",
            "delivery_date", "status", "total_amount", "notes",
        ),
        description="Records business purchases from suppliers.",
        primary_key="purchase_order_id",
        dedup_fields=("supplier_id", "order_date", "total_amount"),
    ),
    TableSpec(
        table_name="purchase_order_items",
        columns=(
            "business_id", "purchase_order_id", "product_brand_id",
            "quantity_ordered", "unit_cost", "line_total",
        ),
        description="Line items within a purchase order.",
        auto_increment=False,
        required_fields=("purchase_order_id",),
    ),
    TableSpec(
        table_name="sales_order",
        columns=(
            "business_id", "sales_order_id", "customer_id", "order_date",
            "status", "total_amount", "shipping_address", "product_received_date",
        ),
        description="Customer sales transactions.",
        primary_key="sales_order_id",
        dedup_fields=("customer_id", "order_date", "total_amount"),
    ),
    TableSpec(
        table_name="sales_order_items",
        columns=("business_id", "sales_order_id", "product_id", "line_total"),
        description="Line items sold within a sales order.",
        auto_increment=False,
        required_fields=("sales_order_id",),
    ),
]

TABLES_BY_NAME: Dict[str, TableSpec] = {spec.table_name: spec for spec in TABLE_SPECS}

# table name -> ordered list of allowed column names
TARGET_SCHEMA: Dict[str, Tuple[str, ...]] = {
    spec.table_name: spec.columns for spec in TABLE_SPECS
}

# foreign-key columns -> the table they point at
FOREIGN_KEYS: Dict[str, str] = {
    "supplier_id": "supplier",
    "customer_id": "customer",
    "product_id": "product",
    "category_id": "product_category",
    "brand_id": "product_brand",
    "product_brand_id": "product_brand",
    "investor_id": "investor",
    "purchase_order_id": "purchase_order",
    "sales_order_id": "sales_order",
}

GENERIC_TABLE = "product"


def get_table(table_name: str) -> Optional[TableSpec]:
    return TABLES_BY_NAME.get(table_name)


def is_valid_table(table_name: str) -> bool:
    return table_name in TARGET_SCHEMA


def is_valid_column(table_name: str, column: str) -> bool:
    return column in TARGET_SCHEMA.get(table_name, ())


def get_mappable_columns(table_name: str) -> List[str]:
    """Columns a source field may be mapped to (everything except business_id)."""
    return [c for c in TARGET_SCHEMA.get(table_name, ()) if c != BUSINESS_ID]


def get_catalog_for_prompt() -> List[dict]:
    """
    Get target tables formatted for LLM prompt

    Returns:
        List of dictionaries with table information
    """
    return [spec.to_dict() for spec in TABLE_SPECS]
