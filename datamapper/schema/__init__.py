"""Target catalog and relational models."""

from datamapper.schema.catalog import (
    BUSINESS_ID,
    FOREIGN_KEYS,
    GENERIC_TABLE,
    TABLE_SPECS,
    TARGET_SCHEMA,
    TableSpec,
    get_catalog_for_prompt,
    get_mappable_columns,
    get_table,
    is_valid_column,
    is_valid_table,
)

__all__ = [
    "BUSINESS_ID",
    "FOREIGN_KEYS",
    "GENERIC_TABLE",
    "TABLE_SPECS",
    "TARGET_SCHEMA",
    "TableSpec",
    "get_catalog_for_prompt",
    "get_mappable_columns",
    "get_table",
    "is_valid_column",
    "is_valid_table",
]
