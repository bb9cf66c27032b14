"""Prompt construction for LLM-based schema classification."""

import json
from typing import Any, Dict, List

from datamapper.analysis.model import CollectionAnalysis, FieldDescriptor
from datamapper.analysis.patterns import INTERNAL_FIELDS
from datamapper.schema.catalog import TABLE_SPECS, get_catalog_for_prompt

SYSTEM_MESSAGE = (
    "You map business spreadsheets onto a fixed relational schema. "
    "Respond with a single valid JSON object and nothing else: no prose, "
    "no markdown, no code fences."
)

CSV_PATTERNS = """\
- Inventory sheets ("Item ID", "Item name", "Type", "Price", "Stock", "Status", "Notes")
  usually map to product (product_id, product_name, category_id, price/selling_price, status, description).
- Vendor sheets ("Vendor", "Vendor type", "Contact", "Address", "Website", "Notes")
  usually map to supplier (supplier_name, contact_person, address).
- Purchase order sheets ("Order", "Status", "Order date", "Arrive by", "Cost", "Point of contact")
  usually map to purchase_order (purchase_order_id, order_date, delivery_date, status, total_amount, notes).
- Sales order sheets ("Order", "Product", "Status", "Order date", "Price", "Sales platform")
  usually map to sales_order (sales_order_id, order_date, status, total_amount, customer_id).
- Money columns map to total_amount on order tables and to price/selling_price on product.
- "Arrive by" / "Delivery date" map to delivery_date."""

RULES = """\
1. Map only to the columns listed above. Never invent a column.
2. Columns such as cost_price, profit_margin, profit_amount, total_revenue or
   stock_quantity do not exist.
3. business_id is added automatically. Never map anything to it.
4. If a field fits no listed column, report it under unmapped_fields.
5. A collection may feed more than one table."""

OUTPUT_FORMAT = """\
{
  "tables": [
    {
      "table_name": "<table from the schema>",
      "confidence": 0.0,
      "reasoning": "<short explanation>",
      "field_mappings": [
        {"source_field": "<field as given>", "target_field": "<column>", "confidence": 0.0}
      ],
      "relationships": [
        {"related_table": "<table>", "relationship_type": "many-to-one", "key": "<column>"}
      ]
    }
  ],
  "unmapped_fields": [
    {"field_name": "<field as given>", "reason": "<why>"}
  ]
}"""


def describe_field(field: FieldDescriptor) -> str:
    """One prompt line per field: name, type, semantic tag, examples, finance flag."""
    line = f"- {field.name} ({field.inferred_type})"
    if field.is_categorized:
        line += f" [{field.semantic_category}:{field.semantic_subtype}]"
    line += f": examples [{', '.join(field.sample_values)}]"
    if field.is_finance_related:
        line += " [FINANCE]"
    return line


def clean_sample(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in INTERNAL_FIELDS}


def build_mapping_prompt(analysis: CollectionAnalysis, sample_records: int = 3) -> str:
    """Build the user prompt for one collection."""
    schema_listing = "\n".join(
        f"{table['name']}: {', '.join(table['columns'])}"
        for table in get_catalog_for_prompt()
    )
    descriptions = "\n".join(f"{spec.table_name}: {spec.description}" for spec in TABLE_SPECS)
    fields = "\n".join(describe_field(f) for f in analysis.fields)

    count = max(1, min(sample_records, 3))
    samples = "\n\n".join(
        f"Sample {i + 1}:\n{json.dumps(clean_sample(doc), indent=2, default=str, ensure_ascii=False)}"
        for i, doc in enumerate(analysis.sample_documents[:count])
    )

    return f"""You are normalizing business data for small and medium businesses.
The data below was imported from spreadsheets and has no fixed schema. Decide
which target table(s) it belongs to and map each field to a target column.

Common spreadsheet patterns:
{CSV_PATTERNS}

## Allowed tables and columns
{schema_listing}

## Rules
{RULES}

## Table descriptions
{descriptions}

## Collection
Name: {analysis.collection_id}
Documents: {analysis.document_count}

## Fields
{fields}

## Sample records
{samples}

## Output format (strict JSON)
{OUTPUT_FORMAT}
"""


def build_messages(analysis: CollectionAnalysis, sample_records: int = 3) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_MESSAGE},
        {"role": "user", "content": build_mapping_prompt(analysis, sample_records)},
    ]
