"""
Product Hierarchy Builder

Turns inventory rows into category and brand records plus one product row
per unit of stock. Categories and brands are reused by name within a business
and unit ids are derived from the source row, so re-running a collection
writes no duplicates.

Row fields are read through the shared alias table: each source field name is
resolved once to an inventory subtype (name, id, type, brand, stock, cost,
price, ...) and fields of other concepts are ignored.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from datamapper.analysis.patterns import INTERNAL_FIELDS, alias_rank, lookup_semantic
from datamapper.migration.exceptions import HierarchyPersistenceError
from datamapper.migration.outcomes import RecordError
from datamapper.storage.base import StoreError, TargetStore
from datamapper.transform.coercion import is_blank, parse_currency, parse_quantity

logger = logging.getLogger(__name__)

INVENTORY = "inventory"
DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_STATUS = "Active"

# Parts joined into a name for rows that carry none
NAME_PARTS = ("brand", "colour", "size")

# (substring of the collection suffix, category)
COLLECTION_CATEGORY_RULES = (
    (("book",), "Books"),
    (("stethoscope", "bp machine", "instrument"), "Medical Equipment"),
    (("dress",), "Medical Apparel"),
    (("main",), "General Merchandise"),
)


@lru_cache(maxsize=4096)
def inventory_field(field_name: str) -> Optional[Tuple[str, int]]:
    """(subtype, alias rank) of an inventory field, None for fields of other concepts."""
    category, subtype = lookup_semantic(field_name)
    if category != INVENTORY:
        return None
    return subtype, alias_rank(field_name, category, subtype)


def inventory_values(doc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Subtype -> value of the row's best field for it.

    When several fields share a subtype the one matching the more specific
    alias wins ("Selling Price" over "Price"), then document order.
    """
    best: Dict[str, Tuple[int, Any]] = {}
    for key, value in doc.items():
        if key in INTERNAL_FIELDS or is_blank(value):
            continue
        resolved = inventory_field(str(key))
        if resolved is None:
            continue
        subtype, rank = resolved
        if subtype not in best or rank < best[subtype][0]:
            best[subtype] = (rank, value.strip() if isinstance(value, str) else value)
    return {subtype: value for subtype, (_, value) in best.items()}


def category_from_collection(collection_id: str) -> Optional[str]:
    parts = collection_id.split("_")
    if len(parts) < 2:
        return None
    suffix = parts[-1].replace("-", " ").strip()
    if not suffix:
        return None
    lowered = suffix.lower()
    for needles, category in COLLECTION_CATEGORY_RULES:
        if any(needle in lowered for needle in needles):
            return category
    return suffix


def unit_product_id(business_id: str, source_id: Any, item_name: str, brand_name: str, unit_number: int) -> str:
    basis = f"{business_id}|{source_id}|{item_name}|{brand_name}|unit_{unit_number}"
    return f"PROD_{hashlib.sha1(basis.encode('utf-8')).hexdigest()[:16]}"


@dataclass
class InventoryItem:
    """One source row, before expansion into units"""

    source_id: Any
    item_name: str
    category_name: str
    brand_name: str
    stock: int
    cost: Optional[float] = None
    selling_price: Optional[float] = None
    status: str = DEFAULT_STATUS
    notes: Optional[str] = None
    stored_location: Optional[str] = None


@dataclass
class HierarchyResult:
    categories_created: int = 0
    categories_reused: int = 0
    brands_created: int = 0
    brands_reused: int = 0
    units_generated: int = 0
    units_inserted: int = 0
    skipped_rows: int = 0
    errors: List[RecordError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "categories_created": self.categories_created,
            "categories_reused": self.categories_reused,
            "brands_created": self.brands_created,
            "brands_reused": self.brands_reused,
            "units_generated": self.units_generated,
            "units_inserted": self.units_inserted,
            "skipped_rows": self.skipped_rows,
            "errors": [e.to_dict() for e in self.errors],
        }


class ProductHierarchyBuilder:
    """Analyze -> reconcile categories -> reconcile brands -> expand units -> persist."""

    def __init__(self, target_store: TargetStore, business_id: str, batch_size: int = 100):
        self.store = target_store
        self.business_id = business_id
        self.batch_size = batch_size


    def extract_item(self, doc: Dict[str, Any], collection_id: str) -> Optional[InventoryItem]:
        """Read one inventory row; None when it names no product."""
        values = inventory_values(doc)
        item_id = values.get("id")

        item_name = values.get("name")
        if item_name is None:
            parts = [str(values[part]) for part in NAME_PARTS if part in values]
            if parts:
                item_name = " - ".join(parts)
            elif item_id is not None:
                item_name = f"Product {item_id}"
        if item_name is None:
            return None

        category = values.get("type") or category_from_collection(collection_id) or DEFAULT_CATEGORY
        brand = values.get("brand") or category

        stock = parse_quantity(values.get("stock"))
        if stock is None:
            stock = 1

        notes = values.get("notes")
        location = values.get("location")
        return InventoryItem(
            source_id=item_id if item_id is not None else doc.get("_id"),
            item_name=str(item_name),
            category_name=str(category),
            brand_name=str(brand),
            stock=stock,
            cost=parse_currency(values.get("cost")),
            selling_price=parse_currency(values.get("price")),
            status=str(values.get("status") or DEFAULT_STATUS),
            notes=str(notes) if notes is not None else None,
            stored_location=str(location) if location is not None else None,
        )

    def extract_items(
        self, collection_id: str, documents: List[Dict[str, Any]]
    ) -> Tuple[List[InventoryItem], int]:
        """Returns (items, number of rows without product fields)."""
        items: List[InventoryItem] = []
        skipped = 0
        for doc in documents:
            item = self.extract_item(doc, collection_id)
            if item is None:
                skipped += 1
                logger.warning(f"Skipping document without product fields in {collection_id}")
                continue
            items.append(item)
        return items, skipped

    def _existing_ids(self, table: str, name_column: str, key_column: str, names: List[str]) -> Dict[str, Any]:
        if not names:
            return {}
        rows = self.store.select(
            table, filters={"business_id": self.business_id}, in_filters={name_column: names}
        )
        ids = {}
        for row in rows:
            ids.setdefault(row[name_column], row[key_column])
        return ids

    def _reconcile(
        self,
        table: str,
        name_column: str,
        key_column: str,
        names: List[str],
        extra: Dict[str, Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Map each name to its id, inserting only names the business lacks.

        Returns:
            {"ids": name -> id, "created": count, "reused": count}

        Raises:
            HierarchyPersistenceError: If new rows cannot be inserted
        """
        ids = self._existing_ids(table, name_column, key_column, names)
        reused = len(ids)

        new_rows = [
            dict({"business_id": self.business_id, name_column: name}, **extra.get(name, {}))
            for name in names if name not in ids
        ]
        if new_rows:
            try:
                inserted = self.store.insert(table, new_rows)
            except StoreError as e:
                raise HierarchyPersistenceError(f"Failed to create {table} rows: {e}") from e
            for row in inserted:
                ids[row[name_column]] = row[key_column]
            logger.info(f"Created {len(inserted)} {table} rows, reused {reused}")

        return {"ids": ids, "created": len(new_rows), "reused": reused}

    def expand_units(
        self,
        items: List[InventoryItem],
        category_ids: Dict[str, Any],
        brand_ids: Dict[str, Any],
        created_date: str,
        require_ids: bool = True,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        One product row per unit of stock.

        Items whose category or brand has no id are skipped unless
        `require_ids` is False, in which case the ids stay None.

        Returns:
            (units, number of skipped items)
        """
        units: List[Dict[str, Any]] = []
        skipped = 0
        for item in items:
            category_id = category_ids.get(item.category_name)
            brand_id = brand_ids.get(item.brand_name)
            if require_ids and (category_id is None or brand_id is None):
                skipped += 1
                logger.error(
                    f"Missing brand_id or category_id for item {item.item_name} "
                    f"(category={item.category_name}, brand={item.brand_name})"
                )
                continue
            for unit_number in range(1, item.stock + 1):
                units.append({
                    "business_id": self.business_id,
                    "product_id": unit_product_id(
                        self.business_id, item.source_id, item.item_name, item.brand_name, unit_number
                    ),
                    "product_name": item.item_name,
                    "description": item.notes or f"{item.item_name} - Unit {unit_number}",
                    "category_id": category_id,
                    "brand_id": brand_id,
                    "supplier_id": None,
                    "price": item.cost,
                    "selling_price": item.selling_price,
                    "status": item.status,
                    "created_date": created_date,
                    "expense": None,
                    "stored_location": item.stored_location,
                })
        return units, skipped

    def preview(self, collection_id: str, documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Product rows `build` would write for these documents, without writing.

        Categories and brands the business already has keep their ids; ones
        that would be created show None.
        """
        items, _ = self.extract_items(collection_id, documents)
        category_ids = self._existing_ids(
            "product_category", "category_name", "category_id",
            list(dict.fromkeys(i.category_name for i in items)),
        )
        brand_ids = self._existing_ids(
            "product_brand", "brand_name", "brand_id",
            list(dict.fromkeys(i.brand_name for i in items)),
        )
        created_date = datetime.now(timezone.utc).isoformat()
        units, _ = self.expand_units(items, category_ids, brand_ids, created_date, require_ids=False)
        return units

    def build(self, collection_id: str, documents: List[Dict[str, Any]]) -> HierarchyResult:
        """
        Build and persist the hierarchy for one inventory collection.

        Raises:
            HierarchyPersistenceError: If categories or brands cannot be written
        """
        result = HierarchyResult()

        # Analyze
        items, result.skipped_rows = self.extract_items(collection_id, documents)

        category_names = list(dict.fromkeys(i.category_name for i in items))
        brand_names = list(dict.fromkeys(i.brand_name for i in items))
        brand_prices = {}
        for item in items:
            if item.brand_name not in brand_prices and item.selling_price is not None:
                brand_prices[item.brand_name] = item.selling_price

        categories = self._reconcile(
            "product_category", "category_name", "category_id", category_names,
            {name: {"description": f"Category: {name}"} for name in category_names},
        )
        result.categories_created = categories["created"]
        result.categories_reused = categories["reused"]

        brands = self._reconcile(
            "product_brand", "brand_name", "brand_id", brand_names,
            {
                name: {"description": f"Brand: {name}", "unit_price": brand_prices.get(name)}
                for name in brand_names
            },
        )
        result.brands_created = brands["created"]
        result.brands_reused = brands["reused"]

        # Expand units
        created_date = datetime.now(timezone.utc).isoformat()
        units, unresolved = self.expand_units(items, categories["ids"], brands["ids"], created_date)
        result.skipped_rows += unresolved
        result.units_generated = len(units)
        logger.info(f"Expanded {len(items)} items into {len(units)} product units")

        # Persist
        for batch_index, start in enumerate(range(0, len(units), self.batch_size)):
            batch = units[start:start + self.batch_size]
            try:
                result.units_inserted += self.store.upsert("product", batch, conflict_key="product_id")
            except StoreError as e:
                logger.error(f"Product batch {batch_index + 1} failed: {e}")
                result.errors.append(RecordError(
                    table="product",
                    error=str(e),
                    error_type="BATCH_ERROR",
                    index=batch_index,
                ))
        return result
