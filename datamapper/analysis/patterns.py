"""
Field Pattern Tables

Canonical alias table per business concept. Every source field name is
normalized and looked up here once; nothing else in the pipeline keeps its
own list of spellings.
"""

import re
from typing import Dict, Tuple

# concept -> subtype -> aliases (human spellings, normalized on lookup).
# Within a subtype, more specific spellings come first.
FIELD_ALIASES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "inventory": {
        "id": ("item id", "item_id", "product id", "product_id", "sku", "product no", "product no."),
        "name": ("item name", "item_name", "product name", "product_name", "item", "product"),
        "type": ("type", "category", "product type", "item type"),
        "brand": ("brand", "brand name", "brand/name", "make", "manufacturer"),
        "price": ("selling price", "mrp", "retail price", "price", "unit price", "price per unit"),
        "cost": ("cost", "cost price", "cost per unit", "purchase price", "buying price"),
        "stock": ("stock", "quantity", "qty", "inventory", "available", "units", "in stock"),
        "status": ("status", "state", "condition"),
        "notes": ("notes", "note", "remarks", "description", "comments"),
        "location": ("location", "stored location", "warehouse", "shelf"),
        "colour": ("colour", "color"),
        "size": ("size",),
    },
    "vendor": {
        "name": ("vendor", "vendor name", "supplier", "supplier name", "supplier_name"),
        "type": ("vendor type", "supplier type"),
        "contact": ("contact", "contact person", "contact_person", "contact name"),
        "address": ("address", "office address"),
        "website": ("website", "url", "web"),
        "reliability": ("reliability", "rating", "performance", "score"),
        "notes": ("notes", "note", "remarks", "comments"),
    },
    "purchase_order": {
        "priority": ("priority", "urgency", "importance"),
        "order": ("order", "order number", "order_number", "po number", "order id", "purchase order"),
        "category": ("category", "classification"),
        "status": ("status", "order status"),
        "order_date": ("order date", "order_date", "date", "created date", "purchase date"),
        "arrive_by": ("arrive by", "arrive_by", "delivery date", "expected date", "due date"),
        "cost": ("cost", "total", "amount", "total cost", "total_amount"),
        "contact": ("point of contact", "poc"),
        "notes": ("notes", "note", "remarks", "comments"),
    },
    "sales_order": {
        "priority": ("priority", "urgency", "importance"),
        "order": ("order", "order number", "order_number", "order id", "sales order", "invoice no"),
        "product": ("product", "item", "product name", "item name"),
        "status": ("status", "order status"),
        "order_date": ("order date", "order_date", "date", "sale date", "sales date"),
        "price": ("price", "total", "amount", "sale price", "total_amount"),
        "platform": ("sales platform", "platform", "channel", "marketplace"),
        "contact": ("point of contact", "poc", "customer"),
        "received": ("received date", "product received date", "delivered on"),
        "notes": ("notes", "note", "remarks", "comments"),
    },
    "customer": {
        "name": ("customer", "customer name", "customer_name", "client", "client name", "buyer"),
        "email": ("email", "e-mail", "customer email", "mail"),
        "phone": ("phone", "telephone", "mobile", "cell", "phone number"),
        "address": ("billing address", "shipping address", "delivery address"),
        "type": ("customer type", "client type", "segment"),
    },
    "investor": {
        "name": ("investor", "investor name", "partner", "shareholder"),
        "amount": ("investment", "investment amount", "invested", "capital", "contribution"),
        "date": ("investment date", "invested on", "initial investment date"),
        "terms": ("terms", "investment terms", "agreement"),
        "roi": ("roi", "return", "profit share", "returns"),
    },
}

# Substrings that mark a field as money-bearing
FINANCE_KEYWORDS: Tuple[str, ...] = (
    "amount", "price", "cost", "total", "revenue", "income", "expense", "profit",
    "payment", "cash", "money", "sale", "purchase", "investment", "capital",
    "balance", "debit", "credit", "transaction", "billing", "invoice", "roi",
)

# Identifiers added by the document store, never part of the business data
INTERNAL_FIELDS: Tuple[str, ...] = ("_id", "__v")

DATE_PATTERNS = (
    re.compile(r"^\d{4}-\d{1,2}-\d{1,2}"),        # YYYY-MM-DD
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$"),     # MM/DD/YYYY
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"),       # MM-DD-YYYY
    re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$"),     # DD.MM.YYYY
    re.compile(r"^\d{1,2}\s+[A-Za-z]{3,9},?\s+\d{4}$"),   # 5 Jan 2024
    re.compile(r"^[A-Za-z]{3,9}\s+\d{1,2},?\s+\d{4}$"),   # Jan 5, 2024
)

# Currency symbols and codes tolerated around numbers
CURRENCY_PATTERN = re.compile(r"[,$€£¥₹৳\s]|\b(?:bdt|tk|usd|eur|gbp|inr)\b", re.IGNORECASE)
NUMERIC_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?\(?[\d\s\-()]{7,}$")

_NON_WORD = re.compile(r"[^a-z0-9]+")


def normalize_field_name(field_name: str) -> str:
    """Lowercase, trim and collapse whitespace/punctuation runs to a single '_'."""
    return _NON_WORD.sub("_", str(field_name).lower().strip()).strip("_")


def _tokens_contain(haystack: Tuple[str, ...], needle: Tuple[str, ...]) -> bool:
    n = len(needle)
    if n == 0 or n > len(haystack):
        return False
    return any(haystack[i:i + n] == needle for i in range(len(haystack) - n + 1))


def lookup_semantic(field_name: str) -> Tuple[str, str]:
    """
    Classify a field name into a (category, subtype) pair.

    Matching is token-based on normalized names. An exact alias match beats an
    alias contained in the field name, which beats the field name contained in
    an alias. Within a tier the longest contained alias wins (shortest
    containing alias for the last tier). Ties keep the first entry in table
    order.

    Returns:
        ("unknown", "unknown") when nothing matches
    """
    normalized = normalize_field_name(field_name)
    if not normalized:
        return "unknown", "unknown"
    name_tokens = tuple(normalized.split("_"))

    best = None
    best_key = None
    for category, subtypes in FIELD_ALIASES.items():
        for subtype, aliases in subtypes.items():
            for alias in aliases:
                alias_norm = normalize_field_name(alias)
                alias_tokens = tuple(alias_norm.split("_"))
                if alias_norm == normalized:
                    key = (2, len(alias_norm))
                elif _tokens_contain(name_tokens, alias_tokens):
                    key = (1, len(alias_norm))
                elif _tokens_contain(alias_tokens, name_tokens):
                    key = (0, -len(alias_norm))
                else:
                    continue
                if best_key is None or key > best_key:
                    best_key = key
                    best = (category, subtype)
    return best if best else ("unknown", "unknown")


def alias_rank(field_name: str, category: str, subtype: str) -> int:
    """
    Position of the alias of (category, subtype) that equals the field name.

    Fields matched only by containment rank after every exact alias.
    """
    aliases = FIELD_ALIASES.get(category, {}).get(subtype, ())
    normalized = normalize_field_name(field_name)
    for position, alias in enumerate(aliases):
        if normalize_field_name(alias) == normalized:
            return position
    return len(aliases)


def is_finance_field(field_name: str) -> bool:
    lowered = str(field_name).lower()
    return any(keyword in lowered for keyword in FINANCE_KEYWORDS)


def is_date_like(value: str) -> bool:
    return any(pattern.match(value.strip()) for pattern in DATE_PATTERNS)


def is_numeric_like(value: str) -> bool:
    return bool(NUMERIC_PATTERN.match(CURRENCY_PATTERN.sub("", value)))


def is_email_like(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value.strip()))


def is_phone_like(value: str) -> bool:
    """
    Phone shape: 7+ digits written with separators or a leading '+'.

    Dates never qualify, and a bare digit run only does as a 0-prefixed
    local number of 10+ digits, so amounts like 1500000 stay numbers.
    """
    stripped = value.strip()
    if not PHONE_PATTERN.match(stripped) or is_date_like(stripped):
        return False
    digits = sum(ch.isdigit() for ch in stripped)
    if digits < 7:
        return False
    if stripped.isdigit():
        return stripped.startswith("0") and digits >= 10
    return True
