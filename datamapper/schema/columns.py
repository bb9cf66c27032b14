"""Value kinds of target columns, derived from column names."""

from datamapper.schema.catalog import BUSINESS_ID

# Last name token that marks a money column (total_amount, unit_cost, net_capital ...)
MONEY_SUFFIXES = frozenset((
    "price", "amount", "cost", "total", "expense", "capital", "roi",
    "invested", "returned", "paid",
))

# Columns holding string keys rather than generated integers
STRING_KEY_COLUMNS = frozenset(("product_id",))


def column_kind(column: str) -> str:
    """
    Coercion applied to values headed for `column`.

    One of: key, id, date, currency, email, phone, quantity, text.
    """
    tokens = column.split("_")
    if column == BUSINESS_ID:
        return "text"
    if column in STRING_KEY_COLUMNS:
        return "key"
    if tokens[-1] == "id":
        return "id"
    if "date" in tokens:
        return "date"
    if tokens[-1] in MONEY_SUFFIXES:
        return "currency"
    if column == "email":
        return "email"
    if column == "phone":
        return "phone"
    if "quantity" in tokens:
        return "quantity"
    return "text"
