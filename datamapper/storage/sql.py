"""SQLAlchemy-backed document and target stores."""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import func, inspect
from sqlalchemy.exc import SQLAlchemyError

from datamapper.schema.database import session_scope
from datamapper.schema.models import (
    Customer,
    Investment,
    Investor,
    InvestorsCapital,
    Product,
    ProductBrand,
    ProductCategory,
    PurchaseOrder,
    PurchaseOrderItem,
    SalesOrder,
    SalesOrderItem,
    SourceDocument,
    Supplier,
)
from datamapper.storage.base import DocumentStore, Row, StoreError, TargetStore

logger = logging.getLogger(__name__)

MODELS = {
    "product_category": ProductCategory,
    "product_brand": ProductBrand,
    "supplier": Supplier,
    "customer": Customer,
    "investor": Investor,
    "investment": Investment,
    "investors_capital": InvestorsCapital,
    "product": Product,
    "purchase_order": PurchaseOrder,
    "purchase_order_items": PurchaseOrderItem,
    "sales_order": SalesOrder,
    "sales_order_items": SalesOrderItem,
}

# Row keys that exist only in the database, never in mapped records
INTERNAL_COLUMNS = ("line_id",)


def _model_for(table: str):
    model = MODELS.get(table)
    if model is None:
        raise StoreError(f"Unknown table: {table}")
    return model


def _to_row(instance) -> Row:
    row = {
        attr.key: getattr(instance, attr.key)
        for attr in inspect(instance).mapper.column_attrs
    }
    for column in INTERNAL_COLUMNS:
        row.pop(column, None)
    return row


def _filter_columns(model, row: Row) -> Row:
    columns = {attr.key for attr in inspect(model).column_attrs}
    return {k: v for k, v in row.items() if k in columns}


class SQLDocumentStore(DocumentStore):
    """Source documents kept as JSON payloads in one table."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _document(row: SourceDocument) -> Row:
        document = dict(row.payload or {})
        document["_id"] = row.id
        return document

    def list_collections(self, prefix: str = "") -> List[str]:
        with session_scope(self.session_factory, commit=False) as session:
            query = session.query(SourceDocument.collection_id).distinct()
            if prefix:
                query = query.filter(SourceDocument.collection_id.startswith(prefix, autoescape=True))
            return sorted(r[0] for r in query.all())

    def count(self, collection_id: str) -> int:
        with session_scope(self.session_factory, commit=False) as session:
            return (
                session.query(func.count(SourceDocument.id))
                .filter(SourceDocument.collection_id == collection_id)
                .scalar()
            ) or 0

    def sample(self, collection_id: str, size: int) -> List[Row]:
        with session_scope(self.session_factory, commit=False) as session:
            rows = (
                session.query(SourceDocument)
                .filter(SourceDocument.collection_id == collection_id)
                .order_by(SourceDocument.id)
                .limit(size)
                .all()
            )
            return [self._document(r) for r in rows]

    def scan(self, collection_id: str, batch_size: int = 500) -> Iterator[Row]:
        last_id = 0
        while True:
            with session_scope(self.session_factory, commit=False) as session:
                rows = (
                    session.query(SourceDocument)
                    .filter(SourceDocument.collection_id == collection_id)
                    .filter(SourceDocument.id > last_id)
                    .order_by(SourceDocument.id)
                    .limit(batch_size)
                    .all()
                )
                documents = [self._document(r) for r in rows]
            if not documents:
                return
            last_id = documents[-1]["_id"]
            yield from documents

    def insert_documents(self, collection_id: str, documents: Iterable[Row]) -> int:
        with session_scope(self.session_factory) as session:
            added = 0
            for document in documents:
                payload = {k: v for k, v in document.items() if k != "_id"}
                session.add(SourceDocument(collection_id=collection_id, payload=payload))
                added += 1
        logger.info(f"Stored {added} documents in collection {collection_id}")
        return added


class SQLTargetStore(TargetStore):
    """Unified tables through the ORM models."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def select(self, table, filters=None, in_filters=None) -> List[Row]:
        model = _model_for(table)
        with session_scope(self.session_factory, commit=False) as session:
            query = session.query(model)
            for column, value in (filters or {}).items():
                query = query.filter(getattr(model, column) == value)
            for column, values in (in_filters or {}).items():
                values = list(values)
                if not values:
                    return []
                query = query.filter(getattr(model, column).in_(values))
            return [_to_row(r) for r in query.all()]

    def insert(self, table: str, rows: List[Row]) -> List[Row]:
        model = _model_for(table)
        try:
            with session_scope(self.session_factory) as session:
                instances = [model(**_filter_columns(model, row)) for row in rows]
                session.add_all(instances)
                session.flush()
                return [_to_row(i) for i in instances]
        except SQLAlchemyError as e:
            raise StoreError(f"Insert into {table} failed: {e}") from e

    def update(self, table: str, values: Row, key: Row) -> int:
        model = _model_for(table)
        try:
            with session_scope(self.session_factory) as session:
                query = session.query(model)
                for column, value in key.items():
                    query = query.filter(getattr(model, column) == value)
                return query.update(_filter_columns(model, values), synchronize_session=False)
        except SQLAlchemyError as e:
            raise StoreError(f"Update of {table} failed: {e}") from e

    def upsert(self, table: str, rows: List[Row], conflict_key: str) -> int:
        model = _model_for(table)
        column = getattr(model, conflict_key)
        try:
            with session_scope(self.session_factory) as session:
                keys = [row.get(conflict_key) for row in rows]
                existing = {
                    getattr(instance, conflict_key): instance
                    for instance in session.query(model).filter(column.in_(keys)).all()
                }
                for row in rows:
                    values = _filter_columns(model, row)
                    instance = existing.get(row.get(conflict_key))
                    if instance is None:
                        instance = model(**values)
                        session.add(instance)
                        existing[row.get(conflict_key)] = instance
                    else:
                        for name, value in values.items():
                            setattr(instance, name, value)
                return len(rows)
        except SQLAlchemyError as e:
            raise StoreError(f"Upsert into {table} failed: {e}") from e
