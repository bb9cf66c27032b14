"""Spreadsheet loading into the source document store."""

import logging
from typing import Any, Dict, List

import pandas as pd

from datamapper.storage.base import DocumentStore

logger = logging.getLogger(__name__)


def dataframe_to_documents(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """One document per row; blank cells are dropped rather than stored as NaN."""
    df = df.astype(object).where(pd.notna(df), None)
    documents = []
    for row in df.to_dict(orient="records"):
        document = {
            str(k).strip(): v.strip() if isinstance(v, str) else v
            for k, v in row.items()
            if v is not None and not (isinstance(v, str) and not v.strip())
        }
        if document:
            documents.append(document)
    return documents


def read_spreadsheet(source) -> pd.DataFrame:
    """
    Read a CSV file (path or file-like) with every cell as text.

    Cells stay strings so identifiers like '00123' keep their leading zeros.
    """
    return pd.read_csv(source, dtype=str, skipinitialspace=True)


def load_csv_collection(document_store: DocumentStore, collection_id: str, source) -> int:
    """
    Load a CSV into a collection.

    Returns:
        Number of documents stored
    """
    df = read_spreadsheet(source)
    documents = dataframe_to_documents(df)
    added = document_store.insert_documents(collection_id, documents)
    logger.info(f"Loaded {added} rows ({len(df.columns)} columns) into {collection_id}")
    return added
