"""Record transformation, validation and product hierarchy expansion."""

from datamapper.transform.document_transformer import DocumentTransformer
from datamapper.transform.product_hierarchy import HierarchyResult, ProductHierarchyBuilder
from datamapper.transform.validator import RecordValidator, ValidationReport

__all__ = [
    "DocumentTransformer",
    "HierarchyResult",
    "ProductHierarchyBuilder",
    "RecordValidator",
    "ValidationReport",
]
