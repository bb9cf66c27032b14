from datamapper.analysis.field_analyzer import FieldAnalyzer, infer_data_type
from datamapper.analysis.model import CollectionAnalysis, FieldDescriptor

__all__ = ["CollectionAnalysis", "FieldAnalyzer", "FieldDescriptor", "infer_data_type"]
