"""Migration Pipeline

Moves every collection of a business into the unified schema:

1. Analysis - sample the collection and describe its fields
2. Classification - map fields to target tables (LLM, rule fallback)
3. Transformation - one record per document and mapped table
4. Validation - required fields and deduplication
5. Persistence - batched upserts/inserts; inventory goes through the
   product hierarchy builder instead

Collections are processed one at a time. A failing collection is recorded
and the run moves on; only finding no collections at all aborts the run.
"""

import logging
import time
import traceback
from contextlib import nullcontext
from typing import Any, Callable, Dict, List, Optional

from datamapper.analysis.field_analyzer import FieldAnalyzer
from datamapper.analysis.model import CollectionAnalysis
from datamapper.config import MigrationConfig, get_config
from datamapper.llms.llm import CompletionClient
from datamapper.mapping.classifier import SchemaClassifier
from datamapper.mapping.model import MappingResult, TableMapping
from datamapper.migration.batch_writer import BatchWriter
from datamapper.migration.exceptions import NoCollectionsFoundError
from datamapper.migration.outcomes import (
    CollectionOutcome,
    MigrationSummary,
    TableOutcome,
    compute_success_rate,
)
from datamapper.migration.progress import ProgressTracker
from datamapper.schema.catalog import TABLE_SPECS
from datamapper.storage.base import DocumentStore, TargetStore
from datamapper.transform.document_transformer import DocumentTransformer
from datamapper.transform.product_hierarchy import ProductHierarchyBuilder
from datamapper.transform.validator import RecordValidator
from datamapper.utils.mlflow import log_migration_metrics, mlflow_run, setup_mlflow_tracing

logger = logging.getLogger(__name__)

# Parents before children so foreign keys resolve
TABLE_ORDER = {spec.table_name: index for index, spec in enumerate(TABLE_SPECS)}


class PipelineOrchestrator:
    """Runs analysis, classification, transformation and persistence per collection."""

    def __init__(
        self,
        document_store: DocumentStore,
        target_store: TargetStore,
        completion_client: Optional[CompletionClient] = None,
        migration_config: Optional[MigrationConfig] = None,
        enable_tracing: bool = True,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            document_store: Source of schema-less documents
            target_store: Unified relational tables
            completion_client: LLM client; None uses the rule engine only
            migration_config: Run settings (default: built from AppConfig)
            enable_tracing: Whether to enable MLflow tracing (default: True)
            sleep: Replacement for time.sleep between classifier retries
        """
        self.enable_tracing = enable_tracing
        if enable_tracing:
            setup_mlflow_tracing(experiment_name="data_mapper_pipeline")

        self.document_store = document_store
        self.target_store = target_store
        self.config = migration_config or MigrationConfig.from_app_config(get_config())

        self.analyzer = FieldAnalyzer(sample_size=self.config.sample_size)
        self.classifier = SchemaClassifier(completion_client, self.config, sleep=sleep)
        self.validator = RecordValidator()
        self.writer = BatchWriter(target_store, batch_size=self.config.batch_size)

    def analyze(self, business_id: str, collection_id: str) -> CollectionAnalysis:
        """Analyze one collection of a business (no writes)."""
        logger.debug(f"Analyzing {collection_id} for business {business_id}")
        return self.analyzer.analyze_collection(self.document_store, collection_id)

    def classify(self, analysis: CollectionAnalysis) -> MappingResult:
        """Map an analyzed collection onto the target catalog (no writes)."""
        return self.classifier.classify(analysis)

    def preview(self, business_id: str, collection_id: str, limit: int = 5) -> Dict[str, Any]:
        """
        Dry run for one collection: analysis, mapping and the records the
        first `limit` documents would produce. Product rows are the expanded
        units the hierarchy builder would write.
        """
        analysis = self.analyze(business_id, collection_id)
        mapping = self.classify(analysis)
        transformer = DocumentTransformer(business_id)
        documents = analysis.sample_documents[:limit]

        records: Dict[str, List[Dict[str, Any]]] = {}
        for table_mapping in mapping.tables:
            if table_mapping.table_name == "product":
                builder = ProductHierarchyBuilder(self.target_store, business_id, batch_size=self.config.batch_size)
                records["product"] = builder.preview(collection_id, documents)
                continue
            transformed, _ = transformer.transform_documents(documents, table_mapping)
            records[table_mapping.table_name] = transformed

        return {
            "analysis": analysis.to_dict(),
            "mapping": mapping.to_dict(),
            "records": records,
        }

    def migrate(
        self,
        business_id: str,
        progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> MigrationSummary:
        """
        Migrate every collection named '<business_id>_*'.

        Raises:
            NoCollectionsFoundError: If the business has no collections
        """
        tracker = ProgressTracker(max_entries=self.config.log_buffer_size)
        if progress_callback is not None:
            tracker.subscribe(progress_callback)

        start = time.monotonic()
        collections = self.document_store.list_collections(prefix=f"{business_id}_")
        if not collections:
            tracker.log("error", f"No collections found for business {business_id}")
            raise NoCollectionsFoundError(business_id)

        tracker.log("info", f"Starting migration of {len(collections)} collections", business_id=business_id)

        run_context = mlflow_run(run_name=f"migrate-{business_id}") if self.enable_tracing else nullcontext()
        results: List[CollectionOutcome] = []
        with run_context:
            for position, collection_id in enumerate(collections, start=1):
                tracker.log("progress", f"Processing collection {position}/{len(collections)}: {collection_id}")
                try:
                    outcome = self.migrate_collection(business_id, collection_id, tracker)
                except Exception as e:
                    trace = traceback.format_exc()
                    tracker.log("error", f"Collection {collection_id} failed: {e}")
                    logger.debug(trace)
                    outcome = CollectionOutcome(
                        collection_id=collection_id,
                        success=False,
                        error=str(e),
                        traceback=trace,
                    )
                results.append(outcome)

            processed = sum(r.records_processed for r in results)
            inserted = sum(r.records_inserted for r in results)
            failed = sum(1 for r in results if not r.success)
            summary = MigrationSummary(
                business_id=business_id,
                total_collections=len(collections),
                processed_collections=len(collections) - failed,
                failed_collections=failed,
                total_records_processed=processed,
                total_records_inserted=inserted,
                success_rate=compute_success_rate(inserted, processed),
                processing_time=round(time.monotonic() - start, 3),
                results=results,
            )
            if self.enable_tracing:
                log_migration_metrics({
                    "total_collections": summary.total_collections,
                    "failed_collections": summary.failed_collections,
                    "records_processed": processed,
                    "records_inserted": inserted,
                    "success_rate": summary.success_rate,
                })

        tracker.log(
            "success",
            f"Migration finished: {summary.processed_collections}/{summary.total_collections} collections, "
            f"{inserted} records inserted ({summary.success_rate}%)",
        )
        summary.logs = tracker.entries()
        return summary

    def migrate_collection(
        self,
        business_id: str,
        collection_id: str,
        tracker: ProgressTracker,
    ) -> CollectionOutcome:
        """
        Migrate one collection.

        Raises:
            EmptyCollectionError: If the collection holds no documents
            HierarchyPersistenceError: If categories or brands cannot be written
        """
        analysis = self.analyze(business_id, collection_id)
        tracker.log("info", f"Analyzed {collection_id}: {len(analysis.fields)} fields, {analysis.document_count} documents")

        mapping = self.classify(analysis)
        tracker.log(
            "info",
            f"Mapped {collection_id} to {mapping.table_names or 'no tables'} ({mapping.method})",
            unmapped=[u.field_name for u in mapping.unmapped_fields],
        )

        outcome = CollectionOutcome(collection_id=collection_id, mapping=mapping.to_dict())
        if not mapping.tables:
            tracker.log("warning", f"No valid table mapping for {collection_id}, nothing to write")
            outcome.documents = analysis.document_count
            return outcome

        documents = list(self.document_store.scan(collection_id, batch_size=self.config.batch_size))
        outcome.documents = len(documents)

        for table_mapping in sorted(mapping.tables, key=lambda t: TABLE_ORDER.get(t.table_name, len(TABLE_ORDER))):
            if table_mapping.table_name == "product":
                table_outcome = self._build_hierarchy(business_id, collection_id, documents)
            else:
                table_outcome = self._migrate_table(business_id, table_mapping, documents)
            outcome.tables.append(table_outcome)
            tracker.log(
                "info",
                f"{collection_id} -> {table_outcome.table}: {table_outcome.inserted} inserted, "
                f"{table_outcome.updated} updated, {len(table_outcome.errors)} errors",
            )
        return outcome

    def _migrate_table(
        self,
        business_id: str,
        table_mapping: TableMapping,
        documents: List[Dict[str, Any]],
    ) -> TableOutcome:
        table = table_mapping.table_name
        transformer = DocumentTransformer(business_id)
        records, transform_errors = transformer.transform_documents(documents, table_mapping)
        report = self.validator.validate(table, records)
        outcome = self.writer.write(table, report.clean)

        outcome.transformed = len(records)
        outcome.clean = len(report.clean)
        outcome.invalid = report.invalid_count
        outcome.duplicates = report.duplicate_count
        outcome.errors = transform_errors + report.errors + outcome.errors
        return outcome

    def _build_hierarchy(
        self,
        business_id: str,
        collection_id: str,
        documents: List[Dict[str, Any]],
    ) -> TableOutcome:
        builder = ProductHierarchyBuilder(self.target_store, business_id, batch_size=self.config.batch_size)
        result = builder.build(collection_id, documents)
        details = result.to_dict()
        details.pop("errors")
        return TableOutcome(
            table="product",
            transformed=result.units_generated,
            clean=result.units_generated,
            inserted=result.units_inserted,
            invalid=result.skipped_rows,
            errors=list(result.errors),
            details=details,
        )
