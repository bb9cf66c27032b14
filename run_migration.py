"""
Command-line runner: load spreadsheets and migrate a business.
Usage:
  python run_migration.py --business-id acme \
    --load inventory=data/acme_inventory.csv \
    --load vendors=data/acme_vendors.csv \
    --output results/acme_summary.json
"""
import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path

from datamapper.config import MigrationConfig, get_config
from datamapper.llms.llm import create_completion_client
from datamapper.migration.orchestrator import PipelineOrchestrator
from datamapper.storage.factory import get_document_store, get_target_store
from datamapper.utils.loading import load_csv_collection


def parse_load_arg(value: str):
    """'name=path' -> (name, Path)"""
    if "=" not in value:
        raise argparse.ArgumentTypeError(f"Expected NAME=PATH, got: {value}")
    name, path = value.split("=", 1)
    return name.strip(), Path(path.strip())


def main():
    parser = argparse.ArgumentParser(description="Migrate a business's spreadsheets into the unified schema.")
    parser.add_argument("--business-id", required=True, help="Business identifier (collection prefix)")
    parser.add_argument(
        "--load", action="append", default=[], type=parse_load_arg,
        help="Load a CSV into collection <business-id>_NAME before migrating (NAME=PATH, repeatable)",
    )
    parser.add_argument("--source-db", default=None, help="Source document store URL (default: SOURCE_DATABASE_URL)")
    parser.add_argument("--target-db", default=None, help="Target database URL (default: DATABASE_URL)")
    parser.add_argument("--rules-only", action="store_true", help="Skip the LLM and map with the rule engine")
    parser.add_argument("--batch-size", type=int, default=None, help="Records per write batch")
    parser.add_argument("--output", default=None, help="Write the run summary as JSON to this path")
    args = parser.parse_args()

    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    document_store = get_document_store(args.source_db)
    target_store = get_target_store(args.target_db)

    for name, path in args.load:
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        added = load_csv_collection(document_store, f"{args.business_id}_{name}", path)
        print(f"Loaded {added} rows from {path} into {args.business_id}_{name}")

    migration_config = MigrationConfig.from_app_config(config)
    if args.batch_size:
        migration_config = replace(migration_config, batch_size=args.batch_size)

    client = None
    if not args.rules_only and config.llm.api_key:
        client = create_completion_client()
    elif not args.rules_only:
        print("MAPPER_LLM_API_KEY not set; mapping with the rule engine only")

    orchestrator = PipelineOrchestrator(
        document_store=document_store,
        target_store=target_store,
        completion_client=client,
        migration_config=migration_config,
    )
    summary = orchestrator.migrate(args.business_id)

    print(
        f"Done. {summary.processed_collections}/{summary.total_collections} collections, "
        f"{summary.total_records_inserted}/{summary.total_records_processed} records "
        f"({summary.success_rate}%) in {summary.processing_time:.1f}s"
    )
    for result in summary.results:
        status = "ok" if result.success else f"FAILED: {result.error}"
        print(f" - {result.collection_id}: {result.records_inserted} inserted ({status})")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(exist_ok=True, parents=True)
        output_path.write_text(json.dumps(summary.to_dict(), indent=2, default=str))
        print(f"Summary written to {output_path}")


if __name__ == "__main__":
    main()
