from dataclasses import replace

import pytest

from datamapper.migration.exceptions import EmptyCollectionError, NoCollectionsFoundError
from datamapper.migration.orchestrator import PipelineOrchestrator
from datamapper.storage.memory import InMemoryDocumentStore


@pytest.fixture
def orchestrator(document_store, target_store, migration_config):
    return PipelineOrchestrator(
        document_store=document_store,
        target_store=target_store,
        completion_client=None,
        migration_config=migration_config,
        enable_tracing=False,
    )


def test_business_without_collections_raises(orchestrator):
    with pytest.raises(NoCollectionsFoundError) as exc_info:
        orchestrator.migrate("nobody")
    assert exc_info.value.business_id == "nobody"


def test_rule_based_run_writes_every_collection(orchestrator, target_store):
    summary = orchestrator.migrate("acme")

    assert summary.business_id == "acme"
    assert summary.total_collections == 2
    assert summary.processed_collections == 2
    assert summary.failed_collections == 0
    assert summary.total_records_processed == 7
    assert summary.total_records_inserted == 7
    assert summary.success_rate == 100.0

    by_id = {r.collection_id: r for r in summary.results}
    assert by_id["acme_inventory"].tables[0].table == "product"
    assert by_id["acme_inventory"].documents == 2
    assert by_id["acme_vendors"].tables[0].table == "supplier"

    assert len(target_store.tables["product"]) == 5
    suppliers = {r["supplier_name"]: r for r in target_store.tables["supplier"]}
    assert set(suppliers) == {"Acme Medical", "Beta Supplies"}
    assert suppliers["Acme Medical"]["email"] == "sales@acmemedical.com"
    assert all(r["business_id"] == "acme" for r in target_store.tables["supplier"])


def test_second_run_writes_no_duplicates(orchestrator, target_store):
    orchestrator.migrate("acme")
    summary = orchestrator.migrate("acme")

    assert summary.success_rate == 100.0
    assert len(target_store.tables["product"]) == 5
    assert len(target_store.tables["product_brand"]) == 1
    assert len(target_store.tables["product_category"]) == 1
    assert len(target_store.tables["supplier"]) == 2


def test_failing_collection_does_not_stop_the_run(target_store, migration_config, vendor_docs):
    store = InMemoryDocumentStore({"acme_empty": [], "acme_vendors": vendor_docs})
    orchestrator = PipelineOrchestrator(
        store, target_store, migration_config=migration_config, enable_tracing=False
    )

    summary = orchestrator.migrate("acme")

    assert summary.failed_collections == 1
    assert summary.processed_collections == 1
    failed = summary.results[0]
    assert failed.collection_id == "acme_empty"
    assert failed.success is False
    assert "acme_empty" in failed.error
    assert failed.traceback
    assert summary.results[1].success is True
    assert summary.to_dict()["results"][0]["error"] == failed.error


def test_collection_without_table_mapping_writes_nothing(target_store, migration_config):
    store = InMemoryDocumentStore({"acme_misc": [{"Foo": "1", "Bar": "2"}]})
    orchestrator = PipelineOrchestrator(
        store, target_store, migration_config=migration_config, enable_tracing=False
    )

    summary = orchestrator.migrate("acme")

    assert summary.results[0].success is True
    assert summary.results[0].tables == []
    assert summary.total_records_processed == 0
    assert summary.success_rate == 0.0
    assert target_store.tables == {}


def test_progress_events_are_streamed_and_buffered(orchestrator):
    events = []
    summary = orchestrator.migrate("acme", progress_callback=events.append)

    assert events[0]["level"] == "info"
    assert events[-1]["level"] == "success"
    assert any(e["level"] == "progress" for e in events)
    assert summary.logs == events


def test_log_buffer_keeps_only_recent_entries(document_store, target_store, migration_config):
    orchestrator = PipelineOrchestrator(
        document_store,
        target_store,
        migration_config=replace(migration_config, log_buffer_size=3),
        enable_tracing=False,
    )
    events = []
    summary = orchestrator.migrate("acme", progress_callback=events.append)

    assert len(summary.logs) == 3
    assert summary.logs == events[-3:]


def test_broken_progress_listener_is_ignored(orchestrator):
    def listener(event):
        raise ValueError("listener bug")

    summary = orchestrator.migrate("acme", progress_callback=listener)
    assert summary.failed_collections == 0


def test_preview_does_not_write(orchestrator, target_store):
    preview = orchestrator.preview("acme", "acme_vendors", limit=1)

    assert preview["analysis"]["collection_id"] == "acme_vendors"
    assert preview["mapping"]["method"] == "rule"
    assert [r["supplier_name"] for r in preview["records"]["supplier"]] == ["Acme Medical"]
    assert target_store.tables == {}


def test_inventory_preview_shows_the_units_migration_writes(orchestrator, target_store):
    previewed = orchestrator.preview("acme", "acme_inventory", limit=5)["records"]["product"]

    assert len(previewed) == 5
    assert all(not rows for rows in target_store.tables.values())

    orchestrator.migrate("acme")
    written = {u["product_id"]: u for u in target_store.tables["product"]}
    assert {u["product_id"] for u in previewed} == set(written)
    for unit in previewed:
        stored = written[unit["product_id"]]
        assert unit["product_name"] == stored["product_name"]
        assert unit["price"] == stored["price"]
        assert unit["selling_price"] == stored["selling_price"]


def test_analyze_empty_collection_raises(target_store, migration_config):
    orchestrator = PipelineOrchestrator(
        InMemoryDocumentStore({"acme_empty": []}), target_store,
        migration_config=migration_config, enable_tracing=False,
    )
    with pytest.raises(EmptyCollectionError):
        orchestrator.analyze("acme", "acme_empty")


def test_llm_mapping_drives_the_run(document_store, target_store, migration_config, make_client, fake_sleep):
    # Collections are processed in name order: acme_inventory, then acme_vendors
    client = make_client({"test/model-a": [
        {"tables": []},
        {"tables": [{"table_name": "supplier", "field_mappings": [
            {"source_field": "Vendor", "target_field": "supplier_name", "confidence": 0.9},
            {"source_field": "Website", "target_field": "website", "confidence": 0.9},
        ]}]},
    ]})
    orchestrator = PipelineOrchestrator(
        document_store, target_store, completion_client=client,
        migration_config=migration_config, enable_tracing=False, sleep=fake_sleep,
    )

    summary = orchestrator.migrate("acme")

    vendors = {r.collection_id: r for r in summary.results}["acme_vendors"]
    assert vendors.mapping["method"] == "llm"
    assert [u["field_name"] for u in vendors.mapping["unmapped_fields"]] == ["Website"]
    rows = target_store.tables["supplier"]
    assert {r["supplier_name"] for r in rows} == {"Acme Medical", "Beta Supplies"}
    assert all("website" not in r for r in rows)
