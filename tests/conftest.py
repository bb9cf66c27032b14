import json

import pytest

from datamapper.analysis.field_analyzer import FieldAnalyzer
from datamapper.config import MigrationConfig
from datamapper.llms.llm import CompletionClient
from datamapper.storage.memory import InMemoryDocumentStore, InMemoryTargetStore

MODELS = ("test/model-a", "test/model-b")


class ScriptedClient(CompletionClient):
    """Completion client replaying scripted responses per model.

    A scripted item that is an exception instance is raised instead of returned.
    """

    def __init__(self, script):
        self.script = {model: list(items) for model, items in script.items()}
        self.calls = []

    def complete(self, model, messages, temperature):
        self.calls.append(model)
        items = self.script.get(model)
        if not items:
            raise RuntimeError(f"no scripted response for {model}")
        item = items.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, dict):
            return json.dumps(item)
        return item


@pytest.fixture
def migration_config():
    return MigrationConfig(models=MODELS, max_attempts=2, retry_delay=1.0, batch_size=100)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def inventory_docs():
    return [
        {"_id": 1, "Item ID": "A1", "Item name": "Digital Thermometer", "Type": "Diagnostics",
         "Brand": "Omron", "Price": "1,299.50 ৳", "Cost": "900", "Stock": "3", "Status": "Active"},
        {"_id": 2, "Item ID": "A2", "Item name": "BP Monitor", "Type": "Diagnostics",
         "Brand": "Omron", "Price": "4,500", "Cost": "3,200", "Stock": "2", "Status": "Active"},
    ]


@pytest.fixture
def vendor_docs():
    return [
        {"_id": 1, "Vendor": "Acme Medical", "Contact": "Rahim Uddin", "Address": "Dhaka",
         "Email": "Sales@AcmeMedical.com", "Website": "acme.example"},
        {"_id": 2, "Vendor": "Beta Supplies", "Contact": "Karim", "Address": "Chittagong",
         "Email": "info@beta.example", "Website": "beta.example"},
    ]


@pytest.fixture
def document_store(inventory_docs, vendor_docs):
    return InMemoryDocumentStore({
        "acme_inventory": inventory_docs,
        "acme_vendors": vendor_docs,
        "other_inventory": inventory_docs[:1],
    })


@pytest.fixture
def target_store():
    return InMemoryTargetStore()


@pytest.fixture
def analyze():
    """Analyze documents as if they were one collection."""
    analyzer = FieldAnalyzer(sample_size=5)

    def _analyze(collection_id, docs):
        return analyzer.analyze_documents(collection_id, docs)

    return _analyze


@pytest.fixture
def make_client():
    return ScriptedClient
