"""Retrieval and ingestion tests.

Covers ContextRetriever's filtering rules, ChromaRunbookStore's translation
of Chroma query results, and runbook splitting. The Chroma collection is a
small in-process fake with the same query/upsert/count surface, so nothing
here downloads an embedding model.
"""

from pathlib import Path

import pytest

from ingestion.runbooks import ingest_runbooks, load_runbooks, split_runbook
from retrieval.base import FilterPolicy, normalize_service_key
from retrieval.chroma_store import ChromaRunbookStore
from retrieval.retriever import ContextRetriever
from schemas.config import AgentConfig
from schemas.documents import RetrievedDocument
from schemas.incident import IncidentRequest

RUNBOOK_DIR = Path(__file__).resolve().parent.parent / "runbooks"


# ── Stubs ─────────────────────────────────────────────────────────────────────

def doc(service: str, n: int = 0, score: float | None = None) -> RetrievedDocument:
    return RetrievedDocument(
        id=f"{service}_alert_{n}",
        text=f"## Alert: {service} alert {n}",
        metadata={"service_name": service},
        score=score,
    )


class RecordingBackend:
    """Returns a fixed list and records every call's arguments."""

    def __init__(self, docs: list[RetrievedDocument]):
        self.docs = docs
        self.calls: list[dict] = []

    def similarity_search(self, query, top_k, min_score=None, metadata_filter=None):
        self.calls.append({
            "query": query,
            "top_k": top_k,
            "min_score": min_score,
            "metadata_filter": metadata_filter,
        })
        return list(self.docs)


class ExplodingBackend:
    def similarity_search(self, query, top_k, min_score=None, metadata_filter=None):
        raise ConnectionError("vector store unreachable")


class FakeCollection:
    """Stands in for a chromadb Collection."""

    def __init__(self, result: dict | None = None):
        self.result = result or {"ids": [[]], "documents": [[]], "metadatas": [[]], "distances": [[]]}
        self.queries: list[dict] = []
        self.upserts: list[dict] = []

    def query(self, **kwargs):
        self.queries.append(kwargs)
        return self.result

    def upsert(self, **kwargs):
        self.upserts.append(kwargs)

    def count(self):
        return sum(len(u["ids"]) for u in self.upserts)


def request(service: str = "payment-service", issue: str = "ERROR: ECONNREFUSED") -> IncidentRequest:
    return IncidentRequest(service_name=service, issue=issue)


# ── ContextRetriever ──────────────────────────────────────────────────────────

class TestContextRetriever:
    def test_issue_is_the_similarity_query(self):
        backend = RecordingBackend([doc("payment-service")])
        ContextRetriever(backend).retrieve(request(issue="gateway is slow"), AgentConfig())
        assert backend.calls[0]["query"] == "gateway is slow"
        assert backend.calls[0]["top_k"] == 2

    def test_mandatory_policy_always_filters(self):
        backend = RecordingBackend([doc("payment-service")])
        ContextRetriever(backend, FilterPolicy.MANDATORY).retrieve(request(), AgentConfig())
        assert backend.calls[0]["metadata_filter"] == {"service_name": "payment-service"}

    def test_optional_policy_filters_only_when_strict(self):
        backend = RecordingBackend([doc("payment-service"), doc("inventory-service")])
        retriever = ContextRetriever(backend, FilterPolicy.OPTIONAL)

        loose = retriever.retrieve(request(), AgentConfig())
        assert backend.calls[0]["metadata_filter"] is None
        assert [d.service_name for d in loose] == ["payment-service", "inventory-service"]

        strict = retriever.retrieve(request(), AgentConfig(strict_metadata_filtering=True))
        assert backend.calls[1]["metadata_filter"] == {"service_name": "payment-service"}
        assert [d.service_name for d in strict] == ["payment-service"]

    def test_service_name_is_normalized_for_filtering(self):
        backend = RecordingBackend([doc("payment-service")])
        docs = ContextRetriever(backend).retrieve(request(service=" Payment Service"), AgentConfig())
        assert backend.calls[0]["metadata_filter"] == {"service_name": "payment-service"}
        assert len(docs) == 1

    def test_foreign_documents_are_dropped_locally(self, caplog):
        backend = RecordingBackend([doc("inventory-service"), doc("payment-service", 1)])
        docs = ContextRetriever(backend).retrieve(request(), AgentConfig())
        assert [d.id for d in docs] == ["payment-service_alert_1"]
        assert "Dropped 1 document(s)" in caplog.text

    def test_documents_without_service_metadata_are_dropped(self):
        orphan = RetrievedDocument(text="## Alert: orphan")
        backend = RecordingBackend([orphan, doc("payment-service")])
        docs = ContextRetriever(backend).retrieve(request(), AgentConfig())
        assert [d.service_name for d in docs] == ["payment-service"]

    def test_result_is_capped_at_top_k(self):
        backend = RecordingBackend([doc("payment-service", n) for n in range(5)])
        docs = ContextRetriever(backend).retrieve(request(), AgentConfig(top_k=3))
        assert [d.id for d in docs] == [f"payment-service_alert_{n}" for n in range(3)]

    def test_zero_min_score_is_not_forwarded(self):
        backend = RecordingBackend([])
        ContextRetriever(backend).retrieve(request(), AgentConfig(min_score=0.0))
        assert backend.calls[0]["min_score"] is None

    def test_positive_min_score_is_forwarded(self):
        backend = RecordingBackend([])
        ContextRetriever(backend).retrieve(request(), AgentConfig(min_score=0.35))
        assert backend.calls[0]["min_score"] == 0.35

    def test_empty_result_is_not_an_error(self):
        assert ContextRetriever(RecordingBackend([])).retrieve(request(), AgentConfig()) == []

    def test_backend_errors_propagate(self):
        with pytest.raises(ConnectionError):
            ContextRetriever(ExplodingBackend()).retrieve(request(), AgentConfig())

    def test_blank_service_is_unfiltered_under_mandatory_policy(self):
        backend = RecordingBackend([doc("inventory-service")])
        docs = ContextRetriever(backend).retrieve(request(service="  "), AgentConfig())
        assert backend.calls[0]["metadata_filter"] is None
        assert len(docs) == 1


def test_normalize_service_key():
    assert normalize_service_key("  Payment Service ") == "payment-service"
    assert normalize_service_key("inventory-service") == "inventory-service"


# ── ChromaRunbookStore ────────────────────────────────────────────────────────

class TestChromaRunbookStore:
    def test_query_shape_and_where_clause(self):
        collection = FakeCollection()
        ChromaRunbookStore(collection).similarity_search(
            "slow checkout", top_k=2, metadata_filter={"service_name": "payment-service"},
        )
        sent = collection.queries[0]
        assert sent["query_texts"] == ["slow checkout"]
        assert sent["n_results"] == 2
        assert sent["where"] == {"service_name": {"$eq": "payment-service"}}

    def test_multiple_filters_are_anded(self):
        collection = FakeCollection()
        ChromaRunbookStore(collection).similarity_search(
            "q", top_k=1, metadata_filter={"service_name": "payment-service", "alert": "Gateway Timeout"},
        )
        assert collection.queries[0]["where"] == {
            "$and": [
                {"service_name": {"$eq": "payment-service"}},
                {"alert": {"$eq": "Gateway Timeout"}},
            ]
        }

    def test_no_filter_sends_no_where(self):
        collection = FakeCollection()
        ChromaRunbookStore(collection).similarity_search("q", top_k=2)
        assert "where" not in collection.queries[0]

    def test_distances_become_similarity_scores(self):
        collection = FakeCollection({
            "ids": [["a", "b"]],
            "documents": [["first", "second"]],
            "metadatas": [[{"service_name": "payment-service"}, {"service_name": "payment-service"}]],
            "distances": [[0.25, 1.5]],
        })
        docs = ChromaRunbookStore(collection).similarity_search("q", top_k=2)
        assert [d.id for d in docs] == ["a", "b"]
        assert docs[0].score == pytest.approx(0.75)
        assert docs[1].score == 0.0
        assert docs[0].service_name == "payment-service"

    def test_min_score_floor(self):
        collection = FakeCollection({
            "ids": [["a", "b"]],
            "documents": [["first", "second"]],
            "metadatas": [[{}, {}]],
            "distances": [[0.1, 0.8]],
        })
        docs = ChromaRunbookStore(collection).similarity_search("q", top_k=2, min_score=0.5)
        assert [d.id for d in docs] == ["a"]

    def test_empty_result(self):
        assert ChromaRunbookStore(FakeCollection()).similarity_search("q", top_k=2) == []

    def test_add_documents_upserts_by_id(self):
        collection = FakeCollection()
        store = ChromaRunbookStore(collection)
        assert store.add_documents([doc("payment-service", 0), doc("payment-service", 1)]) == 2
        upsert = collection.upserts[0]
        assert upsert["ids"] == ["payment-service_alert_0", "payment-service_alert_1"]
        assert upsert["metadatas"][0] == {"service_name": "payment-service"}
        assert store.count() == 2

    def test_add_documents_requires_ids(self):
        with pytest.raises(ValueError, match="no id"):
            ChromaRunbookStore(FakeCollection()).add_documents([RetrievedDocument(text="x")])

    def test_add_nothing(self):
        collection = FakeCollection()
        assert ChromaRunbookStore(collection).add_documents([]) == 0
        assert collection.upserts == []


# ── Ingestion ─────────────────────────────────────────────────────────────────

RUNBOOK = """\
# Payment Service Runbook

---

## Alert: Elevated 5xx Error Rate
Query: status_code:500

---

## Alert: Gateway Timeout
Query: status_code:504
"""


class TestSplitRunbook:
    def test_ids_are_numbered_in_file_order(self):
        docs = split_runbook(RUNBOOK, "payment-service")
        assert [d.id for d in docs] == [
            "payment-service_alert_0",
            "payment-service_alert_1",
            "payment-service_alert_2",
        ]

    def test_every_chunk_carries_the_service(self):
        docs = split_runbook(RUNBOOK, "Payment Service")
        assert {d.service_name for d in docs} == {"payment-service"}

    def test_alert_header_is_recorded(self):
        docs = split_runbook(RUNBOOK, "payment-service")
        assert "alert" not in docs[0].metadata
        assert docs[1].metadata["alert"] == "Elevated 5xx Error Rate"
        assert docs[2].metadata["alert"] == "Gateway Timeout"

    def test_separators_are_not_part_of_the_text(self):
        for d in split_runbook(RUNBOOK, "payment-service"):
            assert "---" not in d.text
            assert d.text == d.text.strip()

    def test_empty_sections_are_skipped(self):
        docs = split_runbook("---\n\n---\n## Alert: Only\n---\n", "svc")
        assert len(docs) == 1
        assert docs[0].id == "svc_alert_0"


class TestLoadRunbooks:
    def test_bundled_runbooks(self):
        docs = load_runbooks(RUNBOOK_DIR)
        services = {d.service_name for d in docs}
        assert services == {"inventory-service", "payment-service"}
        alerts = {d.metadata.get("alert") for d in docs}
        assert {"Gateway Timeout", "Database Connection Timeout", "Cache Inconsistency"} <= alerts

    def test_file_name_is_the_service(self, tmp_path):
        (tmp_path / "search-service.md").write_text("## Alert: Slow\nbody\n", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        docs = load_runbooks(tmp_path)
        assert [d.id for d in docs] == ["search-service_alert_0"]

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_runbooks(tmp_path / "nope")

    def test_ingest_writes_into_sink(self):
        collection = FakeCollection()
        written = ingest_runbooks(RUNBOOK_DIR, ChromaRunbookStore(collection))
        assert written == len(load_runbooks(RUNBOOK_DIR))
        assert collection.count() == written

    def test_ingest_empty_directory(self, tmp_path):
        collection = FakeCollection()
        assert ingest_runbooks(tmp_path, ChromaRunbookStore(collection)) == 0
        assert collection.upserts == []
