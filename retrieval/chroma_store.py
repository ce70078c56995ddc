"""ChromaDB runbook store.

The production RetrievalBackend. Runbook chunks are written to a persistent
ChromaDB collection by the ingestion pipeline and queried by similarity at
analysis time. Embedding and nearest-neighbour search are entirely
ChromaDB's job; this class only translates between its query/result shapes
and RetrievedDocument.

The collection uses cosine space, so a reported distance d maps to a
similarity of 1 - d, clamped to [0, 1]. That is the scale AgentConfig's
min_score floor is expressed on.
"""

import logging
from typing import Any

import chromadb

from schemas.documents import RetrievedDocument

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "runbooks"


class ChromaRunbookStore:
    """RetrievalBackend backed by a ChromaDB collection.

    Attributes:
        collection: The underlying chromadb Collection. Exposed so tests can
            inject an in-process fake with the same query/upsert/count
            surface.
    """

    def __init__(self, collection: Any) -> None:
        self.collection = collection

    @classmethod
    def persistent(cls, path: str, name: str = DEFAULT_COLLECTION) -> "ChromaRunbookStore":
        """Open (or create) a collection stored on disk at path."""
        client = chromadb.PersistentClient(path=path)
        collection = client.get_or_create_collection(name=name, metadata={"hnsw:space": "cosine"})
        logger.info("Opened Chroma collection '%s' at %s (%d documents).", name, path, collection.count())
        return cls(collection)

    @classmethod
    def in_memory(cls, name: str = DEFAULT_COLLECTION) -> "ChromaRunbookStore":
        """Open a throwaway collection that lives only for this process."""
        client = chromadb.EphemeralClient()
        collection = client.get_or_create_collection(name=name, metadata={"hnsw:space": "cosine"})
        return cls(collection)

    def add_documents(self, docs: list[RetrievedDocument]) -> int:
        """Upsert documents by id. Re-ingesting the same runbook overwrites in place.

        Raises:
            ValueError: If any document has no id.
        """
        if not docs:
            return 0
        missing = [d for d in docs if not d.id]
        if missing:
            raise ValueError(f"{len(missing)} document(s) have no id; ids are required for upsert.")

        self.collection.upsert(
            ids=[d.id for d in docs],
            documents=[d.text for d in docs],
            metadatas=[dict(d.metadata) for d in docs],
        )
        logger.info("Upserted %d runbook chunks.", len(docs))
        return len(docs)

    def count(self) -> int:
        return self.collection.count()

    def similarity_search(
        self,
        query: str,
        top_k: int,
        min_score: float | None = None,
        metadata_filter: dict[str, str] | None = None,
    ) -> list[RetrievedDocument]:
        """Query the collection and return documents best-first.

        Exceptions from ChromaDB propagate unchanged.
        """
        kwargs: dict[str, Any] = {
            "query_texts": [query],
            "n_results": top_k,
            "include": ["documents", "metadatas", "distances"],
        }
        if metadata_filter:
            kwargs["where"] = _where(metadata_filter)

        results = self.collection.query(**kwargs)

        ids = (results.get("ids") or [[]])[0]
        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0] or [{}] * len(documents)
        distances = (results.get("distances") or [[]])[0] or [None] * len(documents)

        docs: list[RetrievedDocument] = []
        for doc_id, text, meta, dist in zip(ids, documents, metadatas, distances):
            score = None if dist is None else max(0.0, min(1.0, 1.0 - dist))
            if min_score and score is not None and score < min_score:
                continue
            docs.append(
                RetrievedDocument(
                    id=doc_id,
                    text=text or "",
                    metadata={k: str(v) for k, v in (meta or {}).items()},
                    score=score,
                )
            )
        logger.debug("Chroma returned %d/%d documents for '%s'.", len(docs), len(ids), query)
        return docs


def _where(metadata_filter: dict[str, str]) -> dict[str, Any]:
    clauses = [{key: {"$eq": value}} for key, value in metadata_filter.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}
