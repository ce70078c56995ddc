"""Retrieval backend contract.

The orchestrator never talks to a vector store directly. It goes through
ContextRetriever, which in turn depends only on the RetrievalBackend
protocol below. ChromaRunbookStore is the production implementation; tests
pass in small in-memory fakes that satisfy the same protocol.
"""

from enum import Enum
from typing import Protocol

from schemas.documents import RetrievedDocument


class FilterPolicy(str, Enum):
    """When the retriever restricts documents to the requesting service.

    Values:
        MANDATORY: Always filter when the request names a service. The
            strictMetadataFiltering flag can only widen, never relax, this.
        OPTIONAL: Filter only when the config sets strictMetadataFiltering.
            Useful to measure cross-service pollution in evaluation runs.
    """

    MANDATORY = "mandatory"
    OPTIONAL = "optional"


class RetrievalBackend(Protocol):
    """Anything that can run a similarity search over runbook chunks."""

    def similarity_search(
        self,
        query: str,
        top_k: int,
        min_score: float | None = None,
        metadata_filter: dict[str, str] | None = None,
    ) -> list[RetrievedDocument]:
        """Return up to top_k documents most similar to query.

        Args:
            query: Free-text similarity query.
            top_k: Maximum number of documents.
            min_score: Similarity floor on a 0.0-1.0 scale, or None.
            metadata_filter: Exact-match metadata constraints, or None.

        Raises:
            Exception: Backend failures propagate to the caller unchanged.
        """
        ...


def normalize_service_key(name: str) -> str:
    """Canonical service key: trimmed, lower-case, spaces as hyphens.

    "Payment Service " -> "payment-service". Shared by retrieval filtering,
    the health table, and runbook ingestion so the three always agree.
    """
    return name.strip().lower().replace(" ", "-")
