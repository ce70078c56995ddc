"""Context retriever.

Fetches the runbook chunks an analysis is grounded in. Sits between the
orchestrator and whatever RetrievalBackend is wired in, and owns the one
rule that matters most for answer quality: the model must never see a
runbook that belongs to a different service when filtering applies.

Filtering is enforced twice. The filter is handed to the backend, and every
returned document is re-checked here. The local check is the one the
isolation guarantee rests on.
"""

import logging

from retrieval.base import FilterPolicy, RetrievalBackend, normalize_service_key
from schemas.config import AgentConfig
from schemas.documents import SERVICE_NAME_KEY, RetrievedDocument
from schemas.incident import IncidentRequest

logger = logging.getLogger(__name__)


class ContextRetriever:
    """Similarity retrieval with optional score floor and service filtering.

    Attributes:
        backend: The RetrievalBackend queried on every call.
        policy: When filtering applies. MANDATORY filters whenever the
            request names a service; OPTIONAL only when the config asks.
    """

    def __init__(self, backend: RetrievalBackend, policy: FilterPolicy = FilterPolicy.MANDATORY) -> None:
        self.backend = backend
        self.policy = policy

    def retrieve(self, request: IncidentRequest, config: AgentConfig) -> list[RetrievedDocument]:
        """Return the grounding documents for one request.

        Args:
            request: The incident. issue is the similarity query;
                service_name drives filtering.
            config: top_k bounds the result; min_score > 0 is forwarded as a
                floor; strict_metadata_filtering forces filtering.

        Returns:
            Documents in backend order. May be empty.

        Raises:
            Exception: Any backend failure, unchanged.
        """
        service_key = normalize_service_key(request.service_name)
        metadata_filter = None
        if self.should_filter(request, config):
            metadata_filter = {SERVICE_NAME_KEY: service_key}

        min_score = config.min_score if config.min_score > 0 else None

        docs = self.backend.similarity_search(
            request.issue,
            top_k=config.top_k,
            min_score=min_score,
            metadata_filter=metadata_filter,
        )
        docs = docs[: config.top_k]

        if metadata_filter is not None:
            kept = [d for d in docs if d.metadata.get(SERVICE_NAME_KEY) == service_key]
            dropped = len(docs) - len(kept)
            if dropped:
                logger.warning(
                    "Dropped %d document(s) not belonging to '%s' after backend filtering.",
                    dropped,
                    service_key,
                )
            docs = kept

        logger.info("Retrieved %d runbook chunk(s) for %s.", len(docs), service_key or "<any>")
        return docs

    def should_filter(self, request: IncidentRequest, config: AgentConfig) -> bool:
        if config.strict_metadata_filtering:
            return True
        if self.policy is FilterPolicy.MANDATORY:
            return bool(normalize_service_key(request.service_name))
        return False
