"""Per-run agent configuration.

AgentConfig exists so retrieval precision and recall can be A/B tested
without touching code: the same request can be analysed under several
configurations and the graded outputs compared side by side.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AgentConfig(BaseModel):
    """Retrieval and generation parameters for one analysis run.

    Frozen: the orchestrator reads it for the whole run and nothing is
    allowed to change it half way through.

    Attributes:
        top_k: Number of runbook chunks to retrieve. Defaults to 2.
        min_score: Similarity floor on a 0.0-1.0 scale. 0.0 disables the
            floor entirely; anything above is forwarded to the backend.
        temperature: Sampling temperature for the model (0.0 is
            deterministic). Defaults to 0.0.
        strict_metadata_filtering: Restrict retrieval to documents whose
            service_name matches the request. Under the mandatory filter
            policy the retriever filters regardless of this flag.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    top_k: int = Field(default=2, ge=1)
    min_score: float = Field(default=0.0, ge=0.0, le=1.0)
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    strict_metadata_filtering: bool = False

    @classmethod
    def defaults(cls) -> "AgentConfig":
        """Return the documented default configuration (2, 0.0, 0.0, False)."""
        return cls()
