"""Runbook document schema.

A RetrievedDocument is one alert-sized chunk of a runbook. The ingestion
pipeline produces them (with an id), the retrieval backend stores and
returns them (with a score), and the orchestrator reads them for exactly
one request before they are discarded.
"""

from pydantic import BaseModel, ConfigDict, Field

SERVICE_NAME_KEY = "service_name"


class RetrievedDocument(BaseModel):
    """A single grounding document.

    Attributes:
        text: The chunk text, including its "## Alert: ..." header.
        metadata: String metadata assigned at ingestion time. Always
            carries "service_name", the key filtering and citations rely on.
        id: Deterministic chunk id ("<service>_alert_<n>"). None when the
            backend does not report ids.
        score: Similarity on a 0.0-1.0 scale as reported by the backend.
            None when the backend does not report scores.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    metadata: dict[str, str] = Field(default_factory=dict)
    id: str | None = None
    score: float | None = None

    @property
    def service_name(self) -> str | None:
        return self.metadata.get(SERVICE_NAME_KEY)
