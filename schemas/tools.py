"""Diagnostic tool input and output schemas.

The input models double as the tool definitions advertised to the model:
their JSON schema (camelCase) is what the model sees, and the raw argument
string the model sends back is validated against them before a tool runs.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from schemas.incident import DEFAULT_TIME_WINDOW

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class HealthCheckRequest(BaseModel):
    model_config = _CAMEL

    service_name: str = Field(description="Service to probe, e.g. 'payment-service'.")


class HealthCheckResponse(BaseModel):
    """Result of a health probe.

    Attributes:
        status: "UP" or "DOWN".
        logs: Canned narrative describing the probe result.
    """

    model_config = _CAMEL

    status: Literal["UP", "DOWN"]
    logs: str


class LogSearchRequest(BaseModel):
    model_config = _CAMEL

    query: str = Field(
        description=(
            "Lucene-style query, copied verbatim from the runbook alert, "
            "e.g. 'status_code:500 AND log.level:ERROR'."
        ),
    )
    time_window: str = Field(default=DEFAULT_TIME_WINDOW, description="Lookback window, e.g. '1h'.")


class LogSearchResponse(BaseModel):
    """Reshaped log store result handed back to the model.

    Attributes:
        match_count: Total records matching the query, not capped.
        sample_trace_ids: Trace ids of the top-ranked matches (at most 10).
        affected_pods: Distinct pods across the sampled matches.
        summary: One-line description, or "Query Error: ..." when the
            query could not be parsed.
    """

    model_config = _CAMEL

    match_count: int
    sample_trace_ids: list[str]
    affected_pods: list[str]
    summary: str
