"""Incident input schema.

Defines the request that enters the responder. This is the contract between
the entry points (HTTP, CLI, evaluation harness) and the orchestrator. The
orchestrator never mutates it; one request drives exactly one analysis.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_TIME_WINDOW = "1h"


class IncidentRequest(BaseModel):
    """A reported incident for a single service.

    Accepts both the camelCase wire names ("serviceName", "timeWindow")
    and the snake_case attribute names, so HTTP bodies and Python callers
    construct it the same way.

    Attributes:
        service_name: Service the incident is reported against
            (e.g. "payment-service"). Drives metadata filtering of the
            retrieved runbooks and is normalized before use.
        issue: Free-text symptom as a human would type it
            (e.g. "ERROR: ECONNREFUSED at /payment-gateway"). Used verbatim
            as the similarity query against the runbook store.
        time_window: Lookback window handed to the log search tool.
            Defaults to "1h" when the caller omits it.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    service_name: str
    issue: str
    time_window: str = Field(default=DEFAULT_TIME_WINDOW)
