"""Analysis output schemas.

Defines the verdict the model is asked to produce (ModelVerdict) and the
terminal contract returned to every caller (AnalysisResponse). The two are
kept apart: the model never gets to write citations. Those come
from the orchestrator's own retrieval bookkeeping and are attached when the
verdict is promoted to an AnalysisResponse.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

FALLBACK_FAILURE_TYPE = "AGENT_FAILURE"
FALLBACK_TEAM = "SRE-OnCall"
FALLBACK_QUERY = "N/A"
FALLBACK_REMEDIATION = ("Escalate to human operator.",)

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ModelVerdict(BaseModel):
    """The JSON object the model emits to end the ReAct loop.

    Only failure_type and root_cause_hypothesis are required: a verdict
    without them is not a diagnosis. Every other field falls back to an
    empty value so the promoted AnalysisResponse is always fully populated.
    Unknown keys (including any "citations" the model invents) are ignored.

    Attributes:
        failure_type: Name of the runbook alert the model matched
            (e.g. "Upstream Gateway Latency").
        root_cause_hypothesis: The model's best explanation of the incident.
        investigation_query: The exact log query the model ran, copied from
            the runbook alert section.
        evidence: Tool name → summary of what that tool returned.
        responsible_team: Team named by the runbook as owner.
        remediation_steps: Steps copied from the runbook, in order.
        requires_escalation: Whether a human must take over.
    """

    model_config = _CAMEL

    failure_type: str
    root_cause_hypothesis: str
    investigation_query: str = ""
    evidence: dict[str, Any] = Field(default_factory=dict)
    responsible_team: str = ""
    remediation_steps: list[str] = Field(default_factory=list)
    requires_escalation: bool = False

    @field_validator("failure_type", "root_cause_hypothesis")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class AnalysisResponse(BaseModel):
    """Final output of one AgentOrchestrator.analyze() call.

    This is the only object that crosses the orchestrator boundary. It is
    built exactly once per request: either from a validated ModelVerdict
    plus injected citations, or from fallback(), and is frozen afterwards.
    Serialized with camelCase keys (model_dump(by_alias=True)).

    Attributes:
        failure_type: Matched alert name, or "AGENT_FAILURE" for fallbacks.
        root_cause_hypothesis: Diagnosis, or the human-readable reason the
            agent could not produce one.
        investigation_query: Log query used as evidence ("N/A" on fallback).
        evidence: Tool name → result summary.
        responsible_team: Owning team ("SRE-OnCall" on fallback).
        remediation_steps: Ordered remediation steps.
        requires_escalation: Always True on fallback.
        citations: Distinct service_name values of the documents retrieved
            for this request. Never sourced from the model.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    failure_type: str
    root_cause_hypothesis: str
    investigation_query: str
    evidence: dict[str, Any]
    responsible_team: str
    remediation_steps: list[str]
    requires_escalation: bool
    citations: list[str]

    @classmethod
    def from_verdict(cls, verdict: ModelVerdict, citations: list[str]) -> "AnalysisResponse":
        """Promote a validated model verdict, attaching orchestrator citations."""
        return cls(**verdict.model_dump(), citations=list(citations))

    @classmethod
    def fallback(cls, reason: str) -> "AnalysisResponse":
        """Deterministic response for every path that has no usable verdict."""
        return cls(
            failure_type=FALLBACK_FAILURE_TYPE,
            root_cause_hypothesis=reason,
            investigation_query=FALLBACK_QUERY,
            evidence={},
            responsible_team=FALLBACK_TEAM,
            remediation_steps=list(FALLBACK_REMEDIATION),
            requires_escalation=True,
            citations=[],
        )

    @property
    def is_fallback(self) -> bool:
        return self.failure_type == FALLBACK_FAILURE_TYPE
