"""Base diagnostic tool definition.

Defines the contract every tool the model may call must satisfy. Tools are
the agent's only window onto the live system: the model reads runbooks from
its context, but it learns whether a service is actually up, or whether the
logs actually match the runbook's query, only by calling a tool.

Tools are narrow:
- They are read-only. No tool changes system state.
- They take one validated pydantic request and return one pydantic response.
- They never raise for bad input from the model. Argument validation happens
  in ToolRegistry before run() is reached.

The set of tools is closed. ToolName enumerates every name the model may
use, and ToolRegistry is populated explicitly at construction time.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel

from schemas.chat import ToolSpec

RequestT = TypeVar("RequestT", bound=BaseModel)
ResponseT = TypeVar("ResponseT", bound=BaseModel)


class ToolName(str, Enum):
    """Stable tool identifiers, exactly as the model sees them."""

    HEALTH_CHECK = "healthCheck"
    SEARCH_LOGS = "searchLogs"


class DiagnosticTool(ABC, Generic[RequestT, ResponseT]):
    """Abstract base class for all diagnostic tools.

    Concrete tools declare their name, a model-facing description, and the
    pydantic request model. The request model's camelCase JSON schema is what
    gets advertised to the model, so the field descriptions on it matter.

    Example:
        class HealthCheckTool(DiagnosticTool[HealthCheckRequest, HealthCheckResponse]):
            name = ToolName.HEALTH_CHECK
            description = "..."
            request_model = HealthCheckRequest

            def run(self, request: HealthCheckRequest) -> HealthCheckResponse:
                ...
    """

    name: ToolName
    description: str
    request_model: type[RequestT]

    @abstractmethod
    def run(self, request: RequestT) -> ResponseT:
        """Execute the tool against a validated request.

        Args:
            request: Arguments already parsed and validated by the registry.

        Returns:
            The tool's typed response. The registry serializes it (camelCase)
            into the observation the model reads.
        """
        ...

    def spec(self) -> ToolSpec:
        """Return the tool definition advertised to the model."""
        return ToolSpec(
            name=self.name.value,
            description=self.description,
            parameters=self.request_model.model_json_schema(by_alias=True),
        )
