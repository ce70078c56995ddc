"""Tool registry.

ToolRegistry is the orchestrator's roster of diagnostic tools. It owns
three jobs: holding exactly one tool per ToolName, advertising their specs
to the model, and turning a raw ToolCall from the model into a JSON
observation string.

The registry is the trust boundary for tool calls. The model may send an
unknown tool name or arguments that do not validate; neither is allowed
to raise out of invoke(). Both come back as an error observation so the
model can correct itself on its next turn.
"""

import json
import logging

from pydantic import ValidationError

from schemas.chat import ToolCall, ToolSpec
from tools.base import DiagnosticTool, ToolName

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Tracks registered tools and dispatches model tool calls.

    Attributes:
        _tools: Internal dict mapping ToolName to tool instance.
    """

    def __init__(self, tools: list[DiagnosticTool] | None = None) -> None:
        """Initialise the registry, optionally registering tools up front.

        Args:
            tools: Tools to register, in order. Duplicates raise.
        """
        self._tools: dict[ToolName, DiagnosticTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: DiagnosticTool) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered.
                This is always a wiring error, not a recoverable condition.
        """
        if tool.name in self._tools:
            raise ValueError(
                f"Tool '{tool.name.value}' is already registered. "
                "Each tool must have a unique name."
            )
        self._tools[tool.name] = tool

    def specs(self) -> list[ToolSpec]:
        """Return the tool definitions advertised to the model, in registration order."""
        return [tool.spec() for tool in self._tools.values()]

    def get(self, name: str) -> DiagnosticTool | None:
        """Look up a tool by its wire name. None when unknown."""
        try:
            return self._tools.get(ToolName(name))
        except ValueError:
            return None

    def invoke(self, call: ToolCall) -> str:
        """Run one model tool call and return the observation.

        Args:
            call: The call exactly as the model produced it.

        Returns:
            JSON string. The tool's camelCase response on success, or
            {"error": "..."} for unknown tools and invalid arguments.
        """
        tool = self.get(call.name)
        if tool is None:
            logger.warning("Model requested unknown tool '%s'.", call.name)
            return _error(f"Unknown tool: {call.name}")

        try:
            request = tool.request_model.model_validate_json(call.arguments or "{}")
        except ValidationError as exc:
            logger.warning("Invalid arguments for %s: %s", call.name, call.arguments)
            return _error(f"Invalid arguments for {call.name}: {_describe(exc)}")

        response = tool.run(request)
        return response.model_dump_json(by_alias=True)

    def __len__(self) -> int:
        return len(self._tools)


def _error(message: str) -> str:
    return json.dumps({"error": message})


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
