"""Chat and tool-calling schemas.

Provider-neutral shapes for the conversation the orchestrator holds with
the model. LLM clients translate these to and from their SDK's wire format;
nothing outside llm/ ever sees an SDK object.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant", "tool"]


class ToolCall(BaseModel):
    """One tool invocation requested by the model.

    Attributes:
        id: Provider-assigned call id. Echoed back on the tool message so
            the model can pair the observation with its request.
        name: Tool name exactly as the model sent it. Not trusted; the
            tool registry resolves it against the closed ToolName set.
        arguments: Raw JSON argument string as produced by the model.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = "{}"


class ChatMessage(BaseModel):
    """A single transcript entry."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str | None, tool_calls: list[ToolCall] | None = None) -> "ChatMessage":
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls or ()))

    @classmethod
    def tool(cls, call_id: str, content: str) -> "ChatMessage":
        return cls(role="tool", content=content, tool_call_id=call_id)


class ModelTurn(BaseModel):
    """What the model produced in one turn.

    A turn may carry text, tool calls, or both. Blank text counts as no
    text (see has_text).
    """

    text: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    @property
    def requests_tools(self) -> bool:
        return bool(self.tool_calls)


class ToolSpec(BaseModel):
    """A tool definition advertised to the model.

    Attributes:
        name: Stable tool identifier (see tools.base.ToolName).
        description: What the tool does, written for the model.
        parameters: JSON schema of the tool's input object.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, Any]
