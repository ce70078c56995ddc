"""Agent event schema.

Events are emitted by the orchestrator at every state transition so the
display layer (and the streaming API) can follow an analysis in real time.
The orchestrator and its observers are decoupled: the loop
behaves identically whether or not anything is listening to these events.
"""

from enum import Enum

from pydantic import BaseModel


class EventStage(str, Enum):
    """The orchestrator states an event can report.

    Extends str so values serialize to plain strings ("retrieve", "done")
    rather than "EventStage.RETRIEVE" in logs and NDJSON.

    Values:
        RETRIEVE: Runbook retrieval finished (message carries the count).
        BUILD_CONTEXT: Retrieved documents were assembled into the prompt.
        AWAIT_MODEL: A model turn was sent and is being awaited.
        TOOL_REQUESTED: The model asked for one tool call.
        APPLY_TOOL: A tool call ran and its observation was recorded.
        TEXT_PRODUCED: The model answered with text and no tool calls.
        INVALID: The text did not contain a usable verdict; re-prompting.
        DONE: A valid verdict ended the loop.
        EXHAUSTED: The turn budget ran out without a valid verdict.
        FALLBACK: The run ended with a deterministic fallback response.
    """

    RETRIEVE = "retrieve"
    BUILD_CONTEXT = "build_context"
    AWAIT_MODEL = "await_model"
    TOOL_REQUESTED = "tool_requested"
    APPLY_TOOL = "apply_tool"
    TEXT_PRODUCED = "text_produced"
    INVALID = "invalid"
    DONE = "done"
    EXHAUSTED = "exhausted"
    FALLBACK = "fallback"


class AgentEvent(BaseModel):
    """A single orchestrator event.

    Events are append-only: observers never modify or delete them.

    Attributes:
        stage: Which transition this event reports.
        message: Human-readable detail (e.g. "searchLogs → 15 matches").
        turn: 1-based model turn the event belongs to. None for events
            outside the loop (retrieval, context building, fallback).
        timestamp_ms: Milliseconds since analyze() started. Used by the
            display to render elapsed time per line.
    """

    stage: EventStage
    message: str
    turn: int | None = None
    timestamp_ms: float
