"""Rich live display: one panel following the agent loop in real time.

The display layer is fully decoupled from the orchestrator. It subscribes to
an asyncio.Queue of AgentEvents and renders them into a live terminal
layout. The orchestrator runs whether or not a display is attached; it just
puts events into the queue and never checks if anyone is reading.

Usage:
    event_queue = asyncio.Queue()
    display = LiveDisplay(request)

    with display.make_live() as live:
        analysis = asyncio.create_task(orchestrator.analyze(request, config, event_queue))
        consumer = asyncio.create_task(display.consume(event_queue, live))
        result = await analysis
        await event_queue.put(None)  # sentinel: tells consume() to stop
        await consumer
"""

import asyncio
from dataclasses import dataclass, field

from rich.console import Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from schemas.events import AgentEvent, EventStage
from schemas.incident import IncidentRequest

MAX_LINES = 12

_STAGE_STYLE = {
    EventStage.RETRIEVE:       ("dim",          "◇"),
    EventStage.BUILD_CONTEXT:  ("dim",          "◇"),
    EventStage.AWAIT_MODEL:    ("yellow",       "●"),
    EventStage.TOOL_REQUESTED: ("cyan",         "→"),
    EventStage.APPLY_TOOL:     ("cyan",         "←"),
    EventStage.TEXT_PRODUCED:  ("white",        "✎"),
    EventStage.INVALID:        ("magenta",      "↺"),
    EventStage.DONE:           ("bold green",   "✓"),
    EventStage.EXHAUSTED:      ("bold red",     "✗"),
    EventStage.FALLBACK:       ("bold red",     "✗"),
}


@dataclass
class _LoopState:
    """Mutable view state, updated by _apply() as events arrive."""
    status: str = "retrieving"    # retrieving | reasoning | done | failed
    turn: int = 0
    elapsed_ms: float = 0.0
    lines: list[str] = field(default_factory=list)


class LiveDisplay:
    """Manages the Rich live layout and subscribes to the event queue.

    Attributes:
        _request: The incident being analysed, shown in the panel title.
        _state: Current view state.
    """

    def __init__(self, request: IncidentRequest, max_turns: int = 5) -> None:
        self._request = request
        self._max_turns = max_turns
        self._state = _LoopState()

    def make_live(self) -> Live:
        """Return a Rich Live context manager ready to use with `with`."""
        return Live(self._render(), refresh_per_second=12, transient=False)

    async def consume(self, queue: asyncio.Queue, live: Live) -> None:
        """Read events from the queue and update the display until the None sentinel."""
        while True:
            event = await queue.get()
            if event is None:
                break
            self._apply(event)
            live.update(self._render())

    # ── Private ───────────────────────────────────────────────────────────────

    def _apply(self, event: AgentEvent) -> None:
        state = self._state
        state.elapsed_ms = event.timestamp_ms
        if event.turn is not None:
            state.turn = event.turn

        if event.stage == EventStage.AWAIT_MODEL:
            state.status = "reasoning"
        elif event.stage == EventStage.DONE:
            state.status = "done"
        elif event.stage in (EventStage.EXHAUSTED, EventStage.FALLBACK):
            state.status = "failed"

        style, icon = _STAGE_STYLE.get(event.stage, ("dim", "·"))
        prefix = f"t{event.turn} " if event.turn is not None else "   "
        state.lines.append(f"[dim]{prefix}[/dim][{style}]{icon} {escape(event.message)}[/{style}]")
        state.lines = state.lines[-MAX_LINES:]

    def _render(self) -> Panel:
        state = self._state
        border = {"done": "green", "failed": "red", "reasoning": "yellow"}.get(state.status, "dim")
        header = Text.from_markup(
            f"[dim][{state.elapsed_ms / 1000:.2f}s][/dim]  "
            f"turn [bold]{state.turn}[/bold]/{self._max_turns}  "
            f"[{border}]{state.status}[/{border}]"
        )
        body = [header] + [Text.from_markup(f"  {line}") for line in state.lines]
        return Panel(
            Group(*body),
            title=f"[bold]{self._request.service_name}[/bold]",
            subtitle=f"[dim]{escape(self._request.issue)}[/dim]",
            border_style=border,
            width=100,
        )
