"""Conversation transcript for a single analysis.

Transcript is the ordered message history the orchestrator sends to the
model on every turn. It lives for exactly one AgentOrchestrator.analyze()
call and is discarded when the call returns. No disk, no network.

It is an immutable value: append() and with_turn() return a new Transcript
and leave the original untouched. The orchestrator threads the current
value through its loop, so at any point the exact conversation that
produced a given model turn is still available to log or inspect.
"""

from dataclasses import dataclass

from schemas.chat import ChatMessage, ModelTurn


@dataclass(frozen=True)
class Transcript:
    """Append-only, immutable message history.

    Attributes:
        messages: Every message so far, system prompt first.
    """

    messages: tuple[ChatMessage, ...] = ()

    @classmethod
    def start(cls, system: str, user: str) -> "Transcript":
        """Create a transcript holding the system prompt and the first user turn."""
        return cls((ChatMessage.system(system), ChatMessage.user(user)))

    def append(self, message: ChatMessage) -> "Transcript":
        return Transcript(self.messages + (message,))

    def with_turn(self, turn: ModelTurn) -> "Transcript":
        """Record the model's turn as an assistant message."""
        return self.append(ChatMessage.assistant(turn.text, turn.tool_calls))

    def to_list(self) -> list[ChatMessage]:
        return list(self.messages)

    @property
    def model_turns(self) -> int:
        return sum(1 for m in self.messages if m.role == "assistant")

    def __len__(self) -> int:
        return len(self.messages)
