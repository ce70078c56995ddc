"""LLMClient abstract base class.

Defines the interface every LLM provider must implement. The orchestrator,
the dataset generator, and the tests depend only on this interface, never
on a concrete provider. Swapping OpenRouter for Cerebras means choosing a
different subclass at wiring time; nothing else changes.
"""

from abc import ABC, abstractmethod

from schemas.chat import ChatMessage, ModelTurn, ToolSpec


class LLMClient(ABC):
    """Abstract base class for all LLM provider clients.

    Two entry points:

    - complete() for single-shot prompts (golden dataset generation).
    - chat() for the multi-turn, tool-calling conversation the orchestrator
      drives. It receives the whole transcript every time; clients keep no
      conversation state of their own.

    To add a new provider, subclass LLMClient and implement both methods.
    """

    @abstractmethod
    async def complete(self, system: str, user: str) -> str:
        """Send a prompt to the LLM and return the response as plain text.

        Args:
            system: The system prompt that sets the model's role.
            user: The user-turn content.

        Returns:
            The model's response as a plain string. Callers never see
            the raw SDK response object.
        """
        ...

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        tools: list[ToolSpec],
        temperature: float = 0.0,
    ) -> ModelTurn:
        """Run one model turn over a full transcript.

        Args:
            messages: Every message so far, system prompt first.
            tools: Tool definitions the model may call this turn.
            temperature: Sampling temperature.

        Returns:
            The model's turn: optional text plus zero or more tool calls.
            Tool calls are returned, never executed, by the client.
        """
        ...
