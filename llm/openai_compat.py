"""Shared client for OpenAI-compatible chat completion APIs.

OpenRouter and Cerebras both speak the OpenAI chat completions protocol,
including function-style tool calling. This module holds the one
implementation of that protocol; the provider modules only choose a base
URL and the environment variable their key lives in.
"""

import logging
import os
from typing import Any

import openai
from dotenv import load_dotenv

from llm.base import LLMClient
from schemas.chat import ChatMessage, ModelTurn, ToolCall, ToolSpec

load_dotenv()

logger = logging.getLogger(__name__)


class OpenAICompatibleClient(LLMClient):
    """LLMClient for any endpoint that implements OpenAI chat completions.

    Subclasses set base_url and api_key_env.

    Attributes:
        model: Provider model identifier passed on every request.
        client: The underlying async OpenAI client.
    """

    base_url: str
    api_key_env: str

    def __init__(self, model: str):
        """Initialize the client for a specific model.

        Args:
            model: Provider model ID string. No default; always be explicit
                about which model is in use.

        Raises:
            KeyError: If the provider's API key is not set in the environment
                or .env file. Fails at construction rather than at the first
                API call.
        """
        self.model = model
        self.client = openai.AsyncOpenAI(
            base_url=self.base_url,
            api_key=os.environ[self.api_key_env],
        )

    async def complete(self, system: str, user: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        return response.choices[0].message.content or ""

    async def chat(
        self,
        messages: list[ChatMessage],
        tools: list[ToolSpec],
        temperature: float = 0.0,
    ) -> ModelTurn:
        """Send the transcript and translate the reply into a ModelTurn.

        Raises:
            openai.APIError: If the provider returns an error response.
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [to_wire_message(m) for m in messages],
            "temperature": temperature,
        }
        if tools:
            kwargs["tools"] = [to_wire_tool(t) for t in tools]

        response = await self.client.chat.completions.create(**kwargs)
        message = response.choices[0].message
        calls = [
            ToolCall(id=c.id, name=c.function.name, arguments=c.function.arguments or "{}")
            for c in (message.tool_calls or [])
        ]
        logger.debug("%s returned %d tool call(s).", self.model, len(calls))
        return ModelTurn(text=message.content or None, tool_calls=calls)


def to_wire_message(message: ChatMessage) -> dict[str, Any]:
    """Translate a ChatMessage into the OpenAI messages[] entry shape.

    An assistant entry needs content or tool_calls, so an empty assistant
    turn goes out with "" as its content.
    """
    content = message.content
    if message.role == "assistant" and content is None and not message.tool_calls:
        content = ""
    wire: dict[str, Any] = {"role": message.role, "content": content}
    if message.tool_calls:
        wire["tool_calls"] = [
            {
                "id": c.id,
                "type": "function",
                "function": {"name": c.name, "arguments": c.arguments},
            }
            for c in message.tool_calls
        ]
    if message.tool_call_id is not None:
        wire["tool_call_id"] = message.tool_call_id
    return wire


def to_wire_tool(spec: ToolSpec) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": spec.name,
            "description": spec.description,
            "parameters": spec.parameters,
        },
    }
