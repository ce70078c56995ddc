"""OpenRouter LLM client.

OpenRouter is a unified proxy that serves models from Anthropic, Google,
Cerebras, and others through one OpenAI-compatible API and one API key.
Switching models is just changing the model string.

Required environment variable:
    OPENROUTER_API_KEY: Your OpenRouter API key. Add to .env and never commit.
"""

from llm.openai_compat import OpenAICompatibleClient


class OpenRouterClient(OpenAICompatibleClient):
    """LLMClient implementation backed by OpenRouter.

    Example usage:
        llm = OpenRouterClient("anthropic/claude-sonnet-4-6")
        orchestrator = AgentOrchestrator(llm=llm, retriever=..., tools=...)
    """

    base_url = "https://openrouter.ai/api/v1"
    api_key_env = "OPENROUTER_API_KEY"
