"""Cerebras LLM client.

Required environment variable:
    CEREBRAS_API_KEY: Your Cerebras API key. Add to .env and never commit.
"""

from llm.openai_compat import OpenAICompatibleClient


class CerebrasClient(OpenAICompatibleClient):
    """LLMClient implementation backed by the Cerebras Inference API."""

    base_url = "https://api.cerebras.ai/v1"
    api_key_env = "CEREBRAS_API_KEY"
