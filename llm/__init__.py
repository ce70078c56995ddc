"""LLM provider clients."""

from llm.base import LLMClient
from llm.cerebras import CerebrasClient
from llm.openrouter import OpenRouterClient

PROVIDERS: dict[str, type[LLMClient]] = {
    "openrouter": OpenRouterClient,
    "cerebras": CerebrasClient,
}


def build_client(provider: str, model: str) -> LLMClient:
    """Instantiate the client for a provider name ("openrouter" or "cerebras").

    Raises:
        ValueError: If the provider is not known.
        KeyError: If the provider's API key is missing.
    """
    try:
        cls = PROVIDERS[provider.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown LLM provider '{provider}'. Expected one of: {', '.join(PROVIDERS)}."
        ) from None
    return cls(model)


__all__ = ["LLMClient", "OpenRouterClient", "CerebrasClient", "PROVIDERS", "build_client"]
