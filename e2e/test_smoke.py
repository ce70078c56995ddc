from core.container import build_services
from logstore.engine import IndexedLogStore
from retrieval.base import FilterPolicy
from settings import Settings


class _NoModel:
    async def complete(self, system, user):
        return ""

    async def chat(self, messages, tools, temperature=0.0):
        raise AssertionError("not called")


class _NoDocs:
    def similarity_search(self, query, top_k, min_score=None, metadata_filter=None):
        return []


def test_build_services_smoke() -> None:
    services = build_services(Settings(), llm=_NoModel(), backend=_NoDocs())
    assert services.store.scenario == "healthy"
    assert [s.name for s in services.tools.specs()] == ["healthCheck", "searchLogs"]
    assert services.orchestrator.retriever.policy is FilterPolicy.MANDATORY


def test_injected_empty_store_is_kept() -> None:
    store = IndexedLogStore()
    services = build_services(Settings(), llm=_NoModel(), backend=_NoDocs(), store=store)
    assert services.store is store


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("RETRIEVAL_FILTER_POLICY", "Optional")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a, http://b")
    monkeypatch.setenv("LLM_PROVIDER", "cerebras")
    settings = Settings.from_env()
    assert settings.filter_policy is FilterPolicy.OPTIONAL
    assert settings.allowed_origins == ("http://a", "http://b")
    assert settings.provider == "cerebras"
