"""Service wiring.

One place that knows how the components fit together. The HTTP app, the
CLI, and the evaluation runner all call build_services(); tests call it
too, passing stub LLMs and in-memory backends for the pieces that would
otherwise reach the network.
"""

import logging
from dataclasses import dataclass

from core.orchestrator import AgentOrchestrator
from core.system_state import ServiceHealthTable
from llm import build_client
from llm.base import LLMClient
from logstore.engine import IndexedLogStore
from retrieval.base import RetrievalBackend
from retrieval.chroma_store import ChromaRunbookStore
from retrieval.retriever import ContextRetriever
from settings import Settings
from tools.health_check import HealthCheckTool
from tools.log_search import LogSearchTool
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a running responder holds on to.

    Attributes:
        store: Shared log store (reseeded through the scenarios API).
        health: Shared service health table (flipped by the chaos API).
        backend: Retrieval backend the retriever queries.
        tools: Registry with healthCheck and searchLogs.
        orchestrator: The agent, wired to all of the above.
    """

    store: IndexedLogStore
    health: ServiceHealthTable
    backend: RetrievalBackend
    tools: ToolRegistry
    orchestrator: AgentOrchestrator


def build_services(
    settings: Settings,
    llm: LLMClient | None = None,
    backend: RetrievalBackend | None = None,
    store: IndexedLogStore | None = None,
    health: ServiceHealthTable | None = None,
) -> Services:
    """Wire a complete responder.

    Args:
        settings: Process configuration.
        llm: Model client. None builds the configured provider's client,
            which raises KeyError if its API key is missing.
        backend: Retrieval backend. None opens the persistent Chroma
            collection from settings.
        store: Log store. None creates one seeded with
            settings.initial_scenario.
        health: Health table. None creates an empty (all healthy) one.
    """
    if store is None:
        store = IndexedLogStore(initial_scenario=settings.initial_scenario)
    if health is None:
        health = ServiceHealthTable()
    if backend is None:
        backend = ChromaRunbookStore.persistent(settings.chroma_path, settings.chroma_collection)
    if llm is None:
        llm = build_client(settings.provider, settings.model)

    tools = ToolRegistry([HealthCheckTool(health), LogSearchTool(store)])
    orchestrator = AgentOrchestrator(
        llm=llm,
        retriever=ContextRetriever(backend, policy=settings.filter_policy),
        tools=tools,
    )
    logger.info(
        "Responder wired: provider=%s model=%s policy=%s tools=%d",
        settings.provider,
        settings.model,
        settings.filter_policy.value,
        len(tools),
    )
    return Services(store=store, health=health, backend=backend, tools=tools, orchestrator=orchestrator)
