"""Environment configuration.

Every tunable the entry points need, read once from the environment (and
.env via python-dotenv). API keys are not here: each LLM
client reads its own key at construction and fails fast if it is missing.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from retrieval.base import FilterPolicy

load_dotenv()

DEFAULT_MODEL = "anthropic/claude-sonnet-4-6"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration.

    Attributes:
        model: Model id passed to the LLM provider (RESPONDER_MODEL).
        provider: "openrouter" or "cerebras" (LLM_PROVIDER).
        runbook_dir: Directory of *.md runbooks to ingest (RUNBOOK_DIR).
        chroma_path: On-disk location of the Chroma collection (CHROMA_PATH).
        chroma_collection: Collection name (CHROMA_COLLECTION).
        filter_policy: Retrieval filter policy (RETRIEVAL_FILTER_POLICY).
        initial_scenario: Log scenario loaded at startup (INITIAL_SCENARIO).
        log_file: Rotating log file path (LOG_FILE).
        allowed_origins: CORS origins for the API (ALLOWED_ORIGINS, comma
            separated).
    """

    model: str = DEFAULT_MODEL
    provider: str = "openrouter"
    runbook_dir: str = "runbooks"
    chroma_path: str = ".chroma"
    chroma_collection: str = "runbooks"
    filter_policy: FilterPolicy = FilterPolicy.MANDATORY
    initial_scenario: str = "healthy"
    log_file: str = "runbook_responder.log"
    allowed_origins: tuple[str, ...] = ("http://localhost:3000",)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults.

        Raises:
            ValueError: If RETRIEVAL_FILTER_POLICY is not "mandatory" or "optional".
        """
        env = os.environ
        origins = env.get("ALLOWED_ORIGINS", ",".join(cls.allowed_origins))
        return cls(
            model=env.get("RESPONDER_MODEL", cls.model),
            provider=env.get("LLM_PROVIDER", cls.provider),
            runbook_dir=env.get("RUNBOOK_DIR", cls.runbook_dir),
            chroma_path=env.get("CHROMA_PATH", cls.chroma_path),
            chroma_collection=env.get("CHROMA_COLLECTION", cls.chroma_collection),
            filter_policy=FilterPolicy(env.get("RETRIEVAL_FILTER_POLICY", cls.filter_policy.value).lower()),
            initial_scenario=env.get("INITIAL_SCENARIO", cls.initial_scenario),
            log_file=env.get("LOG_FILE", cls.log_file),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
