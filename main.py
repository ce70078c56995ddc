"""Runbook Responder: HTTP API.

This file handles three concerns:

1. Analysis: POST /api/incident runs one grounded analysis and returns the
   AnalysisResponse; POST /api/analyze/stream does the same but streams
   agent events as NDJSON first.

2. Simulation: the chaos switch (POST /api/incident/simulate) flips a
   service's health, and POST /api/scenarios/{name} reseeds the log store,
   so a demo or an evaluation run can stage a fault before asking the agent.

3. Startup: wires the services once and ingests the runbooks into an empty
   Chroma collection.

Run locally:
    uv run uvicorn main:app --reload
"""

import asyncio
import json
import logging
import logging.handlers
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

load_dotenv()

from core.container import Services, build_services
from ingestion.runbooks import ingest_runbooks
from logstore.scenarios import resolve_scenario, scenario_names
from schemas.analysis import AnalysisResponse
from schemas.config import AgentConfig
from schemas.incident import IncidentRequest
from settings import Settings

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

settings = Settings.from_env()

_file_handler = logging.handlers.RotatingFileHandler(
    settings.log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
)
_file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

_root_logger = logging.getLogger()
_root_logger.setLevel(logging.INFO)
_root_logger.addHandler(_file_handler)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class AnalyzeRequest(IncidentRequest):
    """An IncidentRequest with an optional per-call AgentConfig."""

    config: AgentConfig | None = None

    def incident(self) -> IncidentRequest:
        return IncidentRequest(
            service_name=self.service_name,
            issue=self.issue,
            time_window=self.time_window,
        )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(services: Services | None = None, app_settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        services: Pre-wired services. Tests pass stubs here. None wires the
            real ones from settings at startup.
        app_settings: Configuration. Defaults to the module-level settings.
    """
    cfg = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(cfg)
            backend = app.state.services.backend
            if backend.count() == 0:
                ingest_runbooks(cfg.runbook_dir, backend)
        yield

    app = FastAPI(title="Runbook Responder", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.allowed_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def _services(request: Request) -> Services:
    services = request.app.state.services
    if services is None:
        raise HTTPException(status_code=503, detail="Responder is still starting up.")
    return services


def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/incident", response_model=AnalysisResponse)
    async def analyze_incident(body: AnalyzeRequest, request: Request):
        """Run one analysis and return the verdict (camelCase)."""
        services = _services(request)
        try:
            return await services.orchestrator.analyze(body.incident(), body.config)
        except Exception as exc:
            logger.error("Analysis failed for %s: %s", body.service_name, exc)
            raise HTTPException(status_code=502, detail=f"Analysis failed: {exc}") from exc

    @app.post("/api/analyze/stream")
    async def analyze_stream(body: AnalyzeRequest, request: Request):
        """Run one analysis and stream agent events as NDJSON, then the result."""
        services = _services(request)

        async def stream():
            eq: asyncio.Queue = asyncio.Queue()
            outcome: dict = {}

            async def run():
                try:
                    outcome["result"] = await services.orchestrator.analyze(
                        body.incident(), body.config, event_queue=eq,
                    )
                except Exception as exc:
                    logger.error("Streamed analysis failed for %s: %s", body.service_name, exc)
                    outcome["error"] = str(exc)
                finally:
                    await eq.put(None)

            task = asyncio.create_task(run())
            while True:
                event = await eq.get()
                if event is None:
                    break
                yield json.dumps({"type": "agent_event", **event.model_dump(mode="json")}) + "\n"
            await task

            if "result" in outcome:
                yield json.dumps({"type": "result", **outcome["result"].model_dump(by_alias=True)}) + "\n"
            else:
                yield json.dumps({"type": "error", "detail": outcome.get("error", "unknown error")}) + "\n"

        return StreamingResponse(stream(), media_type="application/x-ndjson")

    @app.post("/api/incident/simulate")
    def simulate(service: str, healthy: bool, request: Request):
        """Chaos switch: mark a service healthy or down for the health check tool."""
        services = _services(request)
        services.health.set(service, healthy)
        state = "UP" if healthy else "DOWN"
        return {"service": service, "healthy": healthy, "message": f"Service {service} is now {state}"}

    @app.post("/api/scenarios/{name}")
    def load_scenario(name: str, request: Request):
        """Reseed the log store. Unknown names are accepted and leave it empty."""
        services = _services(request)
        records = services.store.load_scenario(name)
        return {
            "scenario": services.store.scenario,
            "known": resolve_scenario(name) is not None,
            "records": records,
            "generation": services.store.generation,
        }

    @app.get("/api/scenarios")
    def list_scenarios(request: Request):
        services = _services(request)
        return {"scenarios": scenario_names(), "current": services.store.scenario}


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
