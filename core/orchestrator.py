"""Agent orchestrator: the bounded ReAct loop.

AgentOrchestrator is the single entry point for diagnosing an incident.
Callers wire it once (LLM client, retriever, tool registry) and then call
analyze() as many times as needed. Each call is fully independent: fresh
retrieval, fresh transcript, fresh result.

Pipeline inside analyze():
    1. RETRIEVE       runbook chunks for the request (empty -> fallback)
    2. BUILD_CONTEXT  wrap each chunk in numbered delimiters
    3. LOOP           at most MAX_ITERATIONS model turns:
                        tool calls  -> run each through the registry, continue
                        text only   -> extract a verdict; valid ends the loop,
                                       anything else re-prompts
    4. DONE           verdict + orchestrator citations -> AnalysisResponse
       EXHAUSTED      deterministic fallback

analyze() never raises for model misbehaviour. It raises only when the
retrieval backend or the LLM provider itself fails, and those errors are
the API layer's to map.
"""

import asyncio
import logging
import time

from core.transcript import Transcript
from llm.base import LLMClient
from retrieval.retriever import ContextRetriever
from schemas.analysis import AnalysisResponse
from schemas.chat import ChatMessage
from schemas.config import AgentConfig
from schemas.documents import RetrievedDocument
from schemas.events import AgentEvent, EventStage
from schemas.incident import IncidentRequest
from tools.registry import ToolRegistry
from utils.parse import LLMParseError, parse_verdict

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5
UNKNOWN_SERVICE = "unknown"

SYSTEM_PROMPT = """\
You are a senior Site Reliability Engineer diagnosing a production incident.
Work strictly from the RUNBOOKS provided in the user message.

Follow the ReAct protocol, alternating THOUGHT, ACTION and OBSERVATION:

1. THOUGHT: compare the reported issue with the runbooks. Find the single
   "## Alert: ..." section that best matches the symptoms and quote its name.
   If several alerts are present, choose exactly one. Never mix runbooks.
2. ACTION: call a tool when you need evidence.
   - healthCheck(serviceName): reports UP or DOWN.
   - searchLogs(query, timeWindow): returns match counts, trace ids and pods.
     Copy the Investigation Query from the chosen alert EXACTLY, character
     for character. Do not rewrite it.
3. OBSERVATION: tool results are returned to you. Use them as evidence.

When you have enough evidence, stop and reply with ONLY this JSON object,
with no markdown and no text before or after it:
{
  "failureType": "<name of the alert you matched>",
  "rootCauseHypothesis": "<your diagnosis>",
  "investigationQuery": "<the exact query you ran>",
  "evidence": {"<tool name>": "<summary of what it returned>"},
  "responsibleTeam": "<team named in the runbook>",
  "remediationSteps": ["<step copied from the runbook>", "..."],
  "requiresEscalation": true
}
Copy remediation steps from the runbook in order. Do not summarise them and
do not invent new ones.
"""

CORRECTION_PROMPT = (
    "Your last reply did not contain a valid final report ({problem}). "
    "Either call a tool, or reply with ONLY the JSON object described in "
    "your instructions. failureType and rootCauseHypothesis are required."
)


class AgentOrchestrator:
    """Runs one grounded, tool-using analysis per call.

    Attributes:
        llm: Model client. Receives the full transcript on every turn.
        retriever: Source of grounding documents.
        tools: Registry holding every tool the model may call.
        max_iterations: Hard cap on model calls per analysis.
    """

    def __init__(
        self,
        llm: LLMClient,
        retriever: ContextRetriever,
        tools: ToolRegistry,
        max_iterations: int = MAX_ITERATIONS,
    ) -> None:
        self.llm = llm
        self.retriever = retriever
        self.tools = tools
        self.max_iterations = max_iterations

    async def analyze(
        self,
        request: IncidentRequest,
        config: AgentConfig | None = None,
        event_queue: asyncio.Queue | None = None,
    ) -> AnalysisResponse:
        """Diagnose one incident.

        Args:
            request: The incident to analyse.
            config: Retrieval and sampling parameters. None uses
                AgentConfig.defaults().
            event_queue: Optional queue to emit AgentEvents into. The loop
                behaves identically whether or not anything is listening.

        Returns:
            A validated AnalysisResponse with orchestrator-injected
            citations, or a fallback response.

        Raises:
            Exception: Retrieval backend or LLM provider failures.
        """
        config = config or AgentConfig.defaults()
        start = time.perf_counter()

        async def emit(stage: EventStage, message: str, turn: int | None = None) -> None:
            if event_queue is not None:
                await event_queue.put(AgentEvent(
                    stage=stage,
                    message=message,
                    turn=turn,
                    timestamp_ms=(time.perf_counter() - start) * 1000,
                ))

        logger.info("Analysis started for %s: '%s'", request.service_name, request.issue)

        docs = await asyncio.to_thread(self.retriever.retrieve, request, config)
        await emit(EventStage.RETRIEVE, f"{len(docs)} runbook chunk(s) retrieved")

        if not docs:
            reason = f"No relevant runbooks found for service: {request.service_name}"
            logger.warning("No runbooks retrieved for %s; returning fallback.", request.service_name)
            await emit(EventStage.FALLBACK, reason)
            return AnalysisResponse.fallback(reason)

        citations = collect_citations(docs)
        context = build_context(docs)
        await emit(EventStage.BUILD_CONTEXT, f"context built from {', '.join(citations)}")

        transcript = Transcript.start(SYSTEM_PROMPT, build_user_message(request, context))
        specs = self.tools.specs()

        for turn_no in range(1, self.max_iterations + 1):
            logger.debug("Turn %d/%d", turn_no, self.max_iterations)
            await emit(EventStage.AWAIT_MODEL, "waiting for model", turn_no)

            turn = await self.llm.chat(transcript.to_list(), specs, config.temperature)
            transcript = transcript.with_turn(turn)

            if turn.requests_tools:
                for call in turn.tool_calls:
                    await emit(EventStage.TOOL_REQUESTED, f"{call.name} {call.arguments}", turn_no)
                    observation = self.tools.invoke(call)
                    transcript = transcript.append(ChatMessage.tool(call.id, observation))
                    await emit(EventStage.APPLY_TOOL, f"{call.name} -> {_clip(observation)}", turn_no)
                continue

            reply = turn.text if turn.has_text else ""
            await emit(EventStage.TEXT_PRODUCED, _clip(reply), turn_no)

            problem = None
            try:
                verdict = parse_verdict(reply)
                if verdict is None:
                    problem = "no JSON object found" if reply else "empty reply"
            except LLMParseError as exc:
                verdict = None
                problem = str(exc).splitlines()[0]

            if verdict is not None:
                response = AnalysisResponse.from_verdict(verdict, citations)
                logger.info(
                    "Analysis finished for %s after %d turn(s): %s",
                    request.service_name,
                    turn_no,
                    response.failure_type,
                )
                await emit(EventStage.DONE, response.failure_type, turn_no)
                return response

            logger.warning("Turn %d produced no usable verdict: %s", turn_no, problem)
            await emit(EventStage.INVALID, problem, turn_no)
            transcript = transcript.append(ChatMessage.user(CORRECTION_PROMPT.format(problem=problem)))

        reason = (
            f"Agent exceeded max iterations ({self.max_iterations}) "
            "without producing valid JSON."
        )
        logger.warning(
            "Analysis for %s exhausted its turn budget after %d model turn(s).",
            request.service_name,
            transcript.model_turns,
        )
        await emit(EventStage.EXHAUSTED, reason)
        await emit(EventStage.FALLBACK, reason)
        return AnalysisResponse.fallback(reason)


# ── Context assembly ───────────────────────────────────────────────────────────

def collect_citations(docs: list[RetrievedDocument]) -> list[str]:
    """Distinct service names of the retrieved documents, in retrieval order."""
    seen: list[str] = []
    for doc in docs:
        service = doc.service_name or UNKNOWN_SERVICE
        if service not in seen:
            seen.append(service)
    return seen


def build_context(docs: list[RetrievedDocument]) -> str:
    """Wrap each document in numbered BEGIN/END markers so boundaries are explicit."""
    blocks = []
    for n, doc in enumerate(docs, start=1):
        service = doc.service_name or UNKNOWN_SERVICE
        blocks.append(
            f"=== BEGIN RUNBOOK {n} (service: {service}) ===\n"
            f"{doc.text.strip()}\n"
            f"=== END RUNBOOK {n} ==="
        )
    return "\n\n".join(blocks)


def build_user_message(request: IncidentRequest, context: str) -> str:
    return (
        f"RUNBOOKS:\n{context}\n\n"
        f"SERVICE: {request.service_name}\n"
        f"TIME WINDOW: {request.time_window}\n"
        f"USER ISSUE: {request.issue}"
    )


def _clip(text: str, limit: int = 120) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."
