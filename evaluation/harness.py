"""Evaluation harness and experiment report.

Runs every golden case through the full agent, grades the result, and
renders a plain-text report that can be diffed between configurations.

A case that crashes is still recorded. The crash becomes a report entry
with a placeholder response and the exception text, so one broken case
never hides the results of the others.
"""

import json
import logging
import traceback
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from core.orchestrator import AgentOrchestrator
from evaluation.cases import EvaluationCase, scenario_for_case
from judge.judge import (
    GradingResult,
    grade_action_correctness,
    grade_plan_faithfulness,
    grade_retrieval_precision,
)
from logstore.engine import IndexedLogStore
from schemas.analysis import AnalysisResponse
from schemas.config import AgentConfig
from schemas.incident import DEFAULT_TIME_WINDOW, IncidentRequest

logger = logging.getLogger(__name__)

_NOT_RUN = GradingResult(False, "N/A - Test Crashed")


@dataclass(frozen=True)
class ReportEntry:
    """Everything recorded for one case.

    Attributes:
        case: The golden case.
        scenario: Log store scenario loaded for the case.
        config: Configuration the agent ran under.
        response: Agent output, or a CRASHED placeholder.
        precision: Retrieval precision verdict.
        action: Action correctness verdict.
        faithfulness: Plan faithfulness verdict.
        error: Formatted traceback if the case crashed, else None.
    """

    case: EvaluationCase
    scenario: str
    config: AgentConfig
    response: AnalysisResponse
    precision: GradingResult
    action: GradingResult
    faithfulness: GradingResult
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and self.precision.passed and self.action.passed and self.faithfulness.passed


class EvaluationHarness:
    """Runs golden cases against a wired orchestrator.

    Attributes:
        orchestrator: The agent under test.
        store: The log store the orchestrator's searchLogs tool reads.
            Reseeded per case with the scenario matching the case's alert.
    """

    def __init__(self, orchestrator: AgentOrchestrator, store: IndexedLogStore) -> None:
        self.orchestrator = orchestrator
        self.store = store

    async def run(self, cases: list[EvaluationCase], config: AgentConfig | None = None) -> list[ReportEntry]:
        """Evaluate cases sequentially. Cases share the log store, so they cannot overlap."""
        config = config or AgentConfig.defaults()
        entries = []
        for case in cases:
            entries.append(await self.run_case(case, config))
        passed = sum(1 for e in entries if e.passed)
        logger.info("Evaluation finished: %d/%d case(s) passed.", passed, len(entries))
        return entries

    async def run_case(self, case: EvaluationCase, config: AgentConfig) -> ReportEntry:
        scenario = scenario_for_case(case)
        logger.info("Evaluating %s under scenario %s.", case.id, scenario.value)
        try:
            self.store.load_scenario(scenario.value)
            response = await self.orchestrator.analyze(
                IncidentRequest(
                    service_name=case.service_name,
                    issue=case.user_issue,
                    time_window=DEFAULT_TIME_WINDOW,
                ),
                config,
            )
        except Exception as exc:
            logger.error("Case %s crashed: %s", case.id, exc)
            return ReportEntry(
                case=case,
                scenario=scenario.value,
                config=config,
                response=_crashed(exc),
                precision=_NOT_RUN,
                action=_NOT_RUN,
                faithfulness=_NOT_RUN,
                error="".join(traceback.format_exception(exc)),
            )

        return ReportEntry(
            case=case,
            scenario=scenario.value,
            config=config,
            response=response,
            precision=grade_retrieval_precision(case, response),
            action=grade_action_correctness(case, response),
            faithfulness=grade_plan_faithfulness(case, response),
        )


def _crashed(exc: Exception) -> AnalysisResponse:
    return AnalysisResponse(
        failure_type="CRASHED",
        root_cause_hypothesis=f"System Exception: {exc}",
        investigation_query="N/A",
        evidence={},
        responsible_team="N/A",
        remediation_steps=[],
        requires_escalation=True,
        citations=[],
    )


# ── Report ─────────────────────────────────────────────────────────────────────

def render_report(entries: list[ReportEntry], timestamp: str | None = None) -> str:
    """Render the experiment report as plain text."""
    timestamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
    crashes = sum(1 for e in entries if e.error is not None)
    passed = sum(1 for e in entries if e.passed)

    lines = [
        "BENCHMARK EXPERIMENT REPORT",
        f"Timestamp: {timestamp}",
        f"Total Cases: {len(entries)}",
        f"Passed: {passed}",
        f"Crashes: {crashes}",
        "",
    ]
    for entry in entries:
        lines.append(_render_entry(entry))
    return "\n".join(lines)


def write_report(entries: list[ReportEntry], directory: str | Path = ".") -> Path:
    """Write the report to experiment_results_<timestamp>.txt and return its path."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = Path(directory) / f"experiment_results_{timestamp}.txt"
    path.write_text(render_report(entries, timestamp), encoding="utf-8")
    logger.info("Report written to %s", path)
    return path


def _render_entry(entry: ReportEntry) -> str:
    case, cfg, response = entry.case, entry.config, entry.response
    crash = f"\n[CRITICAL FAILURE]\n{entry.error}" if entry.error else ""
    raw = json.dumps(response.model_dump(by_alias=True), indent=2)
    return f"""\
=== TEST CASE: {case.id} ===
SERVICE: {case.service_name}
ALERT: {case.expected_alert_header}
SCENARIO: {entry.scenario}

[CONFIGURATION]
- TopK: {cfg.top_k}
- Min Score: {cfg.min_score:.2f}
- Temperature: {cfg.temperature:.2f}
- Strict Filtering: {cfg.strict_metadata_filtering}

[INPUT]
User Query: {case.user_issue}

[EXPECTED_GROUND_TRUTH]
Query: {case.expected_query}
Remediation Steps: {case.expected_remediation}

[ACTUAL_AGENT_OUTPUT]
Failure Type: {response.failure_type}
Query: {response.investigation_query}
Remediation Steps: {response.remediation_steps}

[EVALUATION_METRICS]
- Retrieval Precision: [{entry.precision.label}] ({entry.precision.reasoning})
- Action Correctness:  [{entry.action.label}] ({entry.action.reasoning})
- Plan Faithfulness:   [{entry.faithfulness.label}] ({entry.faithfulness.reasoning})
{crash}
[RAW_DATA_JSON]
{raw}
========================
"""
