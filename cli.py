"""Runbook Responder CLI.

Runs one analysis against a chosen log scenario and follows the agent loop
live in the terminal with Rich. Prints the verdict table when it finishes.

Usage:
    python cli.py --service payment-service \\
        --issue "ERROR: ECONNREFUSED at /payment-gateway" \\
        --scenario payment-gateway-timeout --ingest

    python cli.py --service inventory-service --issue "stock looks wrong" \\
        --scenario inventory-cache-inconsistency --strict --top-k 3
"""

import argparse
import asyncio
import logging

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from core.container import build_services
from display.live import LiveDisplay
from ingestion.runbooks import ingest_runbooks
from logstore.scenarios import scenario_names
from schemas.analysis import AnalysisResponse
from schemas.config import AgentConfig
from schemas.incident import IncidentRequest
from settings import Settings

console = Console()


# ── Results table ─────────────────────────────────────────────────────────────

def _print_result(result: AnalysisResponse) -> None:
    """Render the final verdict and escalation flag."""
    table = Table(title="Analysis", show_header=False, show_lines=True, border_style="bright_black")
    table.add_column("Field", style="dim", width=22)
    table.add_column("Value", min_width=60)

    failure_color = "red" if result.is_fallback else "bold"
    table.add_row("Failure type", f"[{failure_color}]{result.failure_type}[/{failure_color}]")
    table.add_row("Root cause", escape(result.root_cause_hypothesis))
    table.add_row("Query", f"[cyan]{escape(result.investigation_query)}[/cyan]")
    table.add_row("Team", result.responsible_team)
    table.add_row(
        "Remediation",
        "\n".join(f"{i}. {escape(step)}" for i, step in enumerate(result.remediation_steps, 1)) or "[dim]none[/dim]",
    )
    table.add_row(
        "Evidence",
        "\n".join(f"{tool}: {escape(str(summary))}" for tool, summary in result.evidence.items()) or "[dim]none[/dim]",
    )
    table.add_row("Citations", ", ".join(result.citations) or "[dim]none[/dim]")

    console.print()
    console.print(table)

    escalation = (
        "[bold red]⚠  Requires escalation to a human operator[/bold red]"
        if result.requires_escalation
        else "[bold green]✓  Safe to follow the runbook without escalation[/bold green]"
    )
    console.print(f"\n{escalation}\n")


# ── Entry point ───────────────────────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Diagnose an incident against the service runbooks.")
    parser.add_argument("--service", required=True, help="Service name, e.g. payment-service")
    parser.add_argument("--issue", required=True, help="Free-text symptom as reported")
    parser.add_argument("--scenario", default="healthy", choices=scenario_names(), help="Log scenario to load")
    parser.add_argument("--time-window", default="1h", help="Lookback window for log search")
    parser.add_argument("--ingest", action="store_true", help="Ingest runbooks before analysing")
    parser.add_argument("--strict", action="store_true", help="Force strict metadata filtering")
    parser.add_argument("--top-k", type=int, default=2, help="Runbook chunks to retrieve")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> AnalysisResponse:
    settings = Settings.from_env()
    services = build_services(settings)

    if args.ingest:
        written = ingest_runbooks(settings.runbook_dir, services.backend)
        console.print(f"[dim]ingested {written} runbook chunk(s) from {settings.runbook_dir}[/dim]")

    services.store.load_scenario(args.scenario)

    request = IncidentRequest(service_name=args.service, issue=args.issue, time_window=args.time_window)
    config = AgentConfig(top_k=args.top_k, strict_metadata_filtering=args.strict)

    console.rule("[bold]Runbook Responder[/bold]")
    console.print(f"  service   [cyan]{request.service_name}[/cyan]")
    console.print(f"  scenario  [cyan]{args.scenario}[/cyan]")
    console.print(f"  model     [cyan]{settings.model}[/cyan] via {settings.provider}")
    console.print()

    display = LiveDisplay(request, max_turns=services.orchestrator.max_iterations)
    event_queue: asyncio.Queue = asyncio.Queue()

    with display.make_live() as live:
        analysis = asyncio.create_task(
            services.orchestrator.analyze(request, config, event_queue=event_queue)
        )
        consumer = asyncio.create_task(display.consume(event_queue, live))

        try:
            result = await analysis
        finally:
            await event_queue.put(None)   # sentinel: tell consumer to stop
            await consumer

    _print_result(result)
    return result


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)-8s  %(name)s  %(message)s")
    asyncio.run(_run(_parse_args(argv)))


if __name__ == "__main__":
    main()
