"""Runbook Responder: offline evaluation runner.

Generates a golden dataset from the runbooks with the configured model,
ingests the same runbooks into a throwaway Chroma collection, runs every
case through the agent under one AgentConfig, and writes the experiment
report.

Usage:
    python evaluate.py
    python evaluate.py --top-k 3 --strict --temperature 0.2
    python evaluate.py --cases golden.json      # reuse a saved dataset
"""

import argparse
import asyncio
import json
import logging
import pathlib

from rich.console import Console

from core.container import build_services
from evaluation.cases import EvaluationCase
from evaluation.generator import GoldenDatasetGenerator
from evaluation.harness import EvaluationHarness, write_report
from ingestion.runbooks import ingest_runbooks
from retrieval.chroma_store import ChromaRunbookStore
from schemas.config import AgentConfig
from settings import Settings

console = Console()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Grade the agent against a golden dataset.")
    parser.add_argument("--cases", type=pathlib.Path, help="JSON file of saved cases (skips generation)")
    parser.add_argument("--save-cases", type=pathlib.Path, help="Write the generated cases here")
    parser.add_argument("--top-k", type=int, default=2)
    parser.add_argument("--min-score", type=float, default=0.0)
    parser.add_argument("--temperature", type=float, default=0.0)
    parser.add_argument("--strict", action="store_true")
    parser.add_argument("--out", type=pathlib.Path, default=pathlib.Path("."))
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    backend = ChromaRunbookStore.in_memory()
    ingest_runbooks(settings.runbook_dir, backend)
    services = build_services(settings, backend=backend)

    if args.cases:
        raw = json.loads(args.cases.read_text(encoding="utf-8"))
        cases = [EvaluationCase.model_validate(c) for c in raw]
    else:
        console.print("[dim]generating golden dataset ...[/dim]")
        generator = GoldenDatasetGenerator(services.orchestrator.llm)
        cases = await generator.generate_from_dir(settings.runbook_dir)
        if args.save_cases:
            args.save_cases.write_text(
                json.dumps([c.model_dump(by_alias=True) for c in cases], indent=2),
                encoding="utf-8",
            )

    config = AgentConfig(
        top_k=args.top_k,
        min_score=args.min_score,
        temperature=args.temperature,
        strict_metadata_filtering=args.strict,
    )
    console.rule(f"[bold]Evaluating {len(cases)} case(s)[/bold]")

    entries = await EvaluationHarness(services.orchestrator, services.store).run(cases, config)
    for entry in entries:
        color = "green" if entry.passed else "red"
        console.print(f"  [{color}]{'PASS' if entry.passed else 'FAIL'}[/{color}]  {entry.case.id}")

    path = write_report(entries, args.out)
    console.print(f"\n[bold]Report written:[/bold] {path.resolve()}")
    return 0 if all(e.passed for e in entries) else 1


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)-8s  %(name)s  %(message)s")
    raise SystemExit(asyncio.run(_run(_parse_args(argv))))


if __name__ == "__main__":
    main()
