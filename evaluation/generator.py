"""Golden dataset generator.

Asks a model to read one service's runbook and write realistic incident
reports for each alert in it, with the ground truth copied out of the
runbook. The result is the input of EvaluationHarness.run().

Generation is the only LLM-backed step in evaluation. Grading is not.
"""

import logging
from pathlib import Path

from evaluation.cases import EvaluationCase, GoldenDataset
from ingestion.runbooks import load_runbooks
from llm.base import LLMClient
from retrieval.base import normalize_service_key
from utils.parse import parse_llm_json

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a QA engineer who writes test data from technical documentation."

USER_TEMPLATE = """\
Read the runbook below for the service "{service}".

RUNBOOK:
{content}

TASK:
For every "## Alert:" section, write one realistic incident report a human
on-call engineer might file, plus the ground truth from the runbook.

Reply with ONLY a JSON object of this shape:
{{
  "cases": [
    {{
      "id": "{service}-001",
      "serviceName": "{service}",
      "userIssue": "<short, vague, urgent message>",
      "expectedAlertHeader": "<alert name without '##' or 'Alert:'>",
      "expectedQuery": "<the investigation query, on a single line>",
      "expectedRemediation": ["<step 1>", "<step 2>"]
    }}
  ]
}}

Rules:
- serviceName must be exactly "{service}".
- Copy the investigation query exactly, without backticks or line breaks.
- Copy remediation steps in order, without their numbering.
- Never use double quotes inside a string value; use single quotes instead.
"""


class GoldenDatasetGenerator:
    """Turns runbook markdown into EvaluationCases with an LLM.

    Attributes:
        llm: Any LLMClient. Only complete() is used.
    """

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def generate(self, markdown: str, service_name: str) -> list[EvaluationCase]:
        """Generate the cases for one runbook.

        Raises:
            LLMParseError: If the model's reply is not a valid case list.
        """
        service = normalize_service_key(service_name)
        # Double quotes in the source tend to leak into the model's JSON strings unescaped.
        content = markdown.replace('"', "'")
        raw = await self.llm.complete(
            system=SYSTEM_PROMPT,
            user=USER_TEMPLATE.format(service=service, content=content),
        )
        dataset = parse_llm_json(raw, GoldenDataset)
        logger.info("Generated %d case(s) for %s.", len(dataset.cases), service)
        return dataset.cases

    async def generate_from_dir(self, runbook_dir: str | Path) -> list[EvaluationCase]:
        """Generate cases for every runbook file in a directory, in file-name order."""
        root = Path(runbook_dir)
        cases: list[EvaluationCase] = []
        services = sorted({d.service_name for d in load_runbooks(root) if d.service_name})
        for service in services:
            markdown = (root / f"{service}.md").read_text(encoding="utf-8")
            cases.extend(await self.generate(markdown, service))
        return cases
