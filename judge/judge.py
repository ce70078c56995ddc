"""Evaluation judge.

Grades one AnalysisResponse against the ground truth of one EvaluationCase.
All checks are deterministic: same inputs always produce the same pass/fail
result. No LLM is involved, ever.

The judge reports verdicts. It does not decide what to do with them; the
evaluation harness records them in the experiment report.

Three graders, one per failure mode worth tracking across configurations:

- Retrieval precision: did the model only see runbooks for the right service?
- Action correctness: did it run the runbook's investigation query verbatim?
- Plan faithfulness: did it copy the remediation plan without dropping,
  reordering, or inventing steps?
"""

import re
from dataclasses import dataclass

from evaluation.cases import EvaluationCase
from schemas.analysis import AnalysisResponse

_LIST_MARKER = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


@dataclass(frozen=True)
class GradingResult:
    """The verdict of one grader.

    Attributes:
        passed: True if the response met the grader's criterion.
        reasoning: Human-readable explanation, always starting with
            "PASS:" or "FAIL:" so report lines read on their own.
    """

    passed: bool
    reasoning: str

    @property
    def label(self) -> str:
        return "PASS" if self.passed else "FAIL"


def grade_retrieval_precision(case: EvaluationCase, response: AnalysisResponse) -> GradingResult:
    """Every citation must belong to the case's service, and there must be some."""
    if not response.citations:
        return GradingResult(False, "FAIL: No documents retrieved.")

    expected = case.service_name.strip().lower()
    foreign = [c for c in response.citations if c.strip().lower() != expected]
    if foreign:
        return GradingResult(
            False,
            f"FAIL: Context pollution detected. Retrieved: {response.citations} "
            f"| Expected: {case.service_name}",
        )
    return GradingResult(True, f"PASS: All retrieved fragments belong to {case.service_name}")


def grade_action_correctness(case: EvaluationCase, response: AnalysisResponse) -> GradingResult:
    """The investigation query must match the runbook's, ignoring whitespace and quote style."""
    expected = normalize_query(case.expected_query)
    actual = normalize_query(response.investigation_query)
    if not actual:
        return GradingResult(False, "FAIL: Agent reported no investigation query.")
    if actual == expected:
        return GradingResult(True, f"PASS: Query matches '{case.expected_query}'")
    return GradingResult(
        False,
        f"FAIL: Expected '{case.expected_query}' but agent ran '{response.investigation_query}'",
    )


def grade_plan_faithfulness(case: EvaluationCase, response: AnalysisResponse) -> GradingResult:
    """Every expected step present, in order, with nothing invented in between.

    Steps are compared after stripping list markers ("1.", "-") and
    normalising whitespace and case.
    """
    actual = [normalize_step(s) for s in response.remediation_steps if normalize_step(s)]
    expected = [normalize_step(s) for s in case.expected_remediation if normalize_step(s)]

    if not actual:
        return GradingResult(False, "FAIL: Agent returned empty remediation steps.")

    missing = [s for s in expected if s not in actual]
    if missing:
        return GradingResult(False, f"FAIL: Missing {len(missing)} step(s), first: '{missing[0]}'")

    invented = [s for s in actual if s not in expected]
    if invented:
        return GradingResult(False, f"FAIL: Invented {len(invented)} step(s), first: '{invented[0]}'")

    if [s for s in actual if s in expected] != expected:
        return GradingResult(False, "FAIL: Remediation steps are out of order.")

    return GradingResult(True, f"PASS: All {len(expected)} step(s) present in order.")


# ── Normalisation ──────────────────────────────────────────────────────────────

def normalize_query(query: str) -> str:
    """Collapse whitespace, unify quotes, and drop wrapping backticks."""
    text = query.strip().strip("`").replace("'", '"')
    return " ".join(text.split())


def normalize_step(step: str) -> str:
    text = _LIST_MARKER.sub("", step)
    return " ".join(text.split()).rstrip(".").lower()
