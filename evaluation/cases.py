"""Evaluation case schema and scenario mapping.

An EvaluationCase is one golden test: a realistic incident report for a
service together with the ground truth an ideal agent would reach by
following that service's runbook.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from logstore.scenarios import ScenarioName


class EvaluationCase(BaseModel):
    """One golden dataset entry.

    Attributes:
        id: Short case code, e.g. "payment-service-001".
        service_name: Service the report is filed against.
        user_issue: The vague, urgent message a human would type.
        expected_alert_header: Alert name from the runbook (without the
            "## Alert:" prefix). Also selects the log store scenario.
        expected_query: The alert's investigation query, on one line.
        expected_remediation: The alert's remediation steps, in order.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    service_name: str
    user_issue: str
    expected_alert_header: str
    expected_query: str = Field(
        validation_alias=AliasChoices("expectedQuery", "expectedLuceneQuery", "expected_query"),
    )
    expected_remediation: list[str] = Field(default_factory=list)


class GoldenDataset(BaseModel):
    cases: list[EvaluationCase]


SCENARIO_BY_ALERT: dict[str, ScenarioName] = {
    "payment-service::Elevated 5xx Error Rate": ScenarioName.PAYMENT_500_NPE,
    "payment-service::Upstream Gateway Latency": ScenarioName.PAYMENT_LATENCY,
    "payment-service::Gateway Timeout": ScenarioName.PAYMENT_GATEWAY_TIMEOUT,
    "inventory-service::Database Connection Timeout": ScenarioName.INVENTORY_DB_TIMEOUT,
    "inventory-service::Elevated 5xx Error Rate": ScenarioName.INVENTORY_STOCK_MISMATCH,
    "inventory-service::Cache Inconsistency": ScenarioName.INVENTORY_CACHE_INCONSISTENCY,
}


def scenario_for_case(case: EvaluationCase) -> ScenarioName:
    """Pick the log scenario that reproduces the case's alert. Unknown alerts get healthy."""
    key = f"{case.service_name}::{case.expected_alert_header}"
    return SCENARIO_BY_ALERT.get(key, ScenarioName.HEALTHY)
