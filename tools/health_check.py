"""Health check tool.

Reports a service as UP or DOWN from the shared ServiceHealthTable. The
narratives are canned: the point is to give the model a clear, repeatable
signal to cite as evidence, not to emulate a real probe.
"""

import logging

from core.system_state import ServiceHealthTable
from schemas.tools import HealthCheckRequest, HealthCheckResponse
from tools.base import DiagnosticTool, ToolName

logger = logging.getLogger(__name__)

DOWN_NARRATIVE = "CRITICAL: Connection Refused. CPU 99%. OOMKilled event detected."
UP_NARRATIVE = "Service is healthy. Latency: 45ms. 200 OK."


class HealthCheckTool(DiagnosticTool[HealthCheckRequest, HealthCheckResponse]):
    """Probe a service's simulated health.

    Attributes:
        health: Injected health table. Shared with the chaos endpoint so a
            flip through the API is visible on the very next call.
    """

    name = ToolName.HEALTH_CHECK
    description = (
        "Check the live health status of a service. "
        "Returns 'UP' or 'DOWN' with a short diagnostic narrative."
    )
    request_model = HealthCheckRequest

    def __init__(self, health: ServiceHealthTable) -> None:
        self.health = health

    def run(self, request: HealthCheckRequest) -> HealthCheckResponse:
        healthy = self.health.get(request.service_name)
        logger.info("healthCheck(%s) -> %s", request.service_name, "UP" if healthy else "DOWN")
        if healthy:
            return HealthCheckResponse(status="UP", logs=UP_NARRATIVE)
        return HealthCheckResponse(status="DOWN", logs=DOWN_NARRATIVE)
