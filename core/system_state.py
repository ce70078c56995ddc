"""Service health table.

The simulated health of every service the health check tool can probe.
Flipped at runtime through the chaos endpoint (POST /api/incident/simulate)
or directly in tests, and read by HealthCheckTool on every call.

Unknown services are reported healthy, so the table only needs entries for
services someone has explicitly broken.
"""

import logging
import threading

from retrieval.base import normalize_service_key

logger = logging.getLogger(__name__)


class ServiceHealthTable:
    """Thread-safe map of normalized service key to health flag.

    Attributes:
        _health: service key -> True (healthy) / False (down).
        _lock: Guards _health for concurrent HTTP handlers.
    """

    def __init__(self, initial: dict[str, bool] | None = None) -> None:
        self._lock = threading.Lock()
        self._health: dict[str, bool] = {}
        for name, healthy in (initial or {}).items():
            self._health[normalize_service_key(name)] = healthy

    def get(self, service_name: str) -> bool:
        """Return True if the service is healthy. Unknown services are healthy."""
        key = normalize_service_key(service_name)
        with self._lock:
            return self._health.get(key, True)

    def set(self, service_name: str, healthy: bool) -> None:
        key = normalize_service_key(service_name)
        with self._lock:
            self._health[key] = healthy
        logger.info("Service '%s' marked %s.", key, "UP" if healthy else "DOWN")
