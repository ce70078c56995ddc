"""Scenario seed data for the embedded log store.

Each scenario is a named, deterministic fault condition. Loading one
replaces the whole record set, so tests and demos can reproduce exactly
what an on-call engineer would see for that fault before the agent runs.

The field layout follows the runbooks' investigation queries: for example
the "Elevated 5xx Error Rate" alert searches
``status_code:500 AND log.level:ERROR``, so payment-500-npe seeds records
where both fields line up.
"""

from collections.abc import Callable
from enum import Enum

from logstore.records import MESSAGE_FIELD, POD_FIELD, SERVICE_FIELD, IndexedLogRecord

PAYMENT = "payment-service"
INVENTORY = "inventory-service"


class ScenarioName(str, Enum):
    HEALTHY = "healthy"
    PAYMENT_500_NPE = "payment-500-npe"
    PAYMENT_LATENCY = "payment-latency"
    INVENTORY_DB_TIMEOUT = "inventory-db-timeout"
    INVENTORY_STOCK_MISMATCH = "inventory-stock-mismatch"
    INVENTORY_CACHE_INCONSISTENCY = "inventory-cache-inconsistency"
    PAYMENT_GATEWAY_TIMEOUT = "payment-gateway-timeout"


def _pod(service: str, i: int) -> str:
    return f"{service}-pod-{i % 2 + 1}"


def _log(
    service: str,
    level: str,
    status: str,
    trace_id: str,
    message: str,
    pod: str,
) -> IndexedLogRecord:
    return IndexedLogRecord(
        trace_id=trace_id,
        text_fields={
            SERVICE_FIELD: service,
            "status_code": status,
            MESSAGE_FIELD: message,
        },
        keyword_fields={
            "log.level": level,
            "type": "opentracing-log",
            POD_FIELD: pod,
        },
    )


# ── Seed functions ─────────────────────────────────────────────────────────────

def _healthy() -> list[IndexedLogRecord]:
    return [
        _log(PAYMENT, "INFO", "200", "tx-ok-1", "Payment processed successfully", _pod(PAYMENT, 0)),
        _log(INVENTORY, "INFO", "200", "tx-ok-2", "Stock updated", _pod(INVENTORY, 0)),
    ]


def _payment_500_npe() -> list[IndexedLogRecord]:
    message = (
        "java.lang.NullPointerException at "
        "com.example.payment.Processor.process(Processor.java:42)"
    )
    return [
        _log(PAYMENT, "ERROR", "500", f"trace-npe-{i}", message, _pod(PAYMENT, i))
        for i in range(50)
    ]


def _payment_latency() -> list[IndexedLogRecord]:
    # Metric-style records: no message, matched on metric:latency AND value:>2000.
    return [
        IndexedLogRecord(
            trace_id=f"slow-tx-{i}",
            text_fields={SERVICE_FIELD: PAYMENT},
            keyword_fields={"metric": "latency", "value": "5000", POD_FIELD: _pod(PAYMENT, i)},
        )
        for i in range(20)
    ]


def _inventory_db_timeout() -> list[IndexedLogRecord]:
    return [
        IndexedLogRecord(
            trace_id=f"db-err-{i}",
            text_fields={
                SERVICE_FIELD: INVENTORY,
                MESSAGE_FIELD: "Connection check failed. HikariPool-1 - Connection is not available",
            },
            keyword_fields={"db.type": "postgres", POD_FIELD: _pod(INVENTORY, i)},
        )
        for i in range(15)
    ]


def _inventory_stock_mismatch() -> list[IndexedLogRecord]:
    message = "CRITICAL: StockCountMismatchException: SKU-123 expected 5 but found 3"
    return [
        _log(INVENTORY, "ERROR", "500", f"stock-err-{i}", message, _pod(INVENTORY, i))
        for i in range(5)
    ]


def _inventory_cache_inconsistency() -> list[IndexedLogRecord]:
    # The database is healthy; the service complains about stale cache reads.
    return [
        IndexedLogRecord(
            trace_id=f"cache-miss-{i}",
            text_fields={
                SERVICE_FIELD: INVENTORY,
                MESSAGE_FIELD: "WARN: Cache key miss for SKU-999. Fetching from DB.",
            },
            keyword_fields={"db.status": "UP", POD_FIELD: _pod(INVENTORY, i)},
        )
        for i in range(20)
    ]


def _payment_gateway_timeout() -> list[IndexedLogRecord]:
    return [
        IndexedLogRecord(
            trace_id=f"gw-timeout-{i}",
            text_fields={
                SERVICE_FIELD: PAYMENT,
                "status_code": "504",
                MESSAGE_FIELD: "Gateway Timeout awaiting upstream response",
            },
            keyword_fields={"metric": "latency", "value": "6500", POD_FIELD: _pod(PAYMENT, i)},
        )
        for i in range(15)
    ]


SCENARIOS: dict[ScenarioName, Callable[[], list[IndexedLogRecord]]] = {
    ScenarioName.HEALTHY: _healthy,
    ScenarioName.PAYMENT_500_NPE: _payment_500_npe,
    ScenarioName.PAYMENT_LATENCY: _payment_latency,
    ScenarioName.INVENTORY_DB_TIMEOUT: _inventory_db_timeout,
    ScenarioName.INVENTORY_STOCK_MISMATCH: _inventory_stock_mismatch,
    ScenarioName.INVENTORY_CACHE_INCONSISTENCY: _inventory_cache_inconsistency,
    ScenarioName.PAYMENT_GATEWAY_TIMEOUT: _payment_gateway_timeout,
}


def resolve_scenario(name: str) -> ScenarioName | None:
    """Case-insensitive lookup. Returns None for unknown names rather than raising."""
    try:
        return ScenarioName(name.strip().lower())
    except ValueError:
        return None


def scenario_names() -> list[str]:
    return [s.value for s in ScenarioName]
