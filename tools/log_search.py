"""Log search tool.

Runs the model's field-qualified query against the IndexedLogStore and
reshapes the result into something compact enough to sit in the transcript:
a total count, a handful of trace ids, and the pods they came from.

A query the parser rejects is not a tool failure. The model gets back a
zero-match response whose summary starts with "Query Error: " and carries
the parser diagnostic, which is usually enough for it to fix the query on
its next turn.
"""

import logging

from logstore.engine import MAX_RESULTS, IndexedLogStore
from schemas.tools import LogSearchRequest, LogSearchResponse
from tools.base import DiagnosticTool, ToolName

logger = logging.getLogger(__name__)

QUERY_ERROR_PREFIX = "Query Error: "


class LogSearchTool(DiagnosticTool[LogSearchRequest, LogSearchResponse]):
    """Query the embedded log store.

    Attributes:
        store: Injected log store. Reseeding it between calls is safe; each
            call reads one consistent snapshot.
    """

    name = ToolName.SEARCH_LOGS
    description = (
        "Search structured service logs with a Lucene-style query "
        "(e.g. 'status_code:500 AND log.level:ERROR'). Copy the query "
        "exactly from the runbook alert. Returns the match count, sample "
        "trace ids and affected pods."
    )
    request_model = LogSearchRequest

    def __init__(self, store: IndexedLogStore) -> None:
        self.store = store

    def run(self, request: LogSearchRequest) -> LogSearchResponse:
        logger.info("searchLogs('%s', window=%s)", request.query, request.time_window)
        result = self.store.query(request.query, limit=MAX_RESULTS)

        if not result.ok:
            return LogSearchResponse(
                match_count=0,
                sample_trace_ids=[],
                affected_pods=[],
                summary=f"{QUERY_ERROR_PREFIX}{result.error}",
            )

        pods: list[str] = []
        for hit in result.hits:
            pod = hit.record.pod
            if pod and pod not in pods:
                pods.append(pod)

        return LogSearchResponse(
            match_count=result.total_hits,
            sample_trace_ids=result.trace_ids,
            affected_pods=pods,
            summary=f"Found {result.total_hits} matches for query: {request.query}",
        )
