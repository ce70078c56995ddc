"""Log record and search result types for the embedded log store.

These are internal objects, dataclasses rather than pydantic models,
because they never cross a system boundary. The log search tool reshapes
them into a LogSearchResponse before anything reaches the model.
"""

from dataclasses import dataclass, field

MESSAGE_FIELD = "log.message"
SERVICE_FIELD = "application.name"
POD_FIELD = "kubernetes.pod.name"


@dataclass(frozen=True)
class IndexedLogRecord:
    """One structured log record.

    Two kinds of searchable fields, mirroring how a whitespace analyzer
    indexes text: text fields are split on whitespace into case-sensitive
    tokens, keyword fields are indexed as a single exact token. trace_id is
    stored only: it comes back with every hit but is not searchable.

    Attributes:
        trace_id: Stored trace identifier returned with hits.
        text_fields: Tokenized fields (application.name, status_code,
            log.message).
        keyword_fields: Exact-match fields (log.level, type, metric, value,
            db.type, db.status, kubernetes.pod.name).
    """

    trace_id: str
    text_fields: dict[str, str] = field(default_factory=dict)
    keyword_fields: dict[str, str] = field(default_factory=dict)

    def tokens(self, name: str) -> tuple[str, ...] | None:
        """Return the indexed tokens of a field, or None if the record lacks it."""
        if name in self.keyword_fields:
            return (self.keyword_fields[name],)
        if name in self.text_fields:
            return tuple(self.text_fields[name].split())
        return None

    @property
    def pod(self) -> str | None:
        return self.keyword_fields.get(POD_FIELD)


@dataclass(frozen=True)
class LogHit:
    trace_id: str
    score: float
    record: IndexedLogRecord


@dataclass(frozen=True)
class LogSearchResult:
    """Outcome of IndexedLogStore.query().

    Attributes:
        total_hits: Number of records matching the query, before the cap.
        hits: Top-ranked matches, highest score first, at most the cap.
        error: Parse diagnostic when the query was rejected. None otherwise.
    """

    total_hits: int
    hits: list[LogHit] = field(default_factory=list)
    error: str | None = None

    @property
    def trace_ids(self) -> list[str]:
        return [h.trace_id for h in self.hits]

    @property
    def ok(self) -> bool:
        return self.error is None
