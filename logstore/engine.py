"""Embedded log search engine.

IndexedLogStore is the in-memory log backend the searchLogs tool queries.
It holds one immutable snapshot of records at a time. Loading a scenario
builds a complete new snapshot and swaps it in under a lock; a query grabs
the current snapshot reference and evaluates against it without holding
the lock. That gives the two guarantees the agent relies on:

- a query never sees a half-cleared or half-seeded index (write atomicity)
- a query always sees the most recently committed load (no stale reads)

It is not a database. No disk, no network. Restarting the process resets
it to whatever scenario it was constructed with.
"""

import logging
import threading
from dataclasses import dataclass

from logstore.query import QuerySyntaxError, parse_query, search
from logstore.records import MESSAGE_FIELD, IndexedLogRecord, LogHit, LogSearchResult
from logstore.scenarios import SCENARIOS, resolve_scenario

logger = logging.getLogger(__name__)

MAX_RESULTS = 10
DEFAULT_FIELD = MESSAGE_FIELD


@dataclass(frozen=True)
class _Snapshot:
    scenario: str | None
    generation: int
    records: tuple[IndexedLogRecord, ...]


class IndexedLogStore:
    """Thread-safe in-memory log index with scenario reseeding.

    Safe to share between concurrent analyses: writes are serialised by a
    dedicated write lock, and readers only ever touch frozen snapshots.

    Attributes:
        _snapshot: The currently committed record set.
        _lock: Guards the snapshot reference swap.
        _write_lock: Serialises load_scenario() calls end to end.
    """

    def __init__(self, initial_scenario: str | None = None) -> None:
        """Create an empty store, optionally seeded with a scenario.

        Args:
            initial_scenario: Scenario to load immediately (e.g. "healthy").
                None leaves the store empty.
        """
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._snapshot = _Snapshot(scenario=None, generation=0, records=())
        if initial_scenario is not None:
            self.load_scenario(initial_scenario)

    def load_scenario(self, name: str) -> int:
        """Replace every record with the seed set for a scenario.

        Lookup is case-insensitive. An unknown name is not an error: the
        store is left empty and a warning is logged, so a typo in a test
        shows up as "no matches" rather than a crash.

        Args:
            name: Scenario identifier (e.g. "payment-500-npe").

        Returns:
            Number of records in the new snapshot.
        """
        logger.info("Switching log store to scenario '%s'.", name)
        key = name.strip().lower()
        scenario = resolve_scenario(key)

        if scenario is None:
            logger.warning("Unknown scenario '%s', leaving the log store empty.", name)
            records: tuple[IndexedLogRecord, ...] = ()
        else:
            records = tuple(SCENARIOS[scenario]())

        with self._write_lock:
            with self._lock:
                self._snapshot = _Snapshot(
                    scenario=key,
                    generation=self._snapshot.generation + 1,
                    records=records,
                )
        logger.debug("Scenario '%s' committed with %d records.", key, len(records))
        return len(records)

    def query(self, query_string: str, limit: int | None = MAX_RESULTS) -> LogSearchResult:
        """Run a field-qualified query against the current snapshot.

        Never raises for a bad query. A syntax error comes back as a result
        with zero hits and the parser diagnostic in ``error``, which the log
        search tool passes on to the model so it can fix its query.

        Args:
            query_string: Lucene-style query (default field: log.message).
            limit: Maximum hits to return, highest relevance first. None
                returns every match. total_hits is never capped.

        Returns:
            A LogSearchResult with the total match count and the top hits.
        """
        snapshot = self._current()
        try:
            node = parse_query(query_string, default_field=DEFAULT_FIELD)
        except QuerySyntaxError as exc:
            logger.warning("Log query rejected: %s", exc)
            return LogSearchResult(total_hits=0, hits=[], error=str(exc))

        matches = search(node, snapshot.records)
        selected = matches if limit is None else matches[:limit]
        hits = [
            LogHit(trace_id=snapshot.records[i].trace_id, score=score, record=snapshot.records[i])
            for i, score in selected
        ]
        logger.debug(
            "Query '%s' matched %d records (generation %d).",
            query_string,
            len(matches),
            snapshot.generation,
        )
        return LogSearchResult(total_hits=len(matches), hits=hits)

    @property
    def scenario(self) -> str | None:
        """Name of the last loaded scenario, or None if nothing was loaded."""
        return self._current().scenario

    @property
    def generation(self) -> int:
        """Number of committed loads. Increments on every load_scenario()."""
        return self._current().generation

    def records(self) -> list[IndexedLogRecord]:
        """Return a copy of the current records."""
        return list(self._current().records)

    def __len__(self) -> int:
        return len(self._current().records)

    def _current(self) -> _Snapshot:
        with self._lock:
            return self._snapshot
