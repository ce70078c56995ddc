"""Indexed log store tests.

Covers scenario seeding, the query language, ranking, syntax errors, and
the snapshot consistency guarantees. Pure in-memory; no API keys.
"""

import threading

import pytest

from logstore.engine import MAX_RESULTS, IndexedLogStore
from logstore.query import MAX_NESTING, QuerySyntaxError, parse_query, search
from logstore.records import IndexedLogRecord
from logstore.scenarios import SCENARIOS, ScenarioName, resolve_scenario, scenario_names


@pytest.fixture
def store():
    return IndexedLogStore()


def loaded(scenario: str) -> IndexedLogStore:
    s = IndexedLogStore()
    s.load_scenario(scenario)
    return s


# ── Scenarios ─────────────────────────────────────────────────────────────────

class TestScenarios:
    def test_every_scenario_has_a_seed_function(self):
        assert set(SCENARIOS) == set(ScenarioName)

    def test_scenario_names_are_the_wire_identifiers(self):
        assert scenario_names() == [
            "healthy",
            "payment-500-npe",
            "payment-latency",
            "inventory-db-timeout",
            "inventory-stock-mismatch",
            "inventory-cache-inconsistency",
            "payment-gateway-timeout",
        ]

    @pytest.mark.parametrize("name,count", [
        ("healthy", 2),
        ("payment-500-npe", 50),
        ("payment-latency", 20),
        ("inventory-db-timeout", 15),
        ("inventory-stock-mismatch", 5),
        ("inventory-cache-inconsistency", 20),
        ("payment-gateway-timeout", 15),
    ])
    def test_record_counts(self, store, name, count):
        assert store.load_scenario(name) == count
        assert len(store) == count

    def test_seeds_are_deterministic(self):
        first = SCENARIOS[ScenarioName.PAYMENT_500_NPE]()
        second = SCENARIOS[ScenarioName.PAYMENT_500_NPE]()
        assert first == second

    def test_resolve_is_case_insensitive(self):
        assert resolve_scenario("  Payment-500-NPE ") is ScenarioName.PAYMENT_500_NPE

    def test_resolve_unknown_returns_none(self):
        assert resolve_scenario("does-not-exist") is None

    def test_pods_alternate_between_two_replicas(self):
        records = SCENARIOS[ScenarioName.PAYMENT_500_NPE]()
        assert {r.pod for r in records} == {"payment-service-pod-1", "payment-service-pod-2"}


# ── Loading ───────────────────────────────────────────────────────────────────

class TestLoadScenario:
    def test_new_store_is_empty(self, store):
        assert len(store) == 0
        assert store.scenario is None
        assert store.generation == 0

    def test_initial_scenario_is_loaded(self):
        s = IndexedLogStore(initial_scenario="healthy")
        assert len(s) == 2
        assert s.scenario == "healthy"

    def test_load_is_case_insensitive(self, store):
        store.load_scenario("PAYMENT-LATENCY")
        assert len(store) == 20
        assert store.scenario == "payment-latency"

    def test_unknown_scenario_leaves_store_empty(self, store, caplog):
        store.load_scenario("payment-500-npe")
        store.load_scenario("nope")
        assert len(store) == 0
        assert store.query("*:*").total_hits == 0
        assert "Unknown scenario" in caplog.text

    def test_healthy_after_fault_wipes_prior_data(self, store):
        store.load_scenario("payment-500-npe")
        store.load_scenario("healthy")
        result = store.query("status_code:500 AND log.level:ERROR")
        assert result.total_hits == 0
        assert store.query("*:*").total_hits == 2

    def test_generation_increments_per_load(self, store):
        store.load_scenario("healthy")
        store.load_scenario("healthy")
        assert store.generation == 2

    def test_records_returns_a_copy(self):
        s = loaded("healthy")
        s.records().clear()
        assert len(s) == 2


# ── Queries against scenarios ─────────────────────────────────────────────────

class TestScenarioQueries:
    def test_npe_query_counts_all_fifty(self):
        s = loaded("payment-500-npe")
        result = s.query("status_code:500 AND log.level:ERROR")
        assert result.ok
        assert result.total_hits == 50
        assert len(result.hits) == MAX_RESULTS

    def test_npe_trace_ids_are_distinct_and_prefixed(self):
        s = loaded("payment-500-npe")
        result = s.query("status_code:500 AND log.level:ERROR", limit=None)
        ids = result.trace_ids
        assert len(ids) == 50
        assert len(set(ids)) == 50
        assert all(t.startswith("trace-npe-") for t in ids)

    def test_latency_comparison(self):
        s = loaded("payment-latency")
        assert s.query("metric:latency AND value:>2000").total_hits == 20
        assert s.query("metric:latency AND value:>9000").total_hits == 0

    def test_db_timeout_phrase(self):
        s = loaded("inventory-db-timeout")
        assert s.query('db.type:postgres AND log.message:"Connection is not available"').total_hits == 15

    def test_stock_mismatch_wildcard(self):
        s = loaded("inventory-stock-mismatch")
        assert s.query("status_code:500 AND log.message:*StockCountMismatchException*").total_hits == 5

    def test_cache_inconsistency(self):
        s = loaded("inventory-cache-inconsistency")
        assert s.query('log.message:"Cache key miss" AND db.status:UP').total_hits == 20

    def test_gateway_timeout(self):
        s = loaded("payment-gateway-timeout")
        result = s.query("status_code:504 AND metric:latency")
        assert result.total_hits == 15
        assert all(t.startswith("gw-timeout-") for t in result.trace_ids)

    def test_unqualified_terms_search_the_message(self):
        s = loaded("payment-gateway-timeout")
        assert s.query("Gateway").total_hits == 15

    def test_matching_is_case_sensitive(self):
        s = loaded("payment-500-npe")
        assert s.query("log.level:error").total_hits == 0


# ── Query language ────────────────────────────────────────────────────────────

def _records() -> tuple[IndexedLogRecord, ...]:
    def rec(trace, level, status, msg):
        return IndexedLogRecord(
            trace_id=trace,
            text_fields={"status_code": status, "log.message": msg},
            keyword_fields={"log.level": level},
        )

    return (
        rec("a", "ERROR", "500", "Timeout talking to gateway"),
        rec("b", "WARN", "404", "Not found"),
        rec("c", "ERROR", "503", "Gateway Timeout Timeout"),
        rec("d", "INFO", "200", "All good"),
    )


def ids(query: str) -> list[str]:
    records = _records()
    return [records[i].trace_id for i, _ in search(parse_query(query, "log.message"), records)]


class TestQueryLanguage:
    def test_and(self):
        assert sorted(ids("log.level:ERROR AND status_code:500")) == ["a"]

    def test_double_ampersand(self):
        assert sorted(ids("log.level:ERROR && status_code:503")) == ["c"]

    def test_or(self):
        assert sorted(ids("status_code:404 OR status_code:200")) == ["b", "d"]

    def test_adjacent_clauses_default_to_or(self):
        assert sorted(ids("status_code:404 status_code:200")) == ["b", "d"]

    def test_not(self):
        assert sorted(ids("log.level:ERROR AND NOT status_code:500")) == ["c"]

    def test_bang(self):
        assert sorted(ids("log.level:ERROR AND !status_code:500")) == ["c"]

    def test_pure_negation_matches_everything_else(self):
        assert sorted(ids("NOT log.level:ERROR")) == ["b", "d"]

    def test_plus_minus_prefixes(self):
        assert sorted(ids("+log.level:ERROR -status_code:503")) == ["a"]

    def test_grouping(self):
        assert sorted(ids("log.level:ERROR AND (status_code:503 OR status_code:404)")) == ["c"]

    def test_field_scoped_group(self):
        assert sorted(ids("status_code:(404 OR 200)")) == ["b", "d"]

    def test_phrase_requires_adjacent_tokens(self):
        assert ids('"Gateway Timeout"') == ["c"]
        assert ids('"Timeout Gateway"') == []

    def test_wildcards(self):
        assert sorted(ids("status_code:5*")) == ["a", "c"]
        assert sorted(ids("status_code:5?3")) == ["c"]

    def test_field_star_is_existence(self):
        assert len(ids("status_code:*")) == 4

    def test_inclusive_and_exclusive_ranges(self):
        assert sorted(ids("status_code:[500 TO 503]")) == ["a", "c"]
        assert sorted(ids("status_code:{500 TO 503}")) == []
        assert sorted(ids("status_code:[404 TO *]")) == ["a", "b", "c"]

    def test_numeric_comparisons(self):
        assert sorted(ids("status_code:>=500")) == ["a", "c"]
        assert sorted(ids("status_code:<404")) == ["d"]

    def test_match_all(self):
        assert ids("*:*") == ["a", "b", "c", "d"]

    def test_ranking_prefers_higher_term_frequency(self):
        assert ids("Timeout") == ["c", "a"]

    def test_boost_changes_order(self):
        assert ids("talking^10 OR Gateway")[0] == "a"

    def test_ties_keep_insertion_order(self):
        assert ids("log.level:ERROR") == ["a", "c"]

    def test_escaped_colon_is_literal(self):
        records = (IndexedLogRecord(trace_id="x", text_fields={"log.message": "CRITICAL: boom"}),)
        node = parse_query(r"CRITICAL\:", "log.message")
        assert search(node, records) != []


class TestQuerySyntaxErrors:
    @pytest.mark.parametrize("query", [
        "",
        "   ",
        "status_code:",
        "(log.level:ERROR",
        'log.message:"unterminated',
        "status_code:[500 599]",
        "log.level:ERROR AND",
        "a^x",
        "bad field:x)",
    ])
    def test_malformed_queries_raise(self, query):
        with pytest.raises(QuerySyntaxError):
            parse_query(query, "log.message")

    def test_error_is_a_value_error(self):
        assert issubclass(QuerySyntaxError, ValueError)

    def test_store_returns_error_instead_of_raising(self):
        s = loaded("payment-500-npe")
        result = s.query("status_code:(500")
        assert not result.ok
        assert result.total_hits == 0
        assert result.hits == []
        assert "Cannot parse" in result.error

    def test_nesting_limit(self):
        at_limit = "(" * MAX_NESTING + "log.level:ERROR" + ")" * MAX_NESTING
        assert loaded("payment-500-npe").query(at_limit).total_hits == 50
        with pytest.raises(QuerySyntaxError, match="nested too deeply"):
            parse_query("(" * (MAX_NESTING + 1) + "x" + ")" * (MAX_NESTING + 1), "log.message")

    def test_store_rejects_runaway_nesting(self):
        result = loaded("payment-500-npe").query("(" * 400 + "x" + ")" * 400)
        assert result.ok is False
        assert result.total_hits == 0
        assert "nested too deeply" in result.error


# ── Consistency ───────────────────────────────────────────────────────────────

class TestConsistency:
    def test_reads_never_observe_partial_loads(self):
        """Concurrent reseeds between two scenarios: every read sees exactly one of them."""
        s = loaded("healthy")
        valid_counts = {2, 50}
        observed: list[int] = []
        stop = threading.Event()

        def writer():
            for i in range(200):
                s.load_scenario("payment-500-npe" if i % 2 == 0 else "healthy")
            stop.set()

        def reader():
            while not stop.is_set():
                observed.append(s.query("*:*", limit=None).total_hits)

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert observed
        assert set(observed) <= valid_counts

    def test_read_after_load_sees_new_data(self):
        s = loaded("healthy")
        s.load_scenario("inventory-stock-mismatch")
        assert s.query("*:*").total_hits == 5
