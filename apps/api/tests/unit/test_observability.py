import json
import logging

from readyset.observability import JsonFormatter, MetricsStore, observe_timing, metrics_store


def test_metrics_store_snapshot_aggregates_timings():
    store = MetricsStore()
    store.increment("tracking_deliveries_query_failed_total")
    store.increment("tracking_deliveries_query_failed_total", 2)
    store.observe("tracking_deliveries_query_seconds", 0.2)
    store.observe("tracking_deliveries_query_seconds", 0.4)

    snapshot = store.snapshot()

    assert snapshot.counters == {"tracking_deliveries_query_failed_total": 3}
    timing = snapshot.timings["tracking_deliveries_query_seconds"]
    assert timing["count"] == 2.0
    assert timing["max_s"] == 0.4
    assert abs(timing["avg_s"] - 0.3) < 1e-9


def test_observe_timing_records_into_global_store():
    with observe_timing("unit_test_seconds"):
        pass

    assert metrics_store.snapshot().timings["unit_test_seconds"]["count"] == 1.0


def test_json_formatter_includes_context_fields():
    record = logging.LogRecord(
        name="readyset.tracking",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Could not fetch from deliveries table",
        args=(),
        exc_info=None,
    )
    record.source = "deliveries"
    record.delivery_id = "del-1"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "Could not fetch from deliveries table"
    assert payload["source"] == "deliveries"
    assert payload["delivery_id"] == "del-1"
    assert payload["driver_id"] is None
    assert "error" not in payload
