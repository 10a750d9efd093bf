import json
import logging

from app.observability import JsonFormatter, metrics_store, set_request_id


def test_metrics_store_reset_clears_counters_and_timings():
    metrics_store.increment("orders_created_total")
    metrics_store.observe("order_creation_seconds", 0.25)

    metrics_store.reset()

    snapshot = metrics_store.snapshot()
    assert snapshot.counters == {}
    assert snapshot.timings == {}


def test_metrics_store_summarizes_timings():
    metrics_store.observe("order_creation_seconds", 0.1)
    metrics_store.observe("order_creation_seconds", 0.3)

    timing = metrics_store.snapshot().timings["order_creation_seconds"]

    assert timing["count"] == 2
    assert timing["max_s"] == 0.3
    assert abs(timing["avg_s"] - 0.2) < 1e-9


def test_json_formatter_carries_order_context():
    set_request_id("req-9")
    record = logging.LogRecord("stockflow.orders", logging.INFO, __file__, 1, "hello", None, None)
    record.order_id = "42"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello"
    assert payload["order_id"] == "42"
    assert payload["request_id"] == "req-9"
    assert payload["agent_id"] is None
