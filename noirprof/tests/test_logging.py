"""Tests for noirprof.core.logging — formatters, setup and circuit tagging."""

from __future__ import annotations

import json
import logging
import sys

from noirprof.core.logging import CircuitLogAdapter, DevFormatter, JSONFormatter, setup_logging


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("noirprof.test", logging.INFO, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "noirprof.test"
        assert data["message"] == "hello"

    def test_extra_fields(self):
        record = _record(circuit="main.json", constraints=42, duration_ms=1.5)
        data = json.loads(JSONFormatter().format(record))
        assert data["circuit"] == "main.json"
        assert data["constraints"] == 42
        assert data["duration_ms"] == 1.5
        assert "operation" not in data

    def test_unset_context_is_omitted(self):
        data = json.loads(JSONFormatter().format(_record(circuit=None, operation="sha256")))
        assert "circuit" not in data
        assert data["operation"] == "sha256"
        assert data["source"].startswith("test_logging:")

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "boom"


class TestDevFormatter:
    def test_circuit_prefix(self):
        out = DevFormatter().format(_record(circuit="main.json"))
        assert "[main.json] hello" in out
        assert "noirprof.test" in out

    def test_no_circuit(self):
        assert DevFormatter().format(_record()).endswith("noirprof.test: hello")

    def test_operation_lead(self):
        out = DevFormatter().format(_record("cost=10", circuit="main.json", operation="sha256"))
        assert "[main.json] sha256: cost=10" in out

    def test_metrics_trail_message(self):
        out = DevFormatter().format(_record("done", constraints=42, duration_ms=1.5))
        assert "done \033[2m(constraints=42 duration_ms=1.5)" in out


class TestSetupLogging:
    def test_development_uses_dev_formatter(self):
        setup_logging("development", "DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, DevFormatter)

    def test_production_uses_json(self):
        setup_logging("production", "INFO")
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_warning(self):
        setup_logging("development", "chatty")
        assert logging.getLogger().level == logging.WARNING


class TestCircuitLogAdapter:
    def test_tags_records(self, caplog):
        with caplog.at_level(logging.INFO, logger="noirprof.test"):
            CircuitLogAdapter(logging.getLogger("noirprof.test"), "main.json").info("hello")
        assert caplog.records[-1].circuit == "main.json"

    def test_merges_call_extras(self, caplog):
        adapter = CircuitLogAdapter(logging.getLogger("noirprof.test"), "main.json")
        with caplog.at_level(logging.INFO, logger="noirprof.test"):
            adapter.info("hello", extra={"constraints": 7})
            adapter.info("again", extra={"circuit": "other.json"})
        first, second = caplog.records[-2:]
        assert (first.circuit, first.constraints) == ("main.json", 7)
        assert second.circuit == "other.json"

    def test_leaves_logger_unfiltered(self):
        target = logging.getLogger("noirprof.test")
        CircuitLogAdapter(target, "main.json").info("hello")
        assert target.filters == []
