"""
Tests for structured logging and run metrics.
"""
import json
import logging

import pytest

from kanonar.logging_config import (
    HumanFormatter,
    RunContextFilter,
    JSONFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
)
from kanonar.metrics import LatencyStats, TickMetrics


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


def _record(msg="tick began", **fields):
    record = logging.LogRecord("kanonar.engine", logging.INFO, "", 0, msg, (), None)
    for key, value in fields.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Test the JSON and human formatters."""

    def test_json_fields(self):
        """Structured fields land under their JSON keys."""
        out = json.loads(JSONFormatter().format(_record(
            agent_id="mara", tick=3, event_type="TickStart", subsystem="engine", latency_ms=1.5,
        )))
        assert out["message"] == "tick began"
        assert out["level"] == "INFO"
        assert out["logger"] == "kanonar.engine"
        assert out["agent_id"] == "mara"
        assert out["tick"] == 3
        assert out["event"] == "TickStart"
        assert out["latency_ms"] == 1.5

    def test_json_plain_record(self):
        """A plain record only carries the base keys."""
        out = json.loads(JSONFormatter().format(_record()))
        assert set(out) == {"ts", "level", "logger", "message"}

    def test_run_id_stamped(self):
        """The run filter stamps records that carry no run id."""
        record = _record()
        assert RunContextFilter("breach-7").filter(record)
        assert json.loads(JSONFormatter().format(record))["run_id"] == "breach-7"

    def test_human_prefix(self):
        """The human format shows tick and agent."""
        line = HumanFormatter(use_colors=False).format(_record(tick=3, agent_id="mara", subsystem="goals"))
        assert "[goals]" in line
        assert "t=3" in line
        assert "agent=mara" in line
        assert line.endswith(": tick began")


class TestStructuredLogger:
    """Test the structured logger helpers."""

    @pytest.fixture
    def captured(self):
        base = logging.getLogger("kanonar.tests.structured")
        handler = ListHandler()
        base.addHandler(handler)
        base.setLevel(logging.DEBUG)
        base.propagate = False
        yield get_logger("kanonar.tests.structured"), handler
        base.removeHandler(handler)

    def test_get_logger_type(self, captured):
        """get_logger hands out structured loggers."""
        logger, _ = captured
        assert isinstance(logger, StructuredLogger)

    def test_existing_logger_left_alone(self):
        """Wrapping an existing logger keeps its class and identity."""
        plain = logging.getLogger("kanonar.tests.plain")
        wrapped = get_logger("kanonar.tests.plain")
        assert type(plain) is logging.Logger
        assert wrapped.logger is plain

    def test_disabled_level_skipped(self, captured):
        """Records below the logger level are not emitted."""
        logger, handler = captured
        logger.logger.setLevel(logging.INFO)
        logger.latency("decision", 3.0)
        assert handler.records == []

    def test_event(self, captured):
        """event() attaches the event type and extra data."""
        logger, handler = captured
        logger.event("ActionChosen", "mara chose hide", agent_id="mara", tick=2, score=0.7)
        record = handler.records[-1]
        assert record.event_type == "ActionChosen"
        assert record.agent_id == "mara"
        assert record.extra_data == {"score": 0.7}

    def test_latency(self, captured):
        """latency() logs at debug with the measurement."""
        logger, handler = captured
        logger.latency("decision", 12.5)
        record = handler.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.latency_ms == 12.5
        assert record.getMessage() == "decision completed"


class TestConfigureLogging:
    """Test handler setup."""

    def test_writes_both_files(self, tmp_path):
        """A log directory gets a human log and a JSON log."""
        configure_logging(level="INFO", log_dir=str(tmp_path))
        logging.getLogger("kanonar.tests.files").info("world loaded")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "world loaded" in (tmp_path / "kanonar.log").read_text()
        lines = (tmp_path / "kanonar.json.log").read_text().strip().splitlines()
        assert json.loads(lines[-1])["message"] == "world loaded"

    def test_level_applied(self):
        """The root level follows the argument."""
        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG


class TestMetrics:
    """Test latency statistics and run metrics."""

    def test_latency_stats(self):
        """Percentiles and averages over recorded samples."""
        stats = LatencyStats()
        for ms in range(1, 101):
            stats.record(float(ms))
        assert stats.avg_ms == pytest.approx(50.5)
        assert stats.min_ms == 1.0
        assert stats.p50 == 51.0
        assert stats.p99 == 100.0
        assert LatencyStats().percentile(95) == 0.0

    def test_tick_metrics(self):
        """Stages, actions, fallbacks and skips are counted."""
        metrics = TickMetrics()
        with metrics.timed("decision"):
            pass
        metrics.record_action("hide")
        metrics.record_action("hide")
        metrics.record_tick(fallbacks=1, skips=2)

        data = metrics.to_dict()
        assert data["ticks"] == 1
        assert data["actions"] == {"hide": 2}
        assert data["fallbacks"] == 1
        assert data["skips"] == 2
        assert metrics.stage("decision").count == 1
        assert metrics.summary().startswith("Ticks: 1")
        assert "hide=2" in metrics.summary()

        metrics.reset()
        assert metrics.to_dict()["ticks"] == 0
