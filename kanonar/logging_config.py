"""
Logging setup for simulation runs.

The console gets a compact human line per record. With a log directory,
two rotating files are written as well: ``kanonar.log`` (human) and
``kanonar.json.log`` (one JSON object per line). Records produced through
``StructuredLogger`` carry simulation context (run, tick, agent, subsystem)
which both formats render.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional, Tuple

# record attribute -> JSON key
STRUCTURED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("subsystem", "subsystem"),
    ("run_id", "run_id"),
    ("tick", "tick"),
    ("agent_id", "agent_id"),
    ("event_type", "event"),
    ("latency_ms", "latency_ms"),
)

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
RESET = "\033[0m"


def _field(record: logging.LogRecord, name: str) -> Any:
    value = getattr(record, name, None)
    # "general" is the unset subsystem
    if value == "" or (name == "subsystem" and value == "general"):
        return None
    return value


class RunContextFilter(logging.Filter):
    """Stamps the run id on every record passing through a handler."""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "run_id", None):
            record.run_id = self.run_id
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; context fields only when set."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr, key in STRUCTURED_FIELDS:
            value = _field(record, attr)
            if value is not None:
                out[key] = value

        extra = getattr(record, "extra_data", None)
        if extra:
            out.update(extra)
        if record.exc_info:
            out["exception"] = self.formatException(record.exc_info)
        return json.dumps(out, default=str)


class HumanFormatter(logging.Formatter):
    """``HH:MM:SS.mmm LEVL [subsystem] t=<tick> agent=<id>: message``"""

    PREFIXES = (
        ("subsystem", "[{}]"),
        ("tick", "t={}"),
        ("agent_id", "agent={}"),
    )

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        parts = [stamp, record.levelname[:4]]
        for attr, template in self.PREFIXES:
            value = _field(record, attr)
            if value is not None:
                parts.append(template.format(value))

        message = record.getMessage()
        latency = _field(record, "latency_ms")
        if latency is not None:
            message += f" ({latency:.1f}ms)"

        line = f"{' '.join(parts)}: {message}"
        if self.use_colors and sys.stderr.isatty():
            line = f"{LEVEL_COLORS.get(record.levelno, '')}{line}{RESET}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.LoggerAdapter):
    """
    Adapter whose helpers attach simulation context to the record.

    The context travels as ``extra`` fields, so any handler or formatter
    sees it as plain record attributes.
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    def _log_structured(
        self,
        level: int,
        msg: str,
        agent_id: Optional[str] = None,
        tick: Optional[int] = None,
        subsystem: str = "general",
        event_type: Optional[str] = None,
        latency_ms: Optional[float] = None,
        **extra,
    ) -> None:
        if not self.isEnabledFor(level):
            return
        self.logger.log(level, msg, extra={
            "agent_id": agent_id,
            "tick": tick,
            "subsystem": subsystem,
            "event_type": event_type,
            "latency_ms": latency_ms,
            "extra_data": extra,
        })

    def event(self, event_type: str, msg: str, **kwargs) -> None:
        """Log a simulation event at INFO; unknown kwargs become JSON fields."""
        self._log_structured(logging.INFO, msg, event_type=event_type, **kwargs)

    def latency(self, operation: str, latency_ms: float, **kwargs) -> None:
        """Log how long ``operation`` took, at DEBUG."""
        self._log_structured(logging.DEBUG, f"{operation} completed", latency_ms=latency_ms, **kwargs)


def _rotating(path: str, formatter: logging.Formatter, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    json_file: Optional[str] = None,
    run_id: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Replace the root handlers with the console and optional file handlers.

    Args:
        level: Log level name, case-insensitive
        log_dir: Directory for ``kanonar.log`` and the JSON log
        json_file: JSON log file name or absolute path
        run_id: Stamped on every record when given
        max_bytes: Rotation size per file
        backup_count: Rotated files kept per log
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    root.handlers = []

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(HumanFormatter())
    handlers = [console]

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        json_path = json_file or "kanonar.json.log"
        if not os.path.isabs(json_path):
            json_path = os.path.join(log_dir, json_path)
        handlers.append(_rotating(os.path.join(log_dir, "kanonar.log"),
                                  HumanFormatter(use_colors=False), max_bytes, backup_count))
        handlers.append(_rotating(json_path, JSONFormatter(), max_bytes, backup_count))

    for handler in handlers:
        if run_id:
            handler.addFilter(RunContextFilter(run_id))
        root.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger wrapping ``logging.getLogger(name)``."""
    return StructuredLogger(logging.getLogger(name))
