"""
Optimist — Structured Logging

Implements the ReconcileTrace protocol from optimist.trace to emit
structured JSON log lines for every reconciliation event.

Usage:
    from optimist.logging import StructuredLogger, configure_logging

    configure_logging(level="INFO")
    trace = StructuredLogger(store="cart")
    reducer = OptimisticReducer(cart_reducer, trace=trace)
"""

from __future__ import annotations

import json
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any


# ═══════════════════════════════════════════════════════════════════
# JSON Formatter
# ═══════════════════════════════════════════════════════════════════

class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def __init__(self, service_name: str = "optimist"):
        super().__init__()
        self.service_name = service_name
        self.service_version = os.environ.get("OPT_VERSION", "0.1.0")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service.name": self.service_name,
            "service.version": self.service_version,
        }

        if hasattr(record, "structured"):
            entry.update(record.structured)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception.type"] = record.exc_info[0].__name__
            entry["exception.message"] = str(record.exc_info[1])

        return json.dumps(entry, default=str)


# ═══════════════════════════════════════════════════════════════════
# Log Configuration
# ═══════════════════════════════════════════════════════════════════

def configure_logging(
    level: str = "INFO",
    stream: Any = None,
    service_name: str = "optimist",
) -> logging.Logger:
    """
    Configure the optimist logger with JSON output.

    Args:
        level: DEBUG, INFO, WARNING, ERROR
        stream: Output stream (default: sys.stderr)
        service_name: Service name in log entries

    Returns:
        The configured optimist logger
    """
    logger = logging.getLogger("optimist")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers on reconfigure
    logger.handlers.clear()

    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith("optimist."):
            child = logging.getLogger(name)
            child.handlers.clear()
            child.setLevel(logging.NOTSET)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter(service_name=service_name))
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = "") -> logging.Logger:
    """Get a child logger under the optimist namespace."""
    if name:
        return logging.getLogger(f"optimist.{name}")
    return logging.getLogger("optimist")


def generate_trace_id() -> str:
    """32 hex chars, W3C trace-context compatible."""
    return uuid.uuid4().hex


# ═══════════════════════════════════════════════════════════════════
# Structured Logger (implements ReconcileTrace)
# ═══════════════════════════════════════════════════════════════════

class StructuredLogger:
    """
    Structured logger that implements the ReconcileTrace protocol.

    Pass as `trace=` to OptimisticReducer, or install globally with
    optimist.trace.set_trace(logger). Every entry carries trace_id and
    the store name so several stores can share one log stream.
    """

    def __init__(
        self,
        store: str = "",
        trace_id: str | None = None,
        parent_trace_id: str | None = None,
    ):
        self.store = store
        self.trace_id = trace_id or generate_trace_id()
        self.parent_trace_id = parent_trace_id
        self._logger = get_logger("trace")

    def child(self, store: str = "") -> StructuredLogger:
        """Create a logger for a nested store sharing this lineage."""
        return StructuredLogger(
            store=store or self.store,
            trace_id=generate_trace_id(),
            parent_trace_id=self.trace_id,
        )

    def _base_fields(self) -> dict[str, Any]:
        fields = {
            "trace_id": self.trace_id,
            "store": self.store,
        }
        if self.parent_trace_id:
            fields["parent_trace_id"] = self.parent_trace_id
        return fields

    def _emit(self, level: int, action: str, **fields):
        if not self._logger.isEnabledFor(level):
            return
        structured = {**self._base_fields(), "action": action, **fields}
        record = self._logger.makeRecord(
            name=self._logger.name,
            level=level,
            fn="", lno=0, msg=action,
            args=(), exc_info=None,
        )
        record.structured = structured
        self._logger.handle(record)

    # ── ReconcileTrace Protocol ─────────────────────────────────

    def on_enqueue(self, action_id: Any, queue_depth: int, baseline_taken: bool) -> None:
        self._emit(
            logging.DEBUG, "enqueue",
            action_id=action_id,
            queue_depth=queue_depth,
            baseline_taken=baseline_taken,
        )

    def on_fold(self, action_ids: tuple, queue_depth: int) -> None:
        self._emit(
            logging.INFO, "fold",
            action_ids=list(action_ids),
            folded=len(action_ids),
            queue_depth=queue_depth,
        )

    def on_rollback(self, action_id: Any, queue_depth: int) -> None:
        self._emit(
            logging.INFO, "rollback",
            action_id=action_id,
            queue_depth=queue_depth,
        )

    def on_invalid_resolution(self, action_id: Any, status: str) -> None:
        self._emit(
            logging.WARNING, "invalid_resolution",
            action_id=action_id,
            status=status,
        )

    def on_unknown_id(self, action_id: Any, status: str) -> None:
        self._emit(
            logging.DEBUG, "unknown_id",
            action_id=action_id,
            status=status,
        )
