"""
Optimist — Trace Infrastructure

Lightweight tracing protocol for reconciliation events.
No dependencies beyond the standard library.
"""

from __future__ import annotations
from typing import Any, Protocol


class ReconcileTrace(Protocol):
    def on_enqueue(self, action_id: Any, queue_depth: int, baseline_taken: bool) -> None: ...
    def on_fold(self, action_ids: tuple, queue_depth: int) -> None: ...
    def on_rollback(self, action_id: Any, queue_depth: int) -> None: ...
    def on_invalid_resolution(self, action_id: Any, status: str) -> None: ...
    def on_unknown_id(self, action_id: Any, status: str) -> None: ...


class NullTrace:
    """No-op tracer when tracing is disabled."""
    def on_enqueue(self, *a, **kw): pass
    def on_fold(self, *a, **kw): pass
    def on_rollback(self, *a, **kw): pass
    def on_invalid_resolution(self, *a, **kw): pass
    def on_unknown_id(self, *a, **kw): pass


# Global trace callback, used by reducers created without an explicit trace
_trace: ReconcileTrace = NullTrace()


def set_trace(callback: ReconcileTrace):
    global _trace
    _trace = callback


def get_trace() -> ReconcileTrace:
    return _trace
