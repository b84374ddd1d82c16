"""
Optimist — Fixture Store & Virtual Scheduler

Minimal host-side harness for exercising OptimisticReducer the way a
real application would: a serialized store, a deterministic clock, and
a resolver that answers optimistic actions after a delay.

    Store             single-writer dispatch under an RLock, listeners
    VirtualScheduler  virtual time; callbacks run on advance_time_by()
    ResolutionEpic    PENDING envelope → (delay) → resolve_success/failure
                      → dispatched back into the store

Usage:
    from fixtures.store import Store, VirtualScheduler, ResolutionEpic

    scheduler = VirtualScheduler()
    store = Store(create_optimistic_reducer(counter_reducer), CounterState())
    ResolutionEpic(store, scheduler, {Increment: "success", Decrement: "failure"})

    store.dispatch(create_envelope(Increment()))
    scheduler.advance_time_by(2)
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from typing import Any, Callable

from optimist.envelope import ActionStatus, is_envelope

logger = logging.getLogger("optimist.fixtures")

Listener = Callable[[Any, Any], None]


class Store:
    """Serialized state container: every dispatch runs the reducer under one lock."""

    def __init__(self, reducer: Callable[[Any, Any], Any], initial_state: Any):
        self._reducer = reducer
        self._state = initial_state
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> Any:
        with self._lock:
            return self._state

    def dispatch(self, message: Any) -> Any:
        with self._lock:
            self._state = self._reducer(self._state, message)
            state = self._state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(message, state)
        return message

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe


class VirtualScheduler:
    """Deterministic clock. Nothing runs until time is advanced."""

    def __init__(self):
        self._now = 0.0
        self._heap: list[tuple[float, int, Callable[[], Any]]] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    @property
    def now(self) -> float:
        return self._now

    def schedule(self, delay: float, fn: Callable[[], Any]):
        with self._lock:
            heapq.heappush(self._heap, (self._now + delay, next(self._seq), fn))

    def pending(self) -> int:
        with self._lock:
            return len(self._heap)

    def advance_time_by(self, seconds: float) -> int:
        """Run every callback due within the window. Returns how many ran."""
        target = self._now + seconds
        ran = 0
        while True:
            with self._lock:
                if not self._heap or self._heap[0][0] > target:
                    break
                due, _, fn = heapq.heappop(self._heap)
            self._now = due
            fn()
            ran += 1
        self._now = target
        return ran


class ResolutionEpic:
    """
    Answers optimistic actions by payload type after a fixed delay.

    outcomes maps a payload class to "success" or "failure". Payloads with
    no entry are left pending.
    """

    def __init__(
        self,
        store: Store,
        scheduler: VirtualScheduler,
        outcomes: dict[type, str],
        delay: float = 1.0,
    ):
        for outcome in outcomes.values():
            if outcome not in ("success", "failure"):
                raise ValueError(f"Unknown outcome {outcome!r}")
        self._store = store
        self._scheduler = scheduler
        self._outcomes = outcomes
        self._delay = delay
        self.unsubscribe = store.subscribe(self._on_dispatch)

    def _on_dispatch(self, message: Any, state: Any):
        if not is_envelope(message) or message.status is not ActionStatus.PENDING:
            return
        outcome = self._outcomes.get(type(message.payload))
        if outcome is None:
            return

        def resolve():
            if outcome == "success":
                self._store.dispatch(message.resolve_success())
            else:
                self._store.dispatch(message.resolve_failure())
            logger.debug("Resolved %r as %s", message.id, outcome)

        self._scheduler.schedule(self._delay, resolve)
