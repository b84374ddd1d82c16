"""
Optimist — Optimistic Reducer

Wraps a caller-supplied pure reducer `(state, action) -> state` and
reconciles optimistic predictions against their eventual outcome.

For every dispatched message the host store calls reduce(state, message):

  plain message      → delegate(state, message), no bookkeeping
  PENDING envelope   → snapshot baseline if idle, enqueue, apply predicted effect
  SUCCESS envelope   → mark RESOLVED, fold the resolved head of the queue
                       into the baseline, return state untouched
  FAILURE envelope   → drop the action, fold the resolved head, replay the
                       remaining queue from the baseline (rollback)
  RESOLVED envelope  → delegate(state, payload)

Ordering: an action is folded into the baseline only after every action
dispatched before it has resolved. Later actions that succeed first
wait in the queue as RESOLVED.

Invariant after every completed call: the baseline is set iff the queue
is non-empty.

reduce() is single-writer. The host serializes dispatch; only the
envelope status cell is safe to touch from other threads.

Usage:
    from optimist import create_envelope, create_optimistic_reducer

    reducer = create_optimistic_reducer(counter_reducer)
    action = create_envelope(Increment())
    state = reducer(state, action)                      # optimistic
    state = reducer(state, action.resolve_failure())    # rolled back
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Generic, Hashable, TypeVar

from optimist.config import ReconcilerConfig
from optimist.envelope import ActionEnvelope, ActionStatus, EnvelopeSnapshot, is_envelope
from optimist.errors import BaselineUnset, InvalidResolution
from optimist.trace import ReconcileTrace, get_trace

logger = logging.getLogger("optimist.reducer")

S = TypeVar("S")
Reducer = Callable[[S, Any], S]


class OptimisticReducer(Generic[S]):
    """
    Reducer-transforming reducer with a pending queue and a baseline.

    Instances are callable, so the engine itself can be handed to a host
    store in place of the delegate.
    """

    def __init__(
        self,
        delegate: Reducer,
        config: ReconcilerConfig | None = None,
        trace: ReconcileTrace | None = None,
    ):
        self._delegate = delegate
        self._config = config or ReconcilerConfig()
        self._trace = trace
        self._queue: list[ActionEnvelope] = []
        self._baseline: Any = None
        self._has_baseline = False

    def __call__(self, state: S, message: Any) -> S:
        return self.reduce(state, message)

    # ── Entry point ──────────────────────────────────────────

    def reduce(self, state: S, message: Any) -> S:
        if not is_envelope(message):
            return self._delegate(state, message)

        snap = message.snapshot()
        if snap.status is ActionStatus.PENDING:
            return self._reduce_pending(state, message, snap)
        if snap.status is ActionStatus.SUCCESS:
            return self._reduce_success(state, snap)
        if snap.status is ActionStatus.FAILURE:
            return self._reduce_failure(state, snap)
        return self._delegate(state, snap.payload)

    # ── Branches ─────────────────────────────────────────────

    def _reduce_pending(self, state: S, message: ActionEnvelope, snap: EnvelopeSnapshot) -> S:
        baseline_taken = not self._queue
        if baseline_taken:
            self._set_baseline(self._capture(state))
        self._queue.append(message)
        self._tracer().on_enqueue(snap.id, len(self._queue), baseline_taken)
        return self._delegate(state, snap.payload)

    def _reduce_success(self, state: S, snap: EnvelopeSnapshot) -> S:
        if not self._queue:
            return self._invalid_resolution(state, snap)

        matched = False
        for entry in self._queue:
            if entry.id == snap.id:
                # A separate envelope may carry a queued id; confirm the entry first
                entry.resolve_success()
                entry.mark_resolved()
                matched = True
        if not matched:
            self._unknown_id(snap)

        self._fold_resolved_prefix()
        if not self._queue:
            self._clear_baseline()
        # The optimistic state already carries this action's effect
        return state

    def _reduce_failure(self, state: S, snap: EnvelopeSnapshot) -> S:
        if not self._queue:
            return self._invalid_resolution(state, snap)

        remaining = [entry for entry in self._queue if entry.id != snap.id]
        if len(remaining) == len(self._queue):
            self._unknown_id(snap)
        self._queue = remaining

        self._fold_resolved_prefix()
        new_state = self._replay(self._baseline)
        self._tracer().on_rollback(snap.id, len(self._queue))

        if not self._queue:
            self._clear_baseline()
        return new_state

    # ── Queue / baseline helpers ─────────────────────────────

    def _fold_resolved_prefix(self):
        """Pop the contiguous RESOLVED head of the queue into the baseline."""
        count = 0
        for entry in self._queue:
            if entry.status is not ActionStatus.RESOLVED:
                break
            count += 1
        if count == 0:
            return

        prefix = self._queue[:count]
        del self._queue[:count]

        folded = self._baseline
        for entry in prefix:
            folded = self._delegate(folded, entry.payload)
        self._baseline = folded

        ids = tuple(entry.id for entry in prefix)
        self._tracer().on_fold(ids, len(self._queue))

    def _replay(self, start: Any) -> Any:
        state = start
        for entry in self._queue:
            state = self._delegate(state, entry.payload)
        return state

    def _capture(self, state: S) -> S:
        if self._config.snapshot == "deepcopy":
            return copy.deepcopy(state)
        return state

    def _set_baseline(self, state: Any):
        self._baseline = state
        self._has_baseline = True

    def _clear_baseline(self):
        self._baseline = None
        self._has_baseline = False

    def _tracer(self) -> ReconcileTrace:
        return self._trace if self._trace is not None else get_trace()

    # ── Error paths ──────────────────────────────────────────

    def _invalid_resolution(self, state: S, snap: EnvelopeSnapshot) -> S:
        if self._config.strict_resolution:
            raise InvalidResolution(snap.id, snap.status.value)
        logger.warning(
            "Ignoring %s for action %r: no pending actions (late or duplicate resolution)",
            snap.status.value, snap.id,
        )
        self._tracer().on_invalid_resolution(snap.id, snap.status.value)
        return state

    def _unknown_id(self, snap: EnvelopeSnapshot):
        logger.debug("No queued action matches %s for %r", snap.status.value, snap.id)
        self._tracer().on_unknown_id(snap.id, snap.status.value)

    # ── Introspection ────────────────────────────────────────

    @property
    def config(self) -> ReconcilerConfig:
        return self._config

    @property
    def has_baseline(self) -> bool:
        return self._has_baseline

    @property
    def baseline(self) -> Any:
        if not self._has_baseline:
            raise BaselineUnset("No baseline: nothing is pending")
        return self._baseline

    def pending_ids(self) -> tuple[Hashable, ...]:
        return tuple(entry.id for entry in self._queue)

    def queue_snapshot(self) -> tuple[EnvelopeSnapshot, ...]:
        return tuple(entry.snapshot() for entry in self._queue)

    def optimistic_state(self) -> Any:
        """Baseline with every queued action replayed, or None when idle."""
        if not self._has_baseline:
            return None
        return self._replay(self._baseline)


def create_optimistic_reducer(
    delegate: Reducer,
    config: ReconcilerConfig | None = None,
    trace: ReconcileTrace | None = None,
) -> OptimisticReducer:
    """Wrap `delegate` so optimistic envelopes are reconciled."""
    return OptimisticReducer(delegate, config=config, trace=trace)
