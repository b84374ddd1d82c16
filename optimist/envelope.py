"""
Optimist — Action Envelope

Wraps a caller-defined action payload with an identity and a 4-state
status so the reconciliation engine can track it from optimistic
dispatch to confirmation.

Lifecycle:
    PENDING ──resolve_success()──▶ SUCCESS ──(folded by engine)──▶ RESOLVED
       │
       └────resolve_failure()──▶ FAILURE ──(dropped from the queue)

The status cell is the only piece of shared mutable state: resolutions
may arrive on any thread (timers, network callbacks, worker pools)
while the host store is dispatching new actions. Every read and write
goes through the envelope's lock.

Usage:
    from optimist.envelope import create_envelope

    action = create_envelope(Increment())
    store.dispatch(action)                  # optimistic
    ...
    store.dispatch(action.resolve_success())  # or resolve_failure()
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable


class ActionStatus(str, Enum):
    PENDING = "pending"      # Applied optimistically, outcome unknown
    SUCCESS = "success"      # Confirmed by the side effect, not yet folded
    FAILURE = "failure"      # Rejected by the side effect, must be retracted
    RESOLVED = "resolved"    # Folded into the baseline by the engine


# Allowed transitions: from_state → set of valid to_states
_TRANSITIONS: dict[ActionStatus, set[ActionStatus]] = {
    ActionStatus.PENDING: {ActionStatus.SUCCESS, ActionStatus.FAILURE},
    ActionStatus.SUCCESS: {ActionStatus.RESOLVED},
}


@dataclass(frozen=True)
class EnvelopeSnapshot:
    """Consistent point-in-time view of an envelope."""
    id: Hashable
    status: ActionStatus
    payload: Any


class ActionEnvelope:
    """
    Thread-safe optimistic action.

    The id is assigned once at creation and never changes. The payload
    is opaque here and only ever handed to the caller's reducer.
    """

    __slots__ = ("_id", "_payload", "_status", "_lock", "created_at")

    def __init__(self, payload: Any, action_id: Hashable | None = None):
        self._id = action_id if action_id is not None else uuid.uuid4().hex
        self._payload = payload
        self._status = ActionStatus.PENDING
        self._lock = threading.Lock()
        self.created_at = time.time()

    @property
    def id(self) -> Hashable:
        return self._id

    @property
    def payload(self) -> Any:
        return self._payload

    @property
    def status(self) -> ActionStatus:
        with self._lock:
            return self._status

    def snapshot(self) -> EnvelopeSnapshot:
        with self._lock:
            return EnvelopeSnapshot(self._id, self._status, self._payload)

    def _advance(self, target: ActionStatus) -> bool:
        with self._lock:
            if target not in _TRANSITIONS.get(self._status, ()):
                return False
            self._status = target
            return True

    def resolve_success(self) -> ActionEnvelope:
        """Mark the side effect as confirmed. No-op once past PENDING."""
        self._advance(ActionStatus.SUCCESS)
        return self

    def resolve_failure(self) -> ActionEnvelope:
        """Mark the side effect as rejected. No-op once past PENDING."""
        self._advance(ActionStatus.FAILURE)
        return self

    def mark_resolved(self) -> bool:
        """Engine-internal: SUCCESS → RESOLVED. False from any other status."""
        return self._advance(ActionStatus.RESOLVED)

    def __repr__(self) -> str:
        return (f"ActionEnvelope(id={self._id!r}, status={self.status.value}, "
                f"payload={self._payload!r})")


def create_envelope(payload: Any, action_id: Hashable | None = None) -> ActionEnvelope:
    """Wrap a caller payload for optimistic dispatch."""
    return ActionEnvelope(payload, action_id=action_id)


def is_envelope(message: Any) -> bool:
    return isinstance(message, ActionEnvelope)
