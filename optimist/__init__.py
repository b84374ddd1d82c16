"""
Optimist — Optimistic State Reconciliation

Apply the predicted effect of an action immediately, then reconcile
it when the asynchronous operation behind it succeeds or fails.

Usage:
    from optimist import create_envelope, create_optimistic_reducer

    reducer = create_optimistic_reducer(todo_reducer)
    store = Store(reducer, initial_state)

    action = create_envelope(AddTodo("buy milk"))
    store.dispatch(action)                       # shows up right away
    api.save(...).add_done_callback(
        lambda f: store.dispatch(
            action.resolve_failure() if f.exception() else action.resolve_success()
        )
    )
"""

from optimist.envelope import (
    ActionEnvelope,
    ActionStatus,
    EnvelopeSnapshot,
    create_envelope,
    is_envelope,
)
from optimist.errors import OptimistError, InvalidResolution, BaselineUnset
from optimist.config import ReconcilerConfig, load_reconciler_config
from optimist.reducer import OptimisticReducer, create_optimistic_reducer

__all__ = [
    "ActionEnvelope",
    "ActionStatus",
    "EnvelopeSnapshot",
    "create_envelope",
    "is_envelope",
    "OptimistError",
    "InvalidResolution",
    "BaselineUnset",
    "ReconcilerConfig",
    "load_reconciler_config",
    "OptimisticReducer",
    "create_optimistic_reducer",
]
