"""
Optimist — Store Integration Tests

Drives OptimisticReducer through the fixture Store with resolutions
delivered by a delayed resolver on virtual time, the way an application
answers optimistic actions from network callbacks.

  - successful transaction preserves optimistic state
  - unsuccessful transaction reverts optimistic state
  - interleaved transactions settle to baseline + confirmed effects
  - resolutions racing in from worker threads settle consistently
"""

import os
import sys
import threading
import unittest
from dataclasses import dataclass

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fixtures.store import ResolutionEpic, Store, VirtualScheduler
from optimist import create_envelope, create_optimistic_reducer


@dataclass(frozen=True)
class CounterState:
    count: int = 0


class Increment:
    pass


class Decrement:
    pass


def counter_reducer(state, action):
    if isinstance(action, Increment):
        return CounterState(state.count + 1)
    if isinstance(action, Decrement):
        return CounterState(state.count - 1)
    return state


class TestDispatch(unittest.TestCase):

    def setUp(self):
        self.scheduler = VirtualScheduler()
        self.reducer = create_optimistic_reducer(counter_reducer)
        self.store = Store(self.reducer, CounterState())
        ResolutionEpic(
            self.store, self.scheduler,
            {Increment: "success", Decrement: "failure"},
            delay=1.0,
        )

    def test_successful_transaction_preserves_optimistic_state(self):
        self.store.dispatch(create_envelope(Increment()))
        old_state = self.store.state
        self.assertEqual(old_state, CounterState(1))
        self.scheduler.advance_time_by(2)
        self.assertEqual(self.store.state, old_state)
        self.assertFalse(self.reducer.has_baseline)

    def test_unsuccessful_transaction_reverts_optimistic_state(self):
        old_state = self.store.state
        self.store.dispatch(create_envelope(Decrement()))
        self.assertEqual(self.store.state, CounterState(-1))
        self.scheduler.advance_time_by(2)
        self.assertEqual(self.store.state, old_state)
        self.assertFalse(self.reducer.has_baseline)

    def test_nothing_resolves_before_delay(self):
        self.store.dispatch(create_envelope(Decrement()))
        self.assertEqual(self.scheduler.advance_time_by(0.5), 0)
        self.assertEqual(self.store.state, CounterState(-1))
        self.assertEqual(len(self.reducer.pending_ids()), 1)

    def test_interleaved_transactions(self):
        self.store.dispatch(create_envelope(Increment()))
        self.scheduler.advance_time_by(0.5)
        self.store.dispatch(create_envelope(Decrement()))
        self.store.dispatch(create_envelope(Increment()))
        self.assertEqual(self.store.state, CounterState(1))

        # first Increment confirms
        self.scheduler.advance_time_by(0.5)
        self.assertEqual(self.store.state, CounterState(1))
        self.assertEqual(self.reducer.baseline, CounterState(1))

        # Decrement fails, second Increment confirms
        self.scheduler.advance_time_by(0.5)
        self.assertEqual(self.store.state, CounterState(2))
        self.assertFalse(self.reducer.has_baseline)

    def test_plain_messages_reach_delegate(self):
        self.store.dispatch(Increment())
        self.assertEqual(self.store.state, CounterState(1))
        self.assertEqual(self.scheduler.pending(), 0)


class TestListeners(unittest.TestCase):

    def test_subscribe_and_unsubscribe(self):
        store = Store(create_optimistic_reducer(counter_reducer), CounterState())
        seen = []
        unsubscribe = store.subscribe(lambda message, state: seen.append(state.count))
        store.dispatch(Increment())
        unsubscribe()
        store.dispatch(Increment())
        self.assertEqual(seen, [1])

    def test_unknown_outcome_rejected(self):
        store = Store(counter_reducer, CounterState())
        with self.assertRaises(ValueError):
            ResolutionEpic(store, VirtualScheduler(), {Increment: "maybe"})


class TestConcurrentResolution(unittest.TestCase):
    """Resolutions produced on worker threads, funneled through dispatch."""

    def test_worker_threads_settle_to_confirmed_effects(self):
        reducer = create_optimistic_reducer(counter_reducer)
        store = Store(reducer, CounterState())

        envelopes = [create_envelope(Increment() if i % 3 else Decrement()) for i in range(30)]
        for env in envelopes:
            store.dispatch(env)
        self.assertEqual(store.state, CounterState(20 - 10))

        def resolver(chunk):
            for env in chunk:
                if isinstance(env.payload, Decrement):
                    store.dispatch(env.resolve_failure())
                else:
                    store.dispatch(env.resolve_success())

        threads = [
            threading.Thread(target=resolver, args=(envelopes[i::4],))
            for i in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(store.state, CounterState(20))
        self.assertEqual(reducer.pending_ids(), ())
        self.assertFalse(reducer.has_baseline)


if __name__ == "__main__":
    unittest.main()
