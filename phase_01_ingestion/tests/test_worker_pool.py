"""
test_worker_pool.py — Unit tests for Phase 01: bounded worker pool
--------------------------------------------------------------------
Test coverage:
  1. Never more than `limit` workers in flight
  2. One failing worker does not affect its siblings
  3. Outcomes come back in input order, not completion order
  4. Empty input and limit < 1
"""

import logging
import threading
import time
import unittest

from phase_01_ingestion.worker_pool import run_bounded


NULL_LOGGER = logging.getLogger("test.null")
NULL_LOGGER.addHandler(logging.NullHandler())


class TestRunBounded(unittest.TestCase):

    def test_concurrency_limit_respected(self):
        lock = threading.Lock()
        state = {"in_flight": 0, "max_in_flight": 0}

        def worker(item):
            with lock:
                state["in_flight"] += 1
                state["max_in_flight"] = max(state["max_in_flight"], state["in_flight"])
            time.sleep(0.02)
            with lock:
                state["in_flight"] -= 1
            return item

        outcomes = run_bounded(2, list(range(8)), worker, NULL_LOGGER)
        self.assertEqual([o.result for o in outcomes], list(range(8)))
        self.assertLessEqual(state["max_in_flight"], 2)

    def test_failure_is_isolated(self):
        def worker(item):
            if item == "B":
                raise RuntimeError("location B exploded")
            return item.lower()

        outcomes = run_bounded(3, ["A", "B", "C"], worker, NULL_LOGGER)

        self.assertEqual([o.ok for o in outcomes], [True, False, True])
        self.assertEqual(outcomes[0].result, "a")
        self.assertEqual(outcomes[2].result, "c")
        self.assertIn("exploded", str(outcomes[1].error))

    def test_results_in_input_order(self):
        delays = {"first": 0.05, "second": 0.01, "third": 0.0}

        def worker(item):
            time.sleep(delays[item])
            return item

        outcomes = run_bounded(3, list(delays), worker, NULL_LOGGER)
        self.assertEqual([o.item for o in outcomes], ["first", "second", "third"])
        self.assertEqual([o.result for o in outcomes], ["first", "second", "third"])

    def test_empty_input(self):
        self.assertEqual(run_bounded(5, [], lambda item: item, NULL_LOGGER), [])

    def test_limit_below_one_still_runs(self):
        outcomes = run_bounded(0, [1, 2], lambda item: item * 10, NULL_LOGGER)
        self.assertEqual([o.result for o in outcomes], [10, 20])


if __name__ == "__main__":
    unittest.main()
