"""
worker_pool.py — Phase 01: Review Ingestion
---------------------------------------------
Bounded fan-out of a worker over many items.

  - At most `limit` workers run at the same time (thread pool size).
  - A worker that raises is logged and recorded on its outcome; siblings
    keep running.
  - Outcomes are returned in INPUT order regardless of completion order,
    so the calling thread is the only one assembling results.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar


T = TypeVar("T")
R = TypeVar("R")


@dataclass
class PoolOutcome(Generic[T, R]):
    item: T
    result: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_bounded(
    limit: int,
    items: Sequence[T],
    worker: Callable[[T], R],
    logger: logging.Logger,
    label: Callable[[T], Any] = str,
) -> list[PoolOutcome[T, R]]:
    """
    Run `worker(item)` for every item with at most `limit` in flight.

    Args:
        limit:  Maximum concurrent workers (values below 1 mean 1).
        items:  Work items; their order defines the order of the outcomes.
        worker: Callable executed once per item.
        logger: Bound logger for the run.
        label:  Renders an item for error log lines.

    Returns:
        list[PoolOutcome]: One outcome per item, in input order.
    """
    outcomes: list[PoolOutcome[T, R]] = [PoolOutcome(item=item) for item in items]
    if not items:
        return outcomes

    with ThreadPoolExecutor(max_workers=max(1, limit)) as executor:
        futures = {executor.submit(worker, item): idx for idx, item in enumerate(items)}

        for future in as_completed(futures):
            idx = futures[future]
            try:
                outcomes[idx].result = future.result()
            except Exception as exc:
                logger.error(f"  Worker failed for {label(items[idx])}: {exc}")
                outcomes[idx].error = exc

    return outcomes
