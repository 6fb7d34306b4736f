"""
pacing.py — Phase 01: Review Ingestion
----------------------------------------
Fixed-delay pacer shared by the HTTP client (retry backoff), the review
harvester (between pages) and the ingestor (between reply-link calls).

Injected as a collaborator so tests can record delays instead of sleeping.
"""

import time
from typing import Callable


class Pacer:
    """Blocks the calling thread for a fixed delay."""

    def __init__(self, sleep_fn: Callable[[float], None] = time.sleep):
        self._sleep = sleep_fn

    def wait(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)
