"""
batch_dispatcher.py — Phase 04: Webhook Delivery
--------------------------------------------------
Sends the run's ReviewRecords to the automation webhook in ordered,
size-bounded batches.

Delivery rules:
  - Contiguous chunks of at most `batch_size` records, in record order.
  - An empty run still sends ONE batch with count=0, so the receiver can
    tell "no reviews yesterday" from "the job did not run".
  - Batches are POSTed one after another, never concurrently.
  - A non-2xx response is fatal (UpstreamError); transport retries are the
    only retries.

Payload per batch:
  {<run metadata>, batch_index, batch_total, count, data: [...]}
"""

import logging
import time
from typing import Sequence, TypeVar

from phase_00_orchestration.config_loader import mask_secret
from phase_00_orchestration.errors import UpstreamError
from phase_00_orchestration.run_context import RunContext
from phase_01_ingestion.http_client import RetryingHttpClient, is_success
from phase_01_ingestion.review_schema import ReviewRecord


T = TypeVar("T")


# ---------------------------------------------------------------------------
# Phase entry point (called by Phase 00 dispatcher)
# ---------------------------------------------------------------------------

def run(ctx: RunContext, logger: logging.Logger) -> None:
    """
    Execute the delivery phase.

    Raises:
        UpstreamError:  If the webhook rejects a batch.
        TransportError: If a batch cannot be sent after retries.
    """
    logger.info("Phase 04 — Webhook Delivery: starting.")
    start = time.monotonic()

    dispatcher = BatchDispatcher(
        http=ctx.http,
        webhook_url=ctx.config.delivery.webhook_url,
        logger=logger,
    )
    try:
        dispatcher.dispatch(
            records=ctx.records,
            max_batch_size=ctx.config.delivery.batch_size,
            metadata=ctx.delivery_metadata(),
        )
    finally:
        ctx.batches_sent = dispatcher.batches_sent

    elapsed = time.monotonic() - start
    logger.info(
        f"Phase 04 — Webhook Delivery: complete in {elapsed:.1f}s "
        f"({ctx.batches_sent} batch(es), {len(ctx.records)} review(s))."
    )


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------

def chunk_records(records: Sequence[T], max_size: int) -> list[list[T]]:
    """
    Split into ordered chunks of at most `max_size`.

    Always returns at least one chunk; `max_size <= 0` disables splitting.
    """
    if max_size <= 0:
        return [list(records)]
    chunks = [list(records[i:i + max_size]) for i in range(0, len(records), max_size)]
    return chunks or [[]]


def build_batches(
    records: Sequence[ReviewRecord],
    max_size: int,
    metadata: dict,
) -> list[dict]:
    chunks = chunk_records(records, max_size)
    total = len(chunks)
    return [
        {
            **metadata,
            "batch_index": idx,
            "batch_total": total,
            "count":       len(chunk),
            "data":        [record.to_payload() for record in chunk],
        }
        for idx, chunk in enumerate(chunks, start=1)
    ]


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

class BatchDispatcher:

    def __init__(self, http: RetryingHttpClient, webhook_url: str, logger: logging.Logger):
        self._http = http
        self._webhook_url = webhook_url
        self._logger = logger
        self.batches_sent = 0

    def dispatch(
        self,
        records: Sequence[ReviewRecord],
        max_batch_size: int,
        metadata: dict,
    ) -> int:
        """
        POST every batch in order.

        Returns:
            int: Number of batches delivered.

        Raises:
            UpstreamError: On the first rejected batch; `batches_sent` still
                           counts the batches accepted before it.
        """
        batches = build_batches(records, max_batch_size, metadata)
        self._logger.info(
            f"  Sending {len(batches)} batch(es) to {mask_secret(self._webhook_url)} ..."
        )

        for payload in batches:
            self._post(payload)
            self.batches_sent += 1
        return self.batches_sent

    def _post(self, payload: dict) -> None:
        label = f"batch {payload['batch_index']}/{payload['batch_total']}"
        resp = self._http.request(
            "POST",
            self._webhook_url,
            headers={"Content-Type": "application/json"},
            json_body=payload,
        )
        body = resp.text or ""
        self._logger.info(f"  Webhook {label} ({payload['count']} review(s)): HTTP {resp.status_code}")
        if body:
            self._logger.debug(f"  Webhook body (first 500 chars): {body[:500]}")

        if not is_success(resp):
            raise UpstreamError(
                f"Webhook error on {label}: {resp.status_code}: {body[:500]}",
                status=resp.status_code,
            )
