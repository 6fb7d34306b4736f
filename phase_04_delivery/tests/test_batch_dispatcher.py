"""
test_batch_dispatcher.py — Unit tests for Phase 04: webhook delivery
----------------------------------------------------------------------
All tests are fully offline — the HTTP client is a recording fake.

Test coverage:
  chunk_records():
    1. 205 records / 200 -> [200, 5], order preserved
    2. 0 records -> exactly one empty chunk
    3. max_size <= 0 -> single chunk
  BatchDispatcher:
    4. Batch metadata, 1-based indices and payload wire keys
    5. Empty run sends one batch with count 0
    6. Non-2xx aborts delivery with UpstreamError, later batches unsent
  run():
    7. Sets ctx.batches_sent; count_total covers the whole run
    8. A rejected batch leaves ctx.batches_sent at the delivered count
"""

import json
import logging
import unittest
from datetime import datetime, timezone

from phase_00_orchestration.config_loader import (
    DeliverySettings,
    GoogleSettings,
    HttpSettings,
    PacingSettings,
    PipelineConfig,
    PrefillSettings,
)
from phase_00_orchestration.errors import UpstreamError
from phase_00_orchestration.run_context import RunContext
from phase_00_orchestration.window_resolver import resolve_window
from phase_01_ingestion.pacing import Pacer
from phase_01_ingestion.review_schema import Location, ReviewRecord
from phase_04_delivery import batch_dispatcher
from phase_04_delivery.batch_dispatcher import BatchDispatcher, build_batches, chunk_records


NULL_LOGGER = logging.getLogger("test.null")
NULL_LOGGER.addHandler(logging.NullHandler())

WEBHOOK = "https://hook.example.com/abc123secret"
METADATA = {"source": "google_business_profile", "count_total": 3}


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "Accepted"):
        self.status_code = status_code
        self.text = text


class FakeHttp:
    """Records each POSTed payload; `statuses` scripts the reply codes."""

    def __init__(self, statuses=None):
        self.statuses = list(statuses or [])
        self.posted = []

    def request(self, method, url, headers=None, params=None, json_body=None, data=None):
        assert method == "POST" and url == WEBHOOK
        # Copy through JSON so later mutation cannot hide ordering bugs.
        self.posted.append(json.loads(json.dumps(json_body)))
        status = self.statuses.pop(0) if self.statuses else 200
        return FakeResponse(status, "Accepted" if status < 400 else "scenario is off")


def _record(n: int) -> ReviewRecord:
    return ReviewRecord(
        location_id="42",
        store_code="M-042",
        location_title="Munich Center",
        review_id=f"rev-{n}",
        rating=5,
        reviewer="Anna",
        reviewed_at="09.03.2024 18:30:00",
        comment="Super",
        comment_full="Super\n— Anna, am 09.03.2024 18:30:00",
        reply_ref=f"rid-{n}",
        reply_url=f"https://reply.example.com/?rid=rid-{n}",
    )


class TestChunkRecords(unittest.TestCase):

    def test_split_preserves_order(self):
        chunks = chunk_records(list(range(205)), 200)
        self.assertEqual([len(c) for c in chunks], [200, 5])
        self.assertEqual(chunks[0][0], 0)
        self.assertEqual(chunks[1], [200, 201, 202, 203, 204])

    def test_exact_multiple(self):
        self.assertEqual([len(c) for c in chunk_records(list(range(400)), 200)], [200, 200])

    def test_empty_input_gives_one_empty_chunk(self):
        self.assertEqual(chunk_records([], 200), [[]])

    def test_non_positive_size_disables_splitting(self):
        self.assertEqual(chunk_records([1, 2, 3], 0), [[1, 2, 3]])
        self.assertEqual(chunk_records([], -1), [[]])


class TestBuildBatches(unittest.TestCase):

    def test_metadata_and_indices(self):
        batches = build_batches([_record(i) for i in range(3)], 2, METADATA)

        self.assertEqual(len(batches), 2)
        self.assertEqual([b["batch_index"] for b in batches], [1, 2])
        self.assertEqual({b["batch_total"] for b in batches}, {2})
        self.assertEqual([b["count"] for b in batches], [2, 1])
        for batch in batches:
            self.assertEqual(batch["source"], "google_business_profile")
            self.assertEqual(batch["count_total"], 3)

        item = batches[0]["data"][0]
        self.assertEqual(item["reviewId"], "rev-0")
        self.assertEqual(item["prefill_rid"], "rid-0")
        self.assertEqual(item["smart_reply_url"], "https://reply.example.com/?rid=rid-0")
        self.assertIsNone(item["prefill_error"])


class TestBatchDispatcher(unittest.TestCase):

    def test_sequential_delivery(self):
        http = FakeHttp()
        sent = BatchDispatcher(http, WEBHOOK, NULL_LOGGER).dispatch(
            [_record(i) for i in range(205)], 200, METADATA
        )

        self.assertEqual(sent, 2)
        self.assertEqual([p["count"] for p in http.posted], [200, 5])
        self.assertEqual(http.posted[1]["data"][0]["reviewId"], "rev-200")

    def test_empty_run_sends_single_empty_batch(self):
        http = FakeHttp()
        sent = BatchDispatcher(http, WEBHOOK, NULL_LOGGER).dispatch([], 200, METADATA)

        self.assertEqual(sent, 1)
        self.assertEqual(len(http.posted), 1)
        self.assertEqual(http.posted[0]["count"], 0)
        self.assertEqual(http.posted[0]["data"], [])
        self.assertEqual(http.posted[0]["batch_index"], 1)
        self.assertEqual(http.posted[0]["batch_total"], 1)

    def test_rejected_batch_stops_delivery(self):
        http = FakeHttp(statuses=[200, 410])
        dispatcher = BatchDispatcher(http, WEBHOOK, NULL_LOGGER)

        with self.assertRaises(UpstreamError) as cm:
            dispatcher.dispatch([_record(i) for i in range(5)], 2, METADATA)

        self.assertEqual(cm.exception.status, 410)
        self.assertIn("batch 2/3", str(cm.exception))
        self.assertEqual(len(http.posted), 2)
        self.assertEqual(dispatcher.batches_sent, 1)


def _config(batch_size: int) -> PipelineConfig:
    return PipelineConfig(
        timezone="Europe/Berlin",
        data_root="data",
        concurrency=5,
        google=GoogleSettings(
            account_id="999",
            client_id="cid",
            client_secret="csecret",
            refresh_token="rtoken",
            token_url="https://oauth2.example.com/token",
            business_info_base_url="https://info.example.com/v1",
            reviews_base_url="https://reviews.example.com/v4",
        ),
        prefill=PrefillSettings(
            api_url="https://prefill.example.com/api/prefill",
            secret="s3cret",
            public_app_url="https://reply.example.com",
        ),
        delivery=DeliverySettings(webhook_url=WEBHOOK, batch_size=batch_size),
        http=HttpSettings(),
        pacing=PacingSettings(),
    )


def _ctx(http, n_records: int) -> RunContext:
    return RunContext(
        config=_config(batch_size=2),
        window=resolve_window("2024-03-10", "Europe/Berlin"),
        generated_at=datetime(2024, 3, 11, 6, 0, tzinfo=timezone.utc),
        http=http,
        pacer=Pacer(sleep_fn=lambda s: None),
        locations=[Location("42", "M-042")],
        records=[_record(i) for i in range(n_records)],
    )


class TestRun(unittest.TestCase):

    def test_run_sets_batches_sent(self):
        http = FakeHttp()
        ctx = _ctx(http, 3)
        batch_dispatcher.run(ctx=ctx, logger=NULL_LOGGER)

        self.assertEqual(ctx.batches_sent, 2)
        first = http.posted[0]
        self.assertEqual(first["count_total"], 3)
        self.assertEqual(first["locations_total"], 1)
        self.assertEqual(first["locations_failed"], 0)
        self.assertEqual(first["account_id"], "999")
        self.assertEqual(first["timezone"], "Europe/Berlin")
        self.assertEqual(first["range_start"], "2024-03-10T00:00:00.000+01:00")
        self.assertEqual(first["range_end"], "2024-03-10T23:59:59.999+01:00")

    def test_rejected_batch_keeps_count_of_delivered_batches(self):
        http = FakeHttp(statuses=[200, 410])
        ctx = _ctx(http, 3)

        with self.assertRaises(UpstreamError):
            batch_dispatcher.run(ctx=ctx, logger=NULL_LOGGER)

        self.assertEqual(len(http.posted), 2)
        self.assertEqual(ctx.batches_sent, 1)


if __name__ == "__main__":
    unittest.main()
