"""
reply_linker.py — Phase 03: Smart Reply Links
-----------------------------------------------
Mints a reply reference ("rid") for each harvested review at the prefill
service, so the downstream scenario can link straight into the smart reply
generator with the review already filled in.

Fail-soft: a failed mint is recorded on the record as reply_error and the
record is kept. Runs inline inside the Phase 01 per-location worker.
"""

import dataclasses
import logging

from phase_00_orchestration.errors import PerReviewLinkError, TransportError, UpstreamError
from phase_01_ingestion.http_client import RetryingHttpClient, is_success, parse_json_object
from phase_01_ingestion.review_schema import ReviewRecord


SECRET_HEADER = "X-Prefill-Secret"


class ReplyLinker:

    def __init__(
        self,
        http: RetryingHttpClient,
        api_url: str,
        secret: str,
        public_app_url: str,
        account_id: str,
        logger: logging.Logger,
    ):
        self._http = http
        self._api_url = api_url
        self._secret = secret
        self._public_app_url = public_app_url.rstrip("/")
        self._account_id = account_id
        self._logger = logger

    def mint_reply_ref(self, record: ReviewRecord) -> str:
        """
        Request a reply reference for one review.

        Raises:
            PerReviewLinkError: Non-2xx, malformed body, missing 'rid',
                                or retries exhausted.
        """
        try:
            resp = self._http.request(
                "POST",
                self._api_url,
                headers={"Content-Type": "application/json", SECRET_HEADER: self._secret},
                json_body=self._payload(record),
            )
        except TransportError as exc:
            raise PerReviewLinkError(record.review_id, str(exc)) from exc

        if not is_success(resp):
            raise PerReviewLinkError(
                record.review_id, f"Prefill error {resp.status_code}: {resp.text[:500]}"
            )

        try:
            body = parse_json_object(resp, "Prefill response")
        except UpstreamError as exc:
            raise PerReviewLinkError(record.review_id, str(exc)) from exc

        rid = body.get("rid")
        if not rid:
            raise PerReviewLinkError(
                record.review_id, f"Prefill response missing rid: {resp.text[:500]}"
            )
        return str(rid)

    def link(self, record: ReviewRecord) -> ReviewRecord:
        """Return a copy of `record` with either reply_ref/reply_url or reply_error set."""
        try:
            rid = self.mint_reply_ref(record)
        except PerReviewLinkError as exc:
            self._logger.warning(f"  Prefill failed for review {record.review_id}: {exc}")
            return dataclasses.replace(record, reply_error=str(exc))

        return dataclasses.replace(
            record,
            reply_ref=rid,
            reply_url=f"{self._public_app_url}/?rid={rid}" if self._public_app_url else None,
        )

    def _payload(self, record: ReviewRecord) -> dict:
        # The reply generator pre-fills from 'review' and 'rating'; the rest is context.
        return {
            "review":        record.comment_full,
            "rating":        str(record.rating) if record.rating else "",
            "reviewer":      record.reviewer,
            "reviewed_at":   record.reviewed_at,
            "accountId":     self._account_id,
            "locationId":    record.location_id,
            "reviewId":      record.review_id,
            "storeCode":     record.store_code,
            "locationTitle": record.location_title,
        }
