"""
review_harvester.py — Phase 01: Review Ingestion
--------------------------------------------------
Fetches one location's reviews for the target window from the
My Business v4 review feed.

The feed is ordered by UPDATE time (newest first) but reviews are
filtered by CREATION time. An old review that was edited recently can
appear between newer ones, so a single page with nothing in range does
not prove the scan is past the window.

Pagination strategy:
  - Fetch pages of `page_size` reviews with the cursor token.
  - Stop on an empty page or when no nextPageToken is returned.
  - Count consecutive pages with no review created on/after window.start;
    stop once that count reaches `stale_page_limit` (default 2).
  - Wait `page_delay` seconds between page fetches.

Failure of any page raises PerLocationError; the caller decides how to
isolate it.
"""

import logging

from phase_00_orchestration.errors import PerLocationError, TransportError, UpstreamError
from phase_00_orchestration.window_resolver import TimeWindow
from phase_01_ingestion.http_client import RetryingHttpClient
from phase_01_ingestion.pacing import Pacer
from phase_01_ingestion.review_schema import RawReview


DEFAULT_PAGE_SIZE = 50
DEFAULT_STALE_PAGE_LIMIT = 2
DEFAULT_PAGE_DELAY = 0.12


class ReviewHarvester:

    def __init__(
        self,
        http: RetryingHttpClient,
        base_url: str,
        account_id: str,
        access_token: str,
        pacer: Pacer,
        logger: logging.Logger,
        page_size: int = DEFAULT_PAGE_SIZE,
        stale_page_limit: int = DEFAULT_STALE_PAGE_LIMIT,
        page_delay: float = DEFAULT_PAGE_DELAY,
    ):
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._account_id = account_id
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._pacer = pacer
        self._logger = logger
        self._page_size = page_size
        self._stale_page_limit = stale_page_limit
        self._page_delay = page_delay

    def harvest(self, location_id: str, window: TimeWindow) -> list[RawReview]:
        """
        Return the location's reviews created within `window`, in feed order.

        Raises:
            PerLocationError: If a page fetch fails.
        """
        url = f"{self._base_url}/accounts/{self._account_id}/locations/{location_id}/reviews"
        matched: list[RawReview] = []
        page_token = ""
        stale_pages = 0
        page = 0

        while True:
            page += 1
            body = self._fetch_page(url, location_id, page_token, page)

            items = body.get("reviews") or []
            if not items:
                break

            seen_on_or_after_start = False
            for raw in items:
                review = RawReview.from_api(raw)
                if review.create_time is None:
                    continue
                if not window.is_on_or_after_start(review.create_time):
                    continue
                seen_on_or_after_start = True
                if window.contains(review.create_time):
                    matched.append(review)

            stale_pages = 0 if seen_on_or_after_start else stale_pages + 1
            if stale_pages >= self._stale_page_limit:
                self._logger.debug(
                    f"  {location_id}: {stale_pages} consecutive pages before window "
                    f"start, stopping after page {page}."
                )
                break

            page_token = body.get("nextPageToken") or ""
            if not page_token:
                break
            self._pacer.wait(self._page_delay)

        return matched

    def _fetch_page(self, url: str, location_id: str, page_token: str, page: int) -> dict:
        try:
            return self._http.get_json(
                url,
                headers=self._headers,
                params={
                    "pageSize":  self._page_size,
                    "orderBy":   "updateTime desc",
                    "pageToken": page_token,
                },
            )
        except (TransportError, UpstreamError) as exc:
            raise PerLocationError(location_id, f"review page {page} failed: {exc}") from exc
