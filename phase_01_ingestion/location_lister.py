"""
location_lister.py — Phase 01: Review Ingestion
-------------------------------------------------
Lists every location of the account via the Business Information API.

Pagination strategy:
  - Requests pages of `page_size` locations ordered by store code.
  - Follows nextPageToken until it is absent.
  - Accumulates all pages before returning.

Failure of any page is fatal (UpstreamError): nothing can be harvested
without the location set.
"""

import logging

from phase_00_orchestration.errors import TransportError, UpstreamError
from phase_01_ingestion.http_client import RetryingHttpClient
from phase_01_ingestion.review_schema import Location


READ_MASK = "name,title,storeCode"


class LocationLister:

    def __init__(
        self,
        http: RetryingHttpClient,
        base_url: str,
        access_token: str,
        logger: logging.Logger,
        page_size: int = 100,
    ):
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._logger = logger
        self._page_size = page_size

    def list_locations(self, account_id: str) -> list[Location]:
        """
        Fetch all locations for `account_id`.

        Raises:
            UpstreamError: If any page fails (retries exhausted or bad body).
        """
        url = f"{self._base_url}/accounts/{account_id}/locations"
        locations: list[Location] = []
        page_token = ""
        page = 0

        while True:
            page += 1
            try:
                body = self._http.get_json(
                    url,
                    headers=self._headers,
                    params={
                        "pageSize":  self._page_size,
                        "readMask":  READ_MASK,
                        "orderBy":   "storeCode",
                        "pageToken": page_token,
                    },
                )
            except TransportError as exc:
                raise UpstreamError(
                    f"Location listing failed on page {page}: {exc}", status=exc.status
                ) from exc

            batch = body.get("locations") or []
            locations.extend(Location.from_api(raw) for raw in batch)
            self._logger.debug(f"  Locations page {page}: {len(batch)} item(s).")

            page_token = body.get("nextPageToken") or ""
            if not page_token:
                break

        return locations
