"""
http_client.py — Phase 01: Review Ingestion
---------------------------------------------
HTTP wrapper with bounded retry and exponential backoff, used for every
network call in the pipeline (token, locations, reviews, prefill, webhook).

Retry policy:
  - Up to `retries` attempts (default 4).
  - Retries on network errors and on status 429/500/502/503/504.
  - Delay before the next attempt: backoff_base * 2**attempt (0.8s, 1.6s, ...).
  - Any other status is returned as-is; the caller interprets it.
  - Exhaustion raises TransportError with the last status/body or cause.

Sessions are thread-local because locations are harvested in parallel;
close() shuts every session the client opened.
"""

import json
import threading
from typing import Any, Callable, Optional

import requests

from phase_00_orchestration.errors import TransportError, UpstreamError
from phase_01_ingestion.pacing import Pacer


RETRYABLE_STATUS = {429, 500, 502, 503, 504}
DEFAULT_RETRIES = 4
DEFAULT_BACKOFF_BASE = 0.8
DEFAULT_TIMEOUT = 30.0


class RetryingHttpClient:
    """
    Thin retrying layer over requests.Session.

    Args:
        pacer:           Used for backoff delays (inject a fake in tests).
        retries:         Maximum number of attempts per request.
        backoff_base:    Seconds; delay before attempt n+1 is base * 2**n.
        timeout:         Per-request timeout in seconds.
        session_factory: Creates one session per thread.
    """

    def __init__(
        self,
        pacer: Optional[Pacer] = None,
        retries: int = DEFAULT_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self._pacer = pacer or Pacer()
        self._retries = max(1, retries)
        self._backoff_base = backoff_base
        self._timeout = timeout
        self._session_factory = session_factory
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        json_body: Any = None,
        data: Any = None,
    ) -> requests.Response:
        """
        Issue a request, retrying transient failures.

        Raises:
            TransportError: When every attempt failed transiently.
        """
        query = _clean_params(params)
        last_status: Optional[int] = None
        last_body = ""
        last_exc: Optional[Exception] = None

        for attempt in range(self._retries):
            try:
                resp = self._session().request(
                    method,
                    url,
                    headers=headers,
                    params=query or None,
                    json=json_body,
                    data=data,
                    timeout=self._timeout,
                )
            except requests.RequestException as exc:
                last_exc = exc
                last_status, last_body = None, ""
            else:
                if resp.status_code not in RETRYABLE_STATUS:
                    return resp
                last_exc = None
                last_status, last_body = resp.status_code, _safe_text(resp)

            if attempt + 1 < self._retries:
                self._pacer.wait(self._backoff_base * (2 ** attempt))

        if last_exc is not None:
            raise TransportError(
                f"{method} {url} failed after {self._retries} attempts: {last_exc}"
            ) from last_exc
        raise TransportError(
            f"{method} {url} -> HTTP {last_status} after {self._retries} attempts: "
            f"{last_body[:500]}",
            status=last_status,
            body=last_body,
        )

    def get_json(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict:
        """
        GET and decode a JSON object.

        Raises:
            TransportError: Retries exhausted.
            UpstreamError:  Non-2xx status or an unparseable body.
        """
        resp = self.request("GET", url, headers=headers, params=params)
        if not is_success(resp):
            raise UpstreamError(
                f"GET {url} -> {resp.status_code}: {_safe_text(resp)[:500]}",
                status=resp.status_code,
            )
        return parse_json_object(resp, f"GET {url}")

    def close(self) -> None:
        """Close every session opened by any thread."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


# ---------------------------------------------------------------------------
# Helpers shared with the phase modules
# ---------------------------------------------------------------------------

def is_success(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300


def parse_json_object(resp: requests.Response, context: str) -> dict:
    """Decode a response body that must be a JSON object."""
    text = _safe_text(resp)
    try:
        body = json.loads(text) if text else None
    except json.JSONDecodeError as exc:
        raise UpstreamError(
            f"{context}: response is not valid JSON: {text[:500]}",
            status=resp.status_code,
        ) from exc
    if not isinstance(body, dict):
        raise UpstreamError(
            f"{context}: expected a JSON object, got: {text[:500]}",
            status=resp.status_code,
        )
    return body


def _clean_params(params: Optional[dict[str, Any]]) -> dict[str, str]:
    """Drop None and empty values so they are never sent as 'key='."""
    if not params:
        return {}
    return {
        key: str(value)
        for key, value in params.items()
        if value is not None and str(value) != ""
    }


def _safe_text(resp: requests.Response) -> str:
    try:
        return resp.text or ""
    except (RuntimeError, ValueError):  # body already consumed or undecodable
        return ""
