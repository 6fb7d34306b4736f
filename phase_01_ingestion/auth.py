"""
auth.py — Phase 01: Review Ingestion
--------------------------------------
Exchanges the long-lived OAuth refresh token for a short-lived access token.
Any failure here is fatal for the run (AuthError).
"""

import logging

from phase_00_orchestration.errors import AuthError, TransportError, UpstreamError
from phase_01_ingestion.http_client import RetryingHttpClient, is_success, parse_json_object


class TokenProvider:
    """Refresh-token grant against the Google OAuth token endpoint."""

    def __init__(
        self,
        http: RetryingHttpClient,
        token_url: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        logger: logging.Logger,
    ):
        self._http = http
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._logger = logger

    def get_access_token(self) -> str:
        """
        Returns:
            str: Bearer access token.

        Raises:
            AuthError: Non-2xx response, malformed body, missing token,
                       or retries exhausted.
        """
        form = {
            "client_id":     self._client_id,
            "client_secret": self._client_secret,
            "refresh_token": self._refresh_token,
            "grant_type":    "refresh_token",
        }
        try:
            resp = self._http.request(
                "POST",
                self._token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data=form,
            )
        except TransportError as exc:
            raise AuthError(f"Token request failed: {exc}") from exc

        if not is_success(resp):
            raise AuthError(f"Token error {resp.status_code}: {resp.text[:500]}")

        try:
            body = parse_json_object(resp, "Token response")
        except UpstreamError as exc:
            raise AuthError(str(exc)) from exc

        token = body.get("access_token")
        if not token:
            raise AuthError("No access_token in token response.")

        self._logger.debug(f"  Access token obtained (expires_in={body.get('expires_in')}).")
        return str(token)
