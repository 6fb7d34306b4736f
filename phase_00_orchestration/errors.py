"""
errors.py — Phase 00: Orchestration
-------------------------------------
Error taxonomy shared by every phase.

Fatal errors (propagate to the orchestrator, non-zero exit):
  ConfigError, AuthError, TransportError, UpstreamError, PhaseFailedError

Scoped errors (caught at their boundary, run continues):
  PerLocationError  — one location contributes zero records
  PerReviewLinkError — recorded on the review as reply_error
"""

from typing import Optional


class PipelineError(RuntimeError):
    """Base class for all pipeline errors."""


class ConfigError(PipelineError, ValueError):
    """A required setting is missing or invalid."""


class AuthError(PipelineError):
    """The OAuth token exchange failed."""


class TransportError(PipelineError):
    """An HTTP call exhausted its retries."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class UpstreamError(PipelineError):
    """A non-retryable HTTP error or a malformed response body."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PerLocationError(PipelineError):
    """Harvesting failed for a single location."""

    def __init__(self, location_id: str, message: str):
        super().__init__(f"location {location_id}: {message}")
        self.location_id = location_id


class PerReviewLinkError(PipelineError):
    """Minting a reply reference failed for a single review."""

    def __init__(self, review_id: str, message: str):
        super().__init__(message)
        self.review_id = review_id


class PhaseFailedError(PipelineError):
    """Raised by the dispatcher when a phase fails; wraps the cause."""

    def __init__(self, phase_num: int, message: str):
        super().__init__(f"Phase {phase_num:02d} failed: {message}")
        self.phase_num = phase_num
