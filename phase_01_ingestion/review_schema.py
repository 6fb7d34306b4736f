"""
review_schema.py — Phase 01: Review Ingestion
-----------------------------------------------
Defines the records that flow through the pipeline.

  Location     — one business location of the account (read-only).
  RawReview    — a review as returned by the review feed, parsed just
                 enough to filter by creation time.
  ReviewRecord — the enriched, immutable output unit that is delivered.

Downstream phases consume ONLY ReviewRecord — never raw API data.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def _last_segment(resource_name: Any) -> str:
    """'accounts/1/locations/42' -> '42'."""
    return str(resource_name or "").strip().split("/")[-1]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp with 'Z' or a numeric offset."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


@dataclass(frozen=True)
class Location:
    location_id: str
    store_code: str = ""
    title: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "Location":
        return cls(
            location_id=_last_segment(raw.get("name")),
            store_code=str(raw.get("storeCode") or "").strip(),
            title=str(raw.get("title") or "").strip(),
        )

    @property
    def display_name(self) -> str:
        return self.store_code or self.title or self.location_id


@dataclass(frozen=True)
class RawReview:
    review_id: str
    create_time: Optional[datetime]
    star_rating: Optional[str] = None
    reviewer_name: str = ""
    comment: str = ""

    @classmethod
    def from_api(cls, raw: dict) -> "RawReview":
        reviewer = raw.get("reviewer") or {}
        return cls(
            review_id=_last_segment(raw.get("name") or raw.get("reviewId")),
            create_time=parse_timestamp(raw.get("createTime")),
            star_rating=raw.get("starRating"),
            reviewer_name=str(
                reviewer.get("displayName") or reviewer.get("profileName") or ""
            ).strip(),
            comment=str(raw.get("comment") or ""),
        )


@dataclass(frozen=True)
class ReviewRecord:
    """Canonical enriched review record, one per delivered review."""

    # --- Location ---
    location_id: str
    store_code: str
    location_title: str

    # --- Review ---
    review_id: str
    rating: Optional[int]
    reviewer: str
    reviewed_at: str            # local creation time, 'dd.mm.YYYY HH:MM:SS'
    comment: str                # sanitized comment, may be empty
    comment_full: str           # two-line display text

    # --- Reply reference (filled by Phase 03) ---
    reply_ref: Optional[str] = field(default=None)
    reply_url: Optional[str] = field(default=None)
    reply_error: Optional[str] = field(default=None)

    def to_payload(self) -> dict:
        """Wire format expected by the downstream webhook scenario."""
        return {
            "storeCode":       self.store_code or None,
            "locationTitle":   self.location_title or None,
            "locationId":      self.location_id,
            "reviewId":        self.review_id or None,
            "rating":          self.rating,
            "reviewer":        self.reviewer or None,
            "reviewed_at":     self.reviewed_at,
            "comment":         self.comment or None,
            "comment_full":    self.comment_full,
            "prefill_rid":     self.reply_ref or None,
            "smart_reply_url": self.reply_url or None,
            "prefill_error":   self.reply_error or None,
        }
