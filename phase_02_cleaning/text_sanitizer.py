"""
text_sanitizer.py — Phase 02: Review Normalization
----------------------------------------------------
Turns a RawReview into an (unlinked) ReviewRecord.

Steps applied:
  1. Strip the machine-translation tail Google appends to comments
     ("(Translated by Google) ...") in any of the known languages.
  2. Map the star rating enum (ONE..FIVE) to 1..5.
  3. Format the creation time in the civil timezone ('dd.mm.YYYY HH:MM:SS').
  4. Compose the two-line display text used by the reply service.

Runs inline inside the Phase 01 per-location worker.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from phase_01_ingestion.review_schema import Location, RawReview, ReviewRecord


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TRANSLATION_MARKERS = (
    "(Translated by Google)",
    "(Übersetzt von Google)",
    "(Traduit par Google)",
    "(Traducido por Google)",
    "(Tradotto da Google)",
    "(Vertaald door Google)",
)

NO_COMMENT_PLACEHOLDER = "(kein Kommentar)"
UNKNOWN_REVIEWER_PLACEHOLDER = "Unbekannt"
LOCAL_TIMESTAMP_FORMAT = "%d.%m.%Y %H:%M:%S"

_STAR_RATINGS = {"ONE": 1, "TWO": 2, "THREE": 3, "FOUR": 4, "FIVE": 5}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def clean_comment(raw: Optional[str]) -> str:
    """
    Trim the comment and cut it at the first translation marker.

    >>> clean_comment("Great place (Translated by Google) Toller Ort")
    'Great place'
    """
    text = (raw or "").strip()
    hits = [pos for pos in (text.find(m) for m in TRANSLATION_MARKERS) if pos != -1]
    if hits:
        text = text[:min(hits)].rstrip()
    return text


def build_display_text(
    comment: Optional[str],
    reviewer_name: Optional[str],
    reviewed_at_local: Optional[str],
) -> str:
    """Comment (or placeholder) plus an attribution line."""
    body = (comment or "").strip() or NO_COMMENT_PLACEHOLDER
    name = (reviewer_name or "").strip() or UNKNOWN_REVIEWER_PLACEHOLDER
    attribution = f"— {name}"
    if reviewed_at_local:
        attribution += f", am {reviewed_at_local}"
    return f"{body}\n{attribution}"


def star_rating_to_int(star: Optional[str]) -> Optional[int]:
    if not star:
        return None
    return _STAR_RATINGS.get(str(star).strip().upper())


def format_local_timestamp(moment: Optional[datetime], tz_name: str) -> str:
    if moment is None:
        return ""
    return moment.astimezone(ZoneInfo(tz_name)).strftime(LOCAL_TIMESTAMP_FORMAT)


def build_record(location: Location, review: RawReview, tz_name: str) -> ReviewRecord:
    """Build the unlinked ReviewRecord for one harvested review."""
    reviewed_at = format_local_timestamp(review.create_time, tz_name)
    comment = clean_comment(review.comment)
    return ReviewRecord(
        location_id=location.location_id,
        store_code=location.store_code,
        location_title=location.title,
        review_id=review.review_id,
        rating=star_rating_to_int(review.star_rating),
        reviewer=review.reviewer_name,
        reviewed_at=reviewed_at,
        comment=comment,
        comment_full=build_display_text(comment, review.reviewer_name, reviewed_at),
    )
