"""
window_resolver.py — Phase 00: Orchestration
----------------------------------------------
Resolves the civil-day time window to harvest.

Rules:
  - If --date is provided via CLI, validate and use that day.
  - If not provided, use "yesterday" relative to now in the fixed timezone.

Returns a TimeWindow dataclass with:
  - start: 00:00:00.000 of the day, timezone-aware
  - end:   23:59:59.999 of the same day, timezone-aware

Review timestamps arrive with arbitrary UTC offsets, so every
date-boundary comparison is made against these zoned bounds.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


# ---------------------------------------------------------------------------
# Data contract
# ---------------------------------------------------------------------------

_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class TimeWindow:
    start: datetime  # local midnight
    end: datetime    # local 23:59:59.999

    @property
    def timezone(self) -> str:
        return str(self.start.tzinfo)

    @property
    def label(self) -> str:
        """ISO date of the covered day, e.g. '2026-02-13'."""
        return self.start.date().isoformat()

    def contains(self, moment: datetime) -> bool:
        """Inclusive containment, compared as absolute instants."""
        instant = moment.astimezone(timezone.utc)
        return (
            self.start.astimezone(timezone.utc)
            <= instant
            <= self.end.astimezone(timezone.utc)
        )

    def is_on_or_after_start(self, moment: datetime) -> bool:
        return moment.astimezone(timezone.utc) >= self.start.astimezone(timezone.utc)

    def isoformat(self) -> tuple[str, str]:
        return (
            self.start.isoformat(timespec="milliseconds"),
            self.end.isoformat(timespec="milliseconds"),
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def resolve_yesterday_window(now: datetime, tz_name: str) -> TimeWindow:
    """
    Return the window covering the full civil day before `now` in `tz_name`.

    Args:
        now:     Current instant; must be timezone-aware.
        tz_name: IANA timezone identifier, e.g. 'Europe/Berlin'.

    Raises:
        ValueError: If `now` is naive.
    """
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("resolve_yesterday_window() needs a timezone-aware 'now'.")
    tz = ZoneInfo(tz_name)
    local_today = now.astimezone(tz).date()
    return _day_window(local_today - timedelta(days=1), tz)


def resolve_window(
    date_arg: Optional[str],
    tz_name: str,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """
    Resolve the target window from an optional 'YYYY-MM-DD' CLI argument.

    Raises:
        ValueError: If date_arg is provided but is not a valid date.
    """
    if date_arg is not None:
        return _day_window(_parse_date_arg(date_arg), ZoneInfo(tz_name))
    if now is None:
        now = datetime.now(tz=timezone.utc)
    return resolve_yesterday_window(now, tz_name)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _parse_date_arg(date_arg: str) -> date:
    value = date_arg.strip()
    if not _DATE_PATTERN.match(value):
        raise ValueError(
            f"Invalid --date format '{date_arg}'. Expected YYYY-MM-DD (e.g. 2026-02-13)."
        )
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid --date '{date_arg}': {exc}") from exc


def _day_window(day: date, tz: ZoneInfo) -> TimeWindow:
    return TimeWindow(
        start=datetime.combine(day, time.min, tzinfo=tz),
        end=datetime.combine(day, _END_OF_DAY, tzinfo=tz),
    )
