"""
run_context.py — Phase 00: Orchestration
------------------------------------------
In-memory state of a single run, handed from phase to phase.

Nothing here survives the process except the run_summary.json audit file
written at the end; the pipeline never reads previous runs.

Summary file location: data/{run_label}/run_summary.json
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from phase_00_orchestration.config_loader import PipelineConfig
from phase_00_orchestration.window_resolver import TimeWindow
from phase_01_ingestion.http_client import RetryingHttpClient
from phase_01_ingestion.pacing import Pacer
from phase_01_ingestion.review_schema import Location, ReviewRecord


@dataclass
class RunContext:
    config: PipelineConfig
    window: TimeWindow
    generated_at: datetime
    http: RetryingHttpClient
    pacer: Pacer

    # --- Filled by Phase 01 ---
    locations: list[Location] = field(default_factory=list)
    records: list[ReviewRecord] = field(default_factory=list)
    location_errors: dict[str, str] = field(default_factory=dict)

    # --- Filled by Phase 04 ---
    batches_sent: int = 0

    # --- Filled by the dispatcher: phase number -> wall seconds ---
    phase_seconds: dict[int, float] = field(default_factory=dict)

    @property
    def run_label(self) -> str:
        return self.window.label

    def delivery_metadata(self) -> dict:
        """Run-level fields merged into every delivered batch."""
        range_start, range_end = self.window.isoformat()
        return {
            "source":           self.config.delivery.source,
            "timezone":         self.config.timezone,
            "range_start":      range_start,
            "range_end":        range_end,
            "generated_at":     self.generated_at.isoformat(timespec="milliseconds"),
            "account_id":       self.config.google.account_id,
            "locations_total":  len(self.locations),
            "locations_failed": len(self.location_errors),
            "count_total":      len(self.records),
        }


def write_summary(ctx: RunContext, status: str, error: Optional[str] = None) -> Path:
    """
    Write the run summary next to run.log.

    Args:
        ctx:    Context of the finished (or aborted) run.
        status: 'success' | 'failed' | 'dry_run'.
        error:  Human-readable failure description, if any.

    Returns:
        Path: Location of the written file.
    """
    range_start, range_end = ctx.window.isoformat()
    summary = {
        "run_label":        ctx.run_label,
        "status":           status,
        "generated_at":     ctx.generated_at.isoformat(),
        "range_start":      range_start,
        "range_end":        range_end,
        "locations_total":  len(ctx.locations),
        "location_errors":  ctx.location_errors,
        "count_total":      len(ctx.records),
        "reply_errors":     sum(1 for r in ctx.records if r.reply_error),
        "batches_sent":     ctx.batches_sent,
        "phase_seconds":    {f"{num:02d}": secs for num, secs in ctx.phase_seconds.items()},
        "error":            error,
    }

    summary_path = Path(ctx.config.data_root) / ctx.run_label / "run_summary.json"
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
    return summary_path
