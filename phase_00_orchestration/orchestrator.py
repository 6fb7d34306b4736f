"""
orchestrator.py — Phase 00: Orchestration
-------------------------------------------
Main entry point for the GBP Review Pulse daily job.

Usage:
  # Automatic mode (harvests yesterday in the configured timezone):
  gbp-review-pulse

  # Manual mode (specific civil day):
  gbp-review-pulse --date 2026-02-13

  # Dry run (validate config and resolve the window, no network calls):
  gbp-review-pulse --dry-run

Exit codes:
  0  — Success (including dry run)
  1  — Pipeline failure (auth, location listing, delivery)
  2  — Configuration or argument error
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

# ---------------------------------------------------------------------------
# Ensure the project root is on the Python path when run directly
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv                                        # noqa: E402

from phase_00_orchestration.config_loader import load_config, mask_secret  # noqa: E402
from phase_00_orchestration.errors import ConfigError, PhaseFailedError     # noqa: E402
from phase_00_orchestration.logger import close_logger, get_logger          # noqa: E402
from phase_00_orchestration.phase_dispatcher import dispatch_all            # noqa: E402
from phase_00_orchestration.run_context import RunContext, write_summary    # noqa: E402
from phase_00_orchestration.window_resolver import resolve_window           # noqa: E402
from phase_01_ingestion.http_client import RetryingHttpClient                # noqa: E402
from phase_01_ingestion.pacing import Pacer                                  # noqa: E402


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------

def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gbp-review-pulse",
        description="GBP Review Pulse — daily review harvest and delivery",
    )
    parser.add_argument(
        "--date",
        metavar="YYYY-MM-DD",
        default=None,
        help="Civil day to harvest. Defaults to yesterday in the configured timezone.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="Validate config and resolve the window, but make no network calls.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="Alternative pipeline_config.yaml.",
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main orchestration logic
# ---------------------------------------------------------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Orchestrate one harvest-and-deliver pass.

    Returns:
        int: Exit code (0 = success, 1 = failure, 2 = config/arg error).
    """
    args = _parse_args(argv)
    load_dotenv()

    # --- 1. Load and validate configuration ---
    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as exc:
        print(f"[CONFIG ERROR] {exc}", file=sys.stderr)
        return 2

    # --- 2. Resolve target window ---
    try:
        window = resolve_window(args.date, config.timezone)
    except ValueError as exc:
        print(f"[ARGUMENT ERROR] {exc}", file=sys.stderr)
        return 2

    # --- 3. Initialise logger (creates data/{run_label}/ directory) ---
    logger = get_logger(run_label=window.label, data_root=config.data_root)
    try:
        return _run(config, window, logger, dry_run=args.dry_run)
    finally:
        close_logger(logger)


def _run(config, window, logger, dry_run: bool) -> int:
    range_start, range_end = window.isoformat()
    logger.info("=" * 60)
    logger.info("GBP Review Pulse — Orchestrator")
    logger.info(f"Timezone     : {config.timezone}")
    logger.info(f"Range        : {range_start} -> {range_end}")
    logger.info(f"Account      : {config.google.account_id}")
    logger.info(f"Prefill API  : {config.prefill.api_url}")
    logger.info(f"Webhook      : {mask_secret(config.delivery.webhook_url)}")
    logger.info(f"Concurrency  : {config.concurrency}")
    logger.info(f"Dry Run      : {dry_run}")
    logger.info("=" * 60)

    # --- 4. Build the run context ---
    pacer = Pacer()
    http = RetryingHttpClient(
        pacer=pacer,
        retries=config.http.retries,
        backoff_base=config.http.backoff_base_seconds,
        timeout=config.http.timeout_seconds,
    )
    ctx = RunContext(
        config=config,
        window=window,
        generated_at=datetime.now(tz=window.start.tzinfo),
        http=http,
        pacer=pacer,
    )
    try:
        return _dispatch_and_summarise(ctx, logger, dry_run)
    finally:
        http.close()


def _dispatch_and_summarise(ctx: RunContext, logger, dry_run: bool) -> int:
    # --- 5. Dispatch phases ---
    try:
        completed_phases = dispatch_all(ctx=ctx, logger=logger, dry_run=dry_run)
    except PhaseFailedError as exc:
        logger.error(f"Pipeline aborted: {exc}")
        summary_path = write_summary(ctx, status="failed", error=str(exc))
        logger.info(f"Run summary written -> {summary_path}")
        return 1

    # --- 6. Record the outcome ---
    summary_path = write_summary(ctx, status="dry_run" if dry_run else "success")
    logger.info(f"Run summary written -> {summary_path}")
    logger.info("=" * 60)
    logger.info(
        f"Run complete for {ctx.run_label}. "
        f"Phases finished: {completed_phases}. Reviews delivered: {len(ctx.records)}"
    )
    logger.info("=" * 60)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
