"""
ingestor.py — Phase 01: Review Ingestion
------------------------------------------
Primary entry point for the ingestion phase.

Called by the Phase 00 dispatcher as:
    run(ctx=..., logger=...)

Responsibilities:
  1. Exchange the refresh token for an access token (fatal on failure).
  2. List all locations of the account (fatal on failure).
  3. For every location, in a bounded worker pool:
       harvest the window's reviews -> build records (Phase 02)
       -> mint reply links one by one, paced (Phase 03).
  4. Concatenate the per-location records in listing order into ctx.records.

A location whose harvest fails contributes zero records; the run goes on.
"""

import logging
import time

from phase_00_orchestration.run_context import RunContext
from phase_00_orchestration.window_resolver import TimeWindow
from phase_01_ingestion.auth import TokenProvider
from phase_01_ingestion.location_lister import LocationLister
from phase_01_ingestion.pacing import Pacer
from phase_01_ingestion.review_harvester import ReviewHarvester
from phase_01_ingestion.review_schema import Location, ReviewRecord
from phase_01_ingestion.worker_pool import run_bounded
from phase_02_cleaning.text_sanitizer import build_record
from phase_03_reply_links.reply_linker import ReplyLinker


# ---------------------------------------------------------------------------
# Phase entry point (called by Phase 00 dispatcher)
# ---------------------------------------------------------------------------

def run(ctx: RunContext, logger: logging.Logger) -> None:
    """
    Execute the ingestion phase.

    Raises:
        AuthError:     If the token exchange fails.
        UpstreamError: If the location listing fails.
    """
    logger.info("Phase 01 — Review Ingestion: starting.")
    start = time.monotonic()
    cfg = ctx.config

    # -- 1. Access token ---
    token = TokenProvider(
        http=ctx.http,
        token_url=cfg.google.token_url,
        client_id=cfg.google.client_id,
        client_secret=cfg.google.client_secret,
        refresh_token=cfg.google.refresh_token,
        logger=logger,
    ).get_access_token()
    logger.info("  Access token OK.")

    # -- 2. Locations ---
    lister = LocationLister(
        http=ctx.http,
        base_url=cfg.google.business_info_base_url,
        access_token=token,
        logger=logger,
        page_size=cfg.google.location_page_size,
    )
    ctx.locations = lister.list_locations(cfg.google.account_id)
    logger.info(f"  Locations   : {len(ctx.locations)}")

    # -- 3. Harvest + enrich per location ---
    harvester = ReviewHarvester(
        http=ctx.http,
        base_url=cfg.google.reviews_base_url,
        account_id=cfg.google.account_id,
        access_token=token,
        pacer=ctx.pacer,
        logger=logger,
        page_size=cfg.google.review_page_size,
        stale_page_limit=cfg.google.stale_page_limit,
        page_delay=cfg.pacing.page_delay_seconds,
    )
    linker = ReplyLinker(
        http=ctx.http,
        api_url=cfg.prefill.api_url,
        secret=cfg.prefill.secret,
        public_app_url=cfg.prefill.public_app_url,
        account_id=cfg.google.account_id,
        logger=logger,
    )

    records, errors = harvest_all(
        locations=ctx.locations,
        harvester=harvester,
        linker=linker,
        window=ctx.window,
        tz_name=cfg.timezone,
        concurrency=cfg.concurrency,
        pacer=ctx.pacer,
        link_delay=cfg.pacing.link_delay_seconds,
        logger=logger,
    )
    ctx.records = records
    ctx.location_errors = errors

    elapsed = time.monotonic() - start
    logger.info(
        f"  Total reviews in window: {len(records)} "
        f"({len(errors)} location(s) failed)"
    )
    logger.info(f"Phase 01 — Review Ingestion: complete in {elapsed:.1f}s.")


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------

def harvest_all(
    locations: list[Location],
    harvester: ReviewHarvester,
    linker: ReplyLinker,
    window: TimeWindow,
    tz_name: str,
    concurrency: int,
    pacer: Pacer,
    link_delay: float,
    logger: logging.Logger,
) -> tuple[list[ReviewRecord], dict[str, str]]:
    """
    Harvest and enrich every location with at most `concurrency` in flight.

    Returns:
        (records, errors): records in location listing order then feed order;
        errors maps location ids to failure messages.
    """
    def worker(location: Location) -> list[ReviewRecord]:
        return _process_location(
            location, harvester, linker, window, tz_name, pacer, link_delay, logger
        )

    outcomes = run_bounded(
        concurrency, locations, worker, logger, label=lambda loc: loc.display_name
    )

    records: list[ReviewRecord] = []
    errors: dict[str, str] = {}
    for outcome in outcomes:
        if outcome.error is not None:
            errors[outcome.item.location_id] = str(outcome.error)
            continue
        records.extend(outcome.result or [])
    return records, errors


def _process_location(
    location: Location,
    harvester: ReviewHarvester,
    linker: ReplyLinker,
    window: TimeWindow,
    tz_name: str,
    pacer: Pacer,
    link_delay: float,
    logger: logging.Logger,
) -> list[ReviewRecord]:
    """Harvest, normalise and link one location. Raises PerLocationError."""
    if not location.location_id:
        logger.warning(f"  Skipping location without id: {location}")
        return []

    reviews = harvester.harvest(location.location_id, window)
    if not reviews:
        return []

    logger.info(f"  - {location.display_name}: {len(reviews)} review(s)")

    linked: list[ReviewRecord] = []
    for review in reviews:
        record = build_record(location, review, tz_name)
        linked.append(linker.link(record))
        pacer.wait(link_delay)
    return linked
