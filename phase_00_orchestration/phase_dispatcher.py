"""
phase_dispatcher.py — Phase 00: Orchestration
-----------------------------------------------
Executes the pipeline phases in order on behalf of the orchestrator.

Design principles:
  - Each phase is a callable that accepts (ctx, logger) and mutates the
    shared in-memory RunContext.
  - Phases are executed sequentially; failure in any phase raises
    PhaseFailedError and halts the pipeline.
  - Phases 02 (normalization) and 03 (reply links) are not registered:
    they run inline, per location, inside Phase 01's worker pool.
"""

import importlib
import logging
import time
from typing import Callable

from phase_00_orchestration.errors import PhaseFailedError
from phase_00_orchestration.run_context import RunContext


# ---------------------------------------------------------------------------
# Phase registry
# Each entry: (phase_number, module_path, entry_function_name)
# ---------------------------------------------------------------------------

PHASE_REGISTRY = [
    (1, "phase_01_ingestion.ingestor",       "run"),
    (4, "phase_04_delivery.batch_dispatcher", "run"),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def dispatch_all(
    ctx: RunContext,
    logger: logging.Logger,
    dry_run: bool = False,
) -> list[int]:
    """
    Run all registered phases in sequence.

    Args:
        ctx:      Shared run context.
        logger:   Bound logger for the run.
        dry_run:  If True, phases are skipped entirely (no network calls).

    Returns:
        list[int]: Phase numbers that completed successfully.

    Raises:
        PhaseFailedError: When a phase fails (wraps the original exception).
    """
    completed = []

    for phase_num, module_path, fn_name in PHASE_REGISTRY:
        phase_label = f"Phase {phase_num:02d}"

        if dry_run:
            logger.info(f"[DRY-RUN] {phase_label} would run {module_path}.{fn_name}()")
            completed.append(phase_num)
            continue

        phase_fn = _import_phase(module_path, fn_name, phase_num)
        logger.info(f"[*] {phase_label} ({module_path}) ...")
        started = time.monotonic()
        try:
            phase_fn(ctx=ctx, logger=logger)
        except Exception as exc:
            elapsed = time.monotonic() - started
            ctx.phase_seconds[phase_num] = round(elapsed, 3)
            logger.error(
                f"[X] {phase_label} FAILED after {elapsed:.1f}s: "
                f"{type(exc).__name__}: {exc}"
            )
            raise PhaseFailedError(phase_num, str(exc)) from exc

        elapsed = time.monotonic() - started
        ctx.phase_seconds[phase_num] = round(elapsed, 3)
        logger.info(f"[OK] {phase_label} done in {elapsed:.1f}s")
        completed.append(phase_num)

    return completed


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------

def _import_phase(module_path: str, fn_name: str, phase_num: int) -> Callable:
    """
    Import a phase module and return its entry function.

    Raises:
        ImportError: If the module or function cannot be found.
    """
    module = importlib.import_module(module_path)
    if not hasattr(module, fn_name):
        raise ImportError(
            f"Phase {phase_num:02d} module '{module_path}' has no '{fn_name}()' function."
        )
    return getattr(module, fn_name)
