"""
logger.py — Phase 00: Orchestration
-------------------------------------
Per-run logger for one harvested day.

  - DEBUG and above -> data/{run_label}/run.log (appended on re-runs)
  - INFO and above  -> stdout
  - Lines carry the thread name, since locations are harvested by pool
    workers and their progress lines interleave.
"""

import logging
import sys
from pathlib import Path


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)-12s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Names of the handlers this module attaches; anything else on the logger
# (e.g. a test harness capture handler) is left alone.
_FILE_HANDLER_NAME = "review_pulse.run_log"
_CONSOLE_HANDLER_NAME = "review_pulse.console"

# Third-party loggers that are noisy at DEBUG (one line per connection).
_QUIET_LOGGERS = ("urllib3", "requests")


def get_logger(run_label: str, data_root: str = "data") -> logging.Logger:
    """
    Return the logger for `run_label`, creating data/{run_label}/run.log.

    Args:
        run_label:  Harvested civil day, e.g. '2026-02-13'.
        data_root:  Root data directory relative to the working directory.
    """
    log_dir = Path(data_root) / run_label
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = (log_dir / "run.log").resolve()

    logger = logging.getLogger(f"review_pulse.{run_label}")
    logger.setLevel(logging.DEBUG)

    # Avoid adding duplicate handlers on re-runs within the same process
    if _has_run_log_handler(logger, log_file):
        return logger
    close_logger(logger)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.set_name(_FILE_HANDLER_NAME)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.set_name(_CONSOLE_HANDLER_NAME)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(fmt)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def close_logger(logger: logging.Logger) -> None:
    """Flush and detach the handlers get_logger() attached, releasing run.log."""
    for handler in list(logger.handlers):
        if handler.get_name() in (_FILE_HANDLER_NAME, _CONSOLE_HANDLER_NAME):
            handler.close()
            logger.removeHandler(handler)


def _has_run_log_handler(logger: logging.Logger, log_file: Path) -> bool:
    return any(
        isinstance(handler, logging.FileHandler)
        and handler.get_name() == _FILE_HANDLER_NAME
        and handler.baseFilename == str(log_file)
        for handler in logger.handlers
    )
