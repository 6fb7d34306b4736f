"""
test_logger.py — Unit tests for Phase 00: per-run logger
----------------------------------------------------------
Test coverage:
  1. run.log is created under data/{run_label}/ and receives DEBUG lines
  2. Repeated get_logger() calls do not stack handlers
  3. A foreign handler already on the logger does not stop run.log creation
  4. A new data root for the same label moves run.log there
  5. close_logger() detaches only the run handlers
"""

import logging
import tempfile
import unittest
from pathlib import Path

from phase_00_orchestration.logger import close_logger, get_logger


def _run_handlers(logger: logging.Logger) -> list:
    return [h for h in logger.handlers if (h.get_name() or "").startswith("review_pulse.")]


class TestGetLogger(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.data_root = Path(self._tmp.name) / "data"

    def tearDown(self):
        self._tmp.cleanup()

    def test_writes_run_log(self):
        logger = get_logger("2026-02-13", data_root=str(self.data_root))
        try:
            logger.debug("  Locations page 1: 3 item(s).")
        finally:
            close_logger(logger)

        content = (self.data_root / "2026-02-13" / "run.log").read_text(encoding="utf-8")
        self.assertIn("Locations page 1: 3 item(s).", content)
        self.assertIn("| DEBUG    |", content)
        self.assertIn("review_pulse.2026-02-13", content)

    def test_no_duplicate_handlers(self):
        first = get_logger("2026-02-12", data_root=str(self.data_root))
        second = get_logger("2026-02-12", data_root=str(self.data_root))
        try:
            self.assertIs(first, second)
            self.assertEqual(len(_run_handlers(second)), 2)
        finally:
            close_logger(second)

    def test_foreign_handler_does_not_block_run_log(self):
        logger = logging.getLogger("review_pulse.2026-02-10")
        foreign = logging.NullHandler()
        logger.addHandler(foreign)
        try:
            run_logger = get_logger("2026-02-10", data_root=str(self.data_root))
            run_logger.info("  Access token OK.")
            close_logger(run_logger)
            self.assertIn(foreign, logger.handlers)
        finally:
            logger.removeHandler(foreign)

        content = (self.data_root / "2026-02-10" / "run.log").read_text(encoding="utf-8")
        self.assertIn("Access token OK.", content)

    def test_new_data_root_gets_its_own_run_log(self):
        other_root = Path(self._tmp.name) / "other"
        first = get_logger("2026-02-09", data_root=str(self.data_root))
        second = get_logger("2026-02-09", data_root=str(other_root))
        try:
            second.info("  Locations   : 4")
            self.assertEqual(len(_run_handlers(second)), 2)
        finally:
            close_logger(first)

        self.assertIn(
            "Locations   : 4",
            (other_root / "2026-02-09" / "run.log").read_text(encoding="utf-8"),
        )

    def test_close_detaches_run_handlers(self):
        logger = get_logger("2026-02-11", data_root=str(self.data_root))
        close_logger(logger)
        self.assertEqual(_run_handlers(logger), [])


if __name__ == "__main__":
    unittest.main()
