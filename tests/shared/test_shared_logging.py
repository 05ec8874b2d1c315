"""Tests for shared/logging.py - Logging utilities."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from selfresolve.shared.logging import (
    DEFAULT_LOG_BACKUP_COUNT,
    EVENTS_LEVEL_NUM,
    quiet_noisy_loggers,
    setup_events_logger,
)


class TestSetupEventsLogger:
    def test_creates_rotating_handler(self, tmp_path):
        logger = setup_events_logger(str(tmp_path), 4096)
        try:
            handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
            ours = [h for h in handlers if h.baseFilename == os.path.abspath(tmp_path / "events.log")]
            assert len(ours) == 1
            assert ours[0].backupCount == DEFAULT_LOG_BACKUP_COUNT
            assert logging.getLevelName(EVENTS_LEVEL_NUM) == "EVENT"
        finally:
            for h in list(logger.handlers):
                logger.removeHandler(h)
                h.close()

    def test_idempotent_for_same_path(self, tmp_path):
        setup_events_logger(str(tmp_path), 4096)
        logger = setup_events_logger(str(tmp_path), 4096)
        try:
            target = os.path.abspath(tmp_path / "events.log")
            assert sum(1 for h in logger.handlers if getattr(h, "baseFilename", None) == target) == 1
        finally:
            for h in list(logger.handlers):
                logger.removeHandler(h)
                h.close()

    def test_event_method_writes(self, tmp_path):
        logger = setup_events_logger(str(tmp_path), 4096)
        try:
            logger.event("question_resolved 1")
            for h in logger.handlers:
                h.flush()
            content = (tmp_path / "events.log").read_text()
            assert "EVENT" in content
            assert "question_resolved 1" in content
        finally:
            for h in list(logger.handlers):
                logger.removeHandler(h)
                h.close()


def test_quiet_noisy_loggers():
    quiet_noisy_loggers(logging.ERROR)
    assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR
    quiet_noisy_loggers()
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
