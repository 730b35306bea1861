"""Tests for the structured logging helpers."""

import pytest
from structlog.testing import capture_logs

from linkit_weekly.logging import StageTimer, get_logger, log_error, log_feed_stage, newsletter_context


def test_feed_stage_counts_dropped_articles():
    entry = log_feed_stage("current_week", input_count=7, output_count=4, source="Heise")

    assert entry["event"] == "feed_stage"
    assert entry["dropped"] == 3
    assert entry["source"] == "Heise"


def test_error_entry():
    entry = log_error(ValueError("kaputt"), context="archive_save", **newsletter_context(16, 2025, "de"))

    assert entry["error_type"] == "ValueError"
    assert entry["error_message"] == "kaputt"
    assert entry["context"] == "archive_save"
    assert entry["week"] == 16
    assert entry["language"] == "de"


def test_stage_timer_binds_context():
    with capture_logs() as logs:
        with StageTimer("fetch_feed", get_logger("tests.timer"), source="Heise") as timer:
            pass

    assert [entry["event"] for entry in logs] == ["stage_started", "stage_completed"]
    assert all(entry["stage"] == "fetch_feed" and entry["source"] == "Heise" for entry in logs)
    assert timer.duration is not None and timer.duration >= 0


def test_stage_timer_logs_failures():
    with capture_logs() as logs:
        with pytest.raises(RuntimeError):
            with StageTimer("full_pipeline", get_logger("tests.timer"), **newsletter_context(16, 2025, "en")):
                raise RuntimeError("feed down")

    failed = logs[-1]
    assert failed["event"] == "stage_failed"
    assert failed["error_type"] == "RuntimeError"
    assert failed["error_message"] == "feed down"
    assert failed["week"] == 16
