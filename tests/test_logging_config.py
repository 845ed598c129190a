"""Tests for the api_tracker logging setup."""

import logging

import pytest
from rich.logging import RichHandler

from api_tracker.logging_config import get_logger, setup_logging


@pytest.fixture
def tracker_logger():
    logger = logging.getLogger("api_tracker")
    before = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in before[0]:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(before[1])


class TestSetupLogging:
    """Levels and handlers of the api_tracker namespace."""

    @pytest.mark.parametrize(
        "verbose, quiet, level",
        [
            (False, False, logging.INFO),
            (True, False, logging.DEBUG),
            (False, True, logging.ERROR),
            (True, True, logging.ERROR),
        ],
    )
    def test_levels(self, tracker_logger, verbose, quiet, level):
        assert setup_logging(verbose=verbose, quiet=quiet).level == level

    def test_repeated_setup_keeps_one_handler(self, tracker_logger):
        setup_logging()
        setup_logging(verbose=True)
        rich_handlers = [h for h in tracker_logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1

    def test_log_file(self, tracker_logger, tmp_path):
        log_file = tmp_path / "build.log"
        setup_logging(log_file=str(log_file))

        get_logger("pipeline").warning("No API dumps for %s", "1.1")
        for handler in tracker_logger.handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "WARNING" in text
        assert "api_tracker.pipeline: No API dumps for 1.1" in text


def test_get_logger_namespace():
    assert get_logger().name == "api_tracker"
    assert get_logger("api_tracker.store").name == "api_tracker.store"
    assert get_logger("store").name == "api_tracker.store"
