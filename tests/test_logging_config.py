import logging
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from runtime.logging_config import LOGGER_NAME, setup_logging


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "solver.log"
    logger = setup_logging(log_file, debug=True)
    try:
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2

        logger = setup_logging(log_file, quiet=True)
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO

        logger.info("Built adjacency cache.")
        for handler in logger.handlers:
            handler.flush()
        assert "Built adjacency cache." in log_file.read_text()
    finally:
        setup_logging(quiet=True)


def test_quiet_logging_still_propagates(caplog):
    logger = setup_logging(quiet=True)
    assert logger.handlers == []
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        logger.info("cache rebuilt")
    assert "cache rebuilt" in caplog.text
