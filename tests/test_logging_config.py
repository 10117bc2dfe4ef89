"""Tests for application logging setup."""

import logging

from cardledger.logging_config import LOGGER_NAME, setup_logging


class TestSetupLogging:

    def test_level_and_single_handler(self):
        logger = setup_logging("debug")
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG

        setup_logging("WARNING")
        marked = [h for h in logger.handlers if getattr(h, "_cardledger", False)]
        assert len(marked) == 1
        assert logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging("chatty").level == logging.INFO
