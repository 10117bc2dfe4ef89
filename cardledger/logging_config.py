"""
Logging setup for the Card Ledger API.

Every module logs through ``logging.getLogger(__name__)``, so all records
land under the ``cardledger`` logger hierarchy. ``setup_logging`` attaches a
single stream handler to that logger; calling it again only updates the level.

Card numbers are never passed to a logger, in plaintext or encrypted form.
Log card ids and masked numbers instead.
"""

import logging

LOGGER_NAME = "cardledger"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the application logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns:
        The configured ``cardledger`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_cardledger", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._cardledger = True
        logger.addHandler(handler)

    return logger
