"""
Logging setup.

Modules log through logging.getLogger(__name__), which places
them under the "shop_ledger" logger. configure_logging() attaches
a single stream handler to that logger; calling it again only
changes the level.
"""

import logging

from shop_ledger.config import get_settings

ROOT_LOGGER_NAME = "shop_ledger"


def configure_logging(level: str | None = None) -> logging.Logger:
    settings = get_settings()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level or settings.LOG_LEVEL)

    if not any(
        getattr(h, "_shop_ledger_handler", False) for h in logger.handlers
    ):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
        handler._shop_ledger_handler = True
        logger.addHandler(handler)

    return logger
