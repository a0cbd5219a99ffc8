"""Logging bootstrap for the API process and scripts."""

import logging

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
HANDLER_NAME = "pandora"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a single stream handler.

    Calling it again replaces the handler instead of stacking a second one;
    handlers installed by anything else are left alone.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for existing in list(root_logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            root_logger.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    # httpx logs every request at INFO, which drowns the step logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    root_logger.info("Logging initialized at level %s", level.upper())
