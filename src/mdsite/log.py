"""Console logging setup for the CLI"""

import logging


LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Point the `mdsite` logger at the current stderr with the given level.

    Replaces any handler from an earlier call so repeated CLI invocations
    in one process do not stack handlers.
    """
    logger = logging.getLogger("mdsite")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
