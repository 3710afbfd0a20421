"""Logging configuration helpers."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the ``calorie_bot`` logger.

    Calling it again only adjusts the level.
    """
    package_logger = logging.getLogger("calorie_bot")
    package_logger.setLevel(level)
    if package_logger.handlers:
        return
    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(stream)
    package_logger.propagate = False
