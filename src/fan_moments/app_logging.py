"""Logging configuration helpers."""

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
# Queue and progress polling issue a request per second.
_QUIET_LOGGERS = ("httpx", "httpcore", "hpack")


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the ``fan_moments`` logger tree.

    Repeated calls only adjust the level, so app factories can call this
    freely.
    """
    logger = logging.getLogger("fan_moments")
    logger.setLevel(level.upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
