"""Process-wide logging setup."""

import logging

from booking_core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stream handler on the ``booking_core`` logger.

    Safe to call more than once; later calls only change the level.
    """
    logger = logging.getLogger("booking_core")
    logger.setLevel((level or settings.log_level).upper())
    if not any(getattr(h, "_booking_core", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._booking_core = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
