"""Logging setup shared by the web app, CLI and background scripts."""
from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from .config import Settings

PACKAGE_LOGGER = "airline_booking"

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    """Attach a single stream handler to the package logger and return it."""

    settings = settings or Settings()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(settings.log_level)

    handler = logging.StreamHandler()
    if settings.log_json:
        handler.setFormatter(
            JsonFormatter(
                _FORMAT,
                rename_fields={"levelname": "level", "asctime": "timestamp"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(_FORMAT))

    # Replace any handler left over from a previous call
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
