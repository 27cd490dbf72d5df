"""Process logging setup for the identity API."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# SMTP protocol traces at DEBUG include message bodies, and those carry one-time codes.
_QUIET_LOGGERS = ("aiosmtplib",)


def configure_logging(*, level: str) -> None:
    """Configure root logging once and cap chatty third-party loggers at WARNING."""

    requested = level.strip().upper() or "INFO"
    resolved_level = logging.getLevelName(requested)
    if not isinstance(resolved_level, int):
        resolved_level = logging.INFO

    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))
