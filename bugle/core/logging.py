"""
Logging utilities for the session layer.

Token values are never passed to loggers; only slot names, outcomes and
exception summaries are.
"""

import logging
import sys

_NOISY_LOGGERS = ("googleapiclient.discovery_cache", "google_auth_httplib2")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the service's line format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging"]
