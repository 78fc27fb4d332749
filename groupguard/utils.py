"""
Shared helpers.
"""
import logging
from datetime import datetime, timezone

from groupguard.core import config


_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, configuring the root handler on first use."""
    global _configured
    if not _configured:
        logging.basicConfig(
            level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        _configured = True
    return logging.getLogger(name)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every timestamp column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
