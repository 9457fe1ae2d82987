"""
Shared helpers.
"""
import logging
import sys

from app.core import config


_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """
    Configure the root ``app`` logger once.

    Repeated calls return the already-configured logger without adding
    another handler.
    """
    logger = logging.getLogger("app")
    if logger.handlers:
        return logger
    logger.setLevel(level or config.LOG_LEVEL)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    # SQLAlchemy is chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the ``app`` hierarchy.

    Usage:
        log = get_logger(__name__)
        log.info("Initializing server")
    """
    setup_logging()
    if name != "app" and not name.startswith("app."):
        name = f"app.{name}"
    return logging.getLogger(name)
