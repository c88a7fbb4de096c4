"""
Logging helpers.

All modules obtain their logger through get_logger(__name__) so that every
logger hangs off the "authz" root and shares one console handler.
"""
import logging

from authz.core import config


ROOT_LOGGER_NAME = "authz"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)

    # Prevent duplicate handlers
    if root.handlers:
        return root

    level_upper = config.LOG_LEVEL.upper()
    if not hasattr(logging, level_upper):
        raise ValueError(
            f"Invalid log level: {config.LOG_LEVEL}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    root.setLevel(getattr(logging, level_upper))

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the "authz" root.

    Usage:
        log = get_logger(__name__)
        log.info("Seeding directory")
    """
    _configure_root()
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
