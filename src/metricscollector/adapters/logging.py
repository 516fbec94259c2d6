"""Python logging setup for metricscollector.

All modules log through children of the ``metricscollector`` logger so the
host process can route or silence pipeline output in one place.
"""

import logging
import sys

ROOT_LOGGER_NAME = "metricscollector"

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the metricscollector namespace.

    Args:
        name: Usually ``__name__`` of the calling module. Names outside the
            package namespace are nested under it.

    Returns:
        The configured logging.Logger.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    level: str | int = "INFO",
    fmt: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Calling this more than once replaces the level but never adds a second
    handler.

    Args:
        level: Log level name or number (default "INFO").
        fmt: Format string for the stream handler.

    Returns:
        The package root logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
    if not any(getattr(h, "_metricscollector", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt))
        handler._metricscollector = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
