"""Logging for the linguist service.

Every module logs through ``get_logger("<component>")`` so records carry the
component (``scheduler``, ``facade``, ``stores.sqlite`` ...) that emitted them.
Console lines read ``[linguist:scheduler] INFO Tick finished ...``.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "linguist"
_CONSOLE_FORMAT = "[linguist:%(component)s] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(component)s: %(message)s"


class _ComponentFilter(logging.Filter):
    """Adds ``record.component``: the logger name below ``linguist``."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(f"{_LOGGER_NAME}."):
            record.component = name[len(_LOGGER_NAME) + 1 :]
        elif name == _LOGGER_NAME:
            record.component = "main"
        else:
            record.component = name
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger under the linguist hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install the console handler and, when ``log_file`` is set, a file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated calls replace handlers instead of stacking them.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    component_filter = _ComponentFilter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.addFilter(component_filter)
    stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.addFilter(component_filter)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
