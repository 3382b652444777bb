"""Logging setup shared by the scan CLI and the HTTP service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

_LOGGER_NAME = "promptscan"

# uvicorn logs under "uvicorn", "uvicorn.error" and "uvicorn.access".
SERVICE_LOGGERS = ("uvicorn",)

_CONSOLE_FORMAT = "[%(name)s] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger, e.g. ``promptscan.aggregator``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    extra_loggers: Iterable[str] = (),
) -> logging.Logger:
    """Install console (and optional file) handlers on the promptscan logger.

    Console lines carry the emitting component (``[promptscan.walker]``,
    ``[promptscan.extract.structural]`` ...) so a degraded stage is
    identifiable without a traceback. ``extra_loggers`` receive the same
    handlers; service mode passes :data:`SERVICE_LOGGERS` so request logs
    and scan logs share one stream. Calling this again replaces the
    handlers rather than stacking them.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = []

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    handlers.append(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)

    root = logging.getLogger(_LOGGER_NAME)
    for name in (_LOGGER_NAME, *extra_loggers):
        target = logging.getLogger(name)
        target.setLevel(level)
        target.propagate = False
        for handler in list(target.handlers):
            target.removeHandler(handler)
            handler.close()
        for handler in handlers:
            handler.setLevel(level)
            target.addHandler(handler)

    return root


def log_exception(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """Report a swallowed failure; the traceback is only shown at DEBUG."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.exception("%s: %s", message, exc, exc_info=exc)
    else:
        logger.warning("%s: %s", message, exc)


__all__ = ["SERVICE_LOGGERS", "configure_logging", "get_logger", "log_exception"]
