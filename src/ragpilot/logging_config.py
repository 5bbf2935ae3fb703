"""Logger setup shared by the CLI, the indexer and the chat handler.

All ragpilot modules log below the ``ragpilot`` logger; ``setup_logging``
attaches handlers there once per process, so library users who never call
it keep their own logging untouched.
"""

import logging
import os
from typing import Optional

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_PACKAGE_LOGGER = "ragpilot"
_configured = False


def _resolve_level(level: str) -> int:
    """RAGPILOT_LOG_LEVEL wins over ``level``; unknown names keep the fallback."""
    resolved = getattr(logging, level.upper(), logging.INFO)
    override = os.getenv("RAGPILOT_LOG_LEVEL")
    if override:
        resolved = getattr(logging, override.upper(), resolved)
    return resolved


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
) -> None:
    """Send ragpilot log records to stderr and, optionally, a file.

    Later calls are no-ops. RAGPILOT_LOG_FILE, when set, replaces
    ``log_file`` (set it empty to disable the file).

    Args:
        level: Name of the threshold, e.g. "DEBUG" or "WARNING"
        log_file: File to append records to alongside stderr
    """
    global _configured
    if _configured:
        return

    log_level = _resolve_level(level)
    log_file = os.getenv("RAGPILOT_LOG_FILE", log_file)

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.setLevel(log_level)
    package_logger.handlers.clear()

    _attach(package_logger, logging.StreamHandler(), log_level)
    if log_file:
        try:
            _attach(package_logger, logging.FileHandler(log_file, encoding="utf-8"), log_level)
        except OSError:
            package_logger.warning("Cannot write log file %s; stderr only", log_file)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, placed under ``ragpilot`` unless it already is."""
    if name == _PACKAGE_LOGGER or name.startswith(_PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_PACKAGE_LOGGER}.{name}")
