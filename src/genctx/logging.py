from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

import structlog
from dotenv import find_dotenv, load_dotenv

if TYPE_CHECKING:
    from pathlib import Path

ENV_FILE = find_dotenv(usecwd=True)
load_dotenv(ENV_FILE, override=False)

_LOGGING_CONFIGURED = False


def _level_from_env() -> int:
    name = os.environ.get("GENCTX_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(filename: str | Path | None = None, *, force: bool = False) -> structlog.BoundLogger:
    """Set up structured logging for the genctx package.

    The level is read from ``GENCTX_LOG_LEVEL`` and, when no filename is
    given, the destination from ``GENCTX_LOG_FILE``. Both may live in a
    ``.env`` file.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.
        force: Reconfigure even if logging was already set up (used by ``--log-file``).

    Returns:
        A structlog logger instance configured for the genctx package.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if force or not _LOGGING_CONFIGURED:
        target = filename or os.environ.get("GENCTX_LOG_FILE", "")
        level = _level_from_env()
        handlers: list[logging.Handler] = []
        if target:
            handlers.append(logging.FileHandler(str(target), encoding="utf-8"))
        else:
            handlers.append(logging.StreamHandler(sys.stderr))

        logging.basicConfig(
            level=level,
            handlers=handlers,
            format="%(message)s",
            force=force,
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    return structlog.get_logger("genctx")


logger = setup_logging()
