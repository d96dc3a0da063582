"""
Structured logging helpers for crawl workflows.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit `event` and its non-None fields as one sorted JSON object.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {key: value for key, value in fields.items() if value is not None}
    payload["event"] = event
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


class _BelowLevelFilter(logging.Filter):
    def __init__(self, level: int) -> None:
        super().__init__()
        self._level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self._level


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for a crawl process.

    Progress events (below WARNING) go to stdout, diagnostics to stderr.
    """

    formatter = logging.Formatter(_LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    stdout_handler.addFilter(_BelowLevelFilter(logging.WARNING))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING)

    logging.basicConfig(
        level=getattr(logging, level.strip().upper(), logging.INFO),
        handlers=[stdout_handler, stderr_handler],
        force=True,
    )
