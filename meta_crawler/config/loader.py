"""
Environment-driven settings loader for the metadata crawler.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import TypeVar

from meta_crawler.config.models import CrawlerSettings

_ENV_FILENAMES = (".env", ".env.local")

_Number = TypeVar("_Number", int, float)


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files(base_dir: Path | None = None) -> None:
    """
    Export KEY=VALUE pairs from `.env`, then `.env.local`, under `base_dir`.

    Variables already present in the process environment win, so a value
    set in `.env` is not replaced by `.env.local`.
    """

    root = base_dir or Path.cwd()
    for env_path in (root / name for name in _ENV_FILENAMES):
        if not env_path.is_file():
            continue
        pairs = filter(None, map(_parse_env_line, env_path.read_text(encoding="utf-8").splitlines()))
        for key, value in pairs:
            os.environ.setdefault(key, value)


def _read_env(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


def _number_env(name: str, default: _Number, cast: Callable[[str], _Number], minimum: _Number) -> _Number:
    raw = _read_env(name)
    try:
        value = default if raw is None else cast(raw)
    except ValueError:
        value = default
    return max(minimum, value)


def _default_worker_count() -> int:
    return os.cpu_count() or 1


def build_crawler_settings() -> CrawlerSettings:
    """
    Build crawler settings from the current environment (uncached).

    Unparseable numbers fall back to their defaults; values below their
    minimum are raised to it.
    """

    return CrawlerSettings(
        timeout_seconds=_number_env("META_CRAWL_TIMEOUT_SECONDS", 15.0, float, 1.0),
        worker_count=_number_env("META_CRAWL_WORKERS", _default_worker_count(), int, 1),
        queue_capacity=_number_env("META_CRAWL_QUEUE_CAPACITY", 1, int, 1),
        user_agent=_read_env("META_CRAWL_USER_AGENT") or "CategoryMetaCrawler/1.0",
        chunk_size=_number_env("META_CRAWL_CHUNK_SIZE", 8192, int, 1),
        unknown_category=_read_env("META_CRAWL_UNKNOWN_CATEGORY") or "unknown_category",
        log_level=(_read_env("LOG_LEVEL") or "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_crawler_settings() -> CrawlerSettings:
    """
    Return cached crawler settings, loading `.env` files first.
    """

    load_env_files()
    return build_crawler_settings()
