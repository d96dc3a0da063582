"""
Crawler configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CrawlerSettings:
    """
    Runtime settings shared read-only by the fetcher and every worker.
    """

    timeout_seconds: float = 15.0
    worker_count: int = 1
    queue_capacity: int = 1
    user_agent: str = "CategoryMetaCrawler/1.0"
    chunk_size: int = 8192
    unknown_category: str = "unknown_category"
    log_level: str = "INFO"
