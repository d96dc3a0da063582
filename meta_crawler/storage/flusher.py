"""
Persist every category accumulator once the worker pool has drained.
"""

from __future__ import annotations

import logging

from meta_crawler.errors import ArtifactWriteError
from meta_crawler.logging_utils import log_event
from meta_crawler.storage.base import ArtifactStorage
from meta_crawler.storage.category_store import CategoryStore
from meta_crawler.types import ArtifactResult

logger = logging.getLogger(__name__)


def flush_categories(
    *,
    store: CategoryStore,
    storage: ArtifactStorage,
) -> list[ArtifactResult]:
    """
    Write one artifact per registered category.

    The first `ArtifactWriteError` stops the flush and propagates;
    artifacts already written are left in place.
    """

    results: list[ArtifactResult] = []
    for category, accumulator in store.items():
        text = accumulator.text()
        try:
            path = storage.write(category=category, text=text)
        except ArtifactWriteError as exc:
            log_event(
                logger,
                logging.ERROR,
                "artifact_write_failed",
                category=category,
                path=exc.path,
                error=exc.reason,
            )
            raise
        result = ArtifactResult(category=category, path=path, lines=accumulator.line_count)
        results.append(result)
        log_event(
            logger,
            logging.INFO,
            "artifact_written",
            category=category,
            path=path,
            lines=result.lines,
            bytes=len(text.encode("utf-8")),
        )
    return results
