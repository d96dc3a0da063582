"""
Category crawl engine: dispatcher, worker pool and final flush.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterable
from pathlib import Path

from meta_crawler.config.models import CrawlerSettings
from meta_crawler.errors import DecodeError, FetchError, HTTPStatusError
from meta_crawler.fetcher import PageFetcher
from meta_crawler.logging_utils import log_event
from meta_crawler.parsing import extract_metadata
from meta_crawler.records import Record, decode_record
from meta_crawler.storage import ArtifactStorage, CategoryStore, flush_categories
from meta_crawler.types import ArtifactResult, CrawlRunSummary

logger = logging.getLogger(__name__)

# Queue marker telling one worker that input is exhausted.
_STOP = object()

_LINE_EXCERPT_CHARS = 200


class _RunCounters:
    """
    Thread-safe per-run tallies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.records_handled = 0
        self.decode_failures = 0
        self.fetch_failures = 0
        self.processing_failures = 0
        self.appends = 0

    def add(self, name: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)


class CrawlWorker(threading.Thread):
    """
    Pulls raw lines from the work queue until it receives the stop marker.

    Every per-record failure is logged and counted here; nothing a single
    record does can stop the worker.
    """

    def __init__(
        self,
        *,
        worker_id: int,
        work_queue: queue.Queue,
        store: CategoryStore,
        fetcher: PageFetcher,
        settings: CrawlerSettings,
        counters: _RunCounters,
    ) -> None:
        super().__init__(name=f"crawl-worker-{worker_id}", daemon=True)
        self.worker_id = worker_id
        self._queue = work_queue
        self._store = store
        self._fetcher = fetcher
        self._unknown_category = settings.unknown_category
        self._counters = counters

    def run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._process_line(item)
            except Exception as exc:
                self._counters.add("processing_failures")
                log_event(
                    logger,
                    logging.ERROR,
                    "record_processing_failed",
                    worker=self.name,
                    line=_excerpt(item),
                    error=repr(exc),
                )
            finally:
                self._queue.task_done()

    def _process_line(self, line: bytes | str) -> None:
        try:
            record = decode_record(line)
        except DecodeError as exc:
            self._counters.add("decode_failures")
            log_event(
                logger,
                logging.WARNING,
                "record_decode_failed",
                line=_excerpt(exc.line),
                errors=list(exc.errors),
            )
            return

        self._process_record(record)

    def _process_record(self, record: Record) -> None:
        try:
            stream = self._fetcher.fetch(record.url)
        except HTTPStatusError as exc:
            self._counters.add("fetch_failures")
            log_event(
                logger,
                logging.WARNING,
                "record_http_status",
                url=record.url,
                status_code=exc.status_code,
            )
            return
        except FetchError as exc:
            self._counters.add("fetch_failures")
            log_event(
                logger,
                logging.WARNING,
                "record_fetch_failed",
                url=record.url,
                error=exc.reason,
            )
            return

        with stream:
            metadata = extract_metadata(stream, encoding=stream.encoding, url=record.url)

        categories = record.target_categories(self._unknown_category)
        for category in categories:
            accumulator = self._store.get_or_create(category)
            self._store.append(accumulator, record.url, metadata.title, metadata.description)
        self._counters.add("appends", len(categories))
        self._counters.add("records_handled")

        log_event(
            logger,
            logging.INFO,
            "record_handled",
            url=record.url,
            categories=len(categories),
            has_title=bool(metadata.title),
            has_description=bool(metadata.description),
        )


def _excerpt(line: object) -> str:
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    text = str(line)
    if len(text) <= _LINE_EXCERPT_CHARS:
        return text
    return text[:_LINE_EXCERPT_CHARS] + "..."


def _strip_line_ending(line: bytes | str) -> bytes | str:
    if isinstance(line, bytes):
        return line.rstrip(b"\r\n")
    return line.rstrip("\r\n")


class CategoryCrawlEngine:
    """
    Orchestrates dispatch, concurrent fetch/extract/append and flush.
    """

    def __init__(
        self,
        *,
        settings: CrawlerSettings,
        store: CategoryStore | None = None,
        fetcher: PageFetcher | None = None,
        storage: ArtifactStorage | None = None,
    ) -> None:
        self._settings = settings
        self._store = store or CategoryStore()
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or PageFetcher(settings=settings)
        self._storage = storage

    @property
    def store(self) -> CategoryStore:
        return self._store

    def close(self) -> None:
        if self._owns_fetcher:
            self._fetcher.close()

    def __enter__(self) -> CategoryCrawlEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def run_file(self, path: str | Path) -> CrawlRunSummary:
        """
        Crawl every record of a newline-delimited input file.
        """

        with open(path, "rb") as handle:
            return self.run(handle)

    def run(self, lines: Iterable[bytes | str]) -> CrawlRunSummary:
        """
        Dispatch `lines` to the worker pool, wait for it to drain, then flush.

        Raises `ArtifactWriteError` if any category artifact cannot be
        written.
        """

        counters = _RunCounters()
        work_queue: queue.Queue = queue.Queue(maxsize=self._settings.queue_capacity)
        workers = [
            CrawlWorker(
                worker_id=index,
                work_queue=work_queue,
                store=self._store,
                fetcher=self._fetcher,
                settings=self._settings,
                counters=counters,
            )
            for index in range(self._settings.worker_count)
        ]
        log_event(
            logger,
            logging.INFO,
            "crawl_started",
            workers=len(workers),
            queue_capacity=self._settings.queue_capacity,
            timeout_seconds=self._settings.timeout_seconds,
        )
        for worker in workers:
            worker.start()

        dispatched = 0
        try:
            for raw_line in lines:
                line = _strip_line_ending(raw_line)
                if not line.strip():
                    continue
                work_queue.put(line)
                dispatched += 1
        finally:
            for _ in workers:
                work_queue.put(_STOP)
            for worker in workers:
                worker.join()

        artifacts: list[ArtifactResult] = []
        if self._storage is not None:
            artifacts = flush_categories(store=self._store, storage=self._storage)

        summary = CrawlRunSummary(
            lines_dispatched=dispatched,
            records_handled=counters.records_handled,
            decode_failures=counters.decode_failures,
            fetch_failures=counters.fetch_failures,
            processing_failures=counters.processing_failures,
            appends=counters.appends,
            categories=sorted(self._store.categories()),
            artifacts=artifacts,
        )
        log_event(
            logger,
            logging.INFO,
            "crawl_completed",
            status=summary.status,
            lines_dispatched=summary.lines_dispatched,
            records_handled=summary.records_handled,
            failures=summary.failures,
            appends=summary.appends,
            artifacts=len(summary.artifacts),
        )
        return summary
