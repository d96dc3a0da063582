"""
tests/test_engine.py

End-to-end tests for CategoryCrawlEngine with an in-memory HTTP session.

Coverage
--------
- Multi-category record lands in every listed category
- Uncategorized records land in unknown_category
- HTTP and transport failures skip the record without appends
- Slow bodies are cut off at the fetch timeout and keep partial results
- Decode failures never append and never stop the run
- Unexpected per-record exceptions do not kill the pool
- Blank lines are skipped; long lines are reassembled
- No lost or duplicated appends across many workers
- Flush to disk and fatal artifact write failures
"""

from __future__ import annotations

import dataclasses
import json
import logging
import time
from pathlib import Path

import pytest

from conftest import FakeSession, Route, SlowBody, TruncatedBody, html_route
from meta_crawler.config import CrawlerSettings
from meta_crawler.engine import CategoryCrawlEngine
from meta_crawler.errors import ArtifactWriteError
from meta_crawler.fetcher import PageFetcher
from meta_crawler.storage import DirectoryArtifactStorage

PAGE_A = '<html><head><title> A </title><meta name="description" content="B  C"></head></html>'


def _line(url: str, categories: list[str] | None = None) -> bytes:
    payload: dict[str, object] = {"url": url}
    if categories is not None:
        payload["categories"] = categories
    return json.dumps(payload).encode("utf-8") + b"\n"


def _engine(
    settings: CrawlerSettings,
    session: FakeSession,
    **kwargs: object,
) -> CategoryCrawlEngine:
    fetcher = PageFetcher(settings=settings, session=session)  # type: ignore[arg-type]
    return CategoryCrawlEngine(settings=settings, fetcher=fetcher, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_record_is_appended_to_each_category(self, settings: CrawlerSettings, tmp_path: Path) -> None:
        session = FakeSession({"http://x/a": html_route(PAGE_A)})
        engine = _engine(settings, session, storage=DirectoryArtifactStorage(output_dir=tmp_path))

        summary = engine.run([b'{"url":"http://x/a","categories":["news","tech"]}\n'])

        assert (tmp_path / "news.tsv").read_text(encoding="utf-8") == "http://x/a\tA\tB C\n"
        assert (tmp_path / "tech.tsv").read_text(encoding="utf-8") == "http://x/a\tA\tB C\n"
        assert summary.appends == 2
        assert summary.records_handled == 1
        assert summary.status == "success"
        assert sorted(artifact.category for artifact in summary.artifacts) == ["news", "tech"]

    def test_http_404_appends_nothing_and_reports_url(
        self,
        settings: CrawlerSettings,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.INFO)
        session = FakeSession({"http://x/b": Route(status_code=404, body=b"missing")})
        engine = _engine(settings, session)

        summary = engine.run([b'{"url":"http://x/b"}'])

        assert len(engine.store) == 0
        assert summary.appends == 0
        assert summary.fetch_failures == 1
        assert summary.status == "failed"
        warnings = [record.getMessage() for record in caplog.records if record.levelno == logging.WARNING]
        assert any("http://x/b" in message and "404" in message for message in warnings)

    def test_uncategorized_record_goes_to_unknown_category(self, settings: CrawlerSettings) -> None:
        session = FakeSession({"http://x/c": html_route("<title>C</title>")})
        engine = _engine(settings, session)

        engine.run([_line("http://x/c"), _line("http://x/c", [])])

        assert engine.store.categories() == ["unknown_category"]
        assert engine.store.get_or_create("unknown_category").text() == "http://x/c\tC\t\n" * 2

    def test_unknown_category_label_is_configurable(self, settings: CrawlerSettings) -> None:
        session = FakeSession({"http://x/c": html_route("<title>C</title>")})
        engine = _engine(dataclasses.replace(settings, unknown_category="misc"), session)

        engine.run([_line("http://x/c")])

        assert engine.store.categories() == ["misc"]

    def test_page_without_metadata_appends_empty_fields(self, settings: CrawlerSettings) -> None:
        session = FakeSession({"http://x/d": html_route("<p>plain</p>")})
        engine = _engine(settings, session)

        summary = engine.run([_line("http://x/d", ["misc"])])

        assert engine.store.get_or_create("misc").text() == "http://x/d\t\t\n"
        assert summary.records_handled == 1


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailureIsolation:
    def test_decode_failure_is_skipped(self, settings: CrawlerSettings, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING)
        session = FakeSession({"http://x/a": html_route(PAGE_A)})
        engine = _engine(settings, session)

        summary = engine.run([b"not json\n", b'{"categories":["news"]}\n', _line("http://x/a", ["news"])])

        assert summary.decode_failures == 2
        assert summary.appends == 1
        assert engine.store.total_lines() == 1
        assert summary.status == "partial_success"
        assert "record_decode_failed" in caplog.text
        assert "not json" in caplog.text

    def test_transport_failure_is_skipped(self, settings: CrawlerSettings) -> None:
        session = FakeSession({"http://x/a": html_route(PAGE_A)})
        engine = _engine(settings, session)

        summary = engine.run([_line("http://unreachable/", ["news"]), _line("http://x/a", ["news"])])

        assert summary.fetch_failures == 1
        assert engine.store.get_or_create("news").text() == "http://x/a\tA\tB C\n"

    def test_unexpected_error_does_not_stop_the_pool(self, settings: CrawlerSettings) -> None:
        session = FakeSession(
            {
                "http://x/boom": Route(error=ValueError("unexpected")),
                "http://x/a": html_route(PAGE_A),
            }
        )
        engine = _engine(dataclasses.replace(settings, worker_count=1), session)

        lines = [_line("http://x/boom", ["news"])] * 3 + [_line("http://x/a", ["news"])]
        summary = engine.run(lines)

        assert summary.processing_failures == 3
        assert summary.records_handled == 1
        assert engine.store.total_lines() == 1

    def test_truncated_body_still_counts_as_handled(self, settings: CrawlerSettings) -> None:
        session = FakeSession(
            {
                "http://x/t": Route(
                    raw_factory=lambda: TruncatedBody(b'<meta name="description" content="d">'),
                )
            }
        )
        engine = _engine(settings, session)

        summary = engine.run([_line("http://x/t", ["news"])])

        assert summary.records_handled == 1
        assert engine.store.get_or_create("news").text() == "http://x/t\t\td\n"
        assert session.responses[0].raw.closed

    def test_slow_page_is_cut_off_at_the_timeout(self, settings: CrawlerSettings) -> None:
        body = b'<meta name="description" content="d">' + b" " * 500
        session = FakeSession({"http://x/s": Route(raw_factory=lambda: SlowBody(body, delay=0.01))})
        engine = _engine(dataclasses.replace(settings, timeout_seconds=1.0, chunk_size=1), session)

        started = time.monotonic()
        summary = engine.run([_line("http://x/s", ["news"])])

        assert time.monotonic() - started < 4.0
        assert summary.records_handled == 1
        assert engine.store.get_or_create("news").text() == "http://x/s\t\td\n"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_blank_lines_are_skipped(self, settings: CrawlerSettings) -> None:
        session = FakeSession({"http://x/a": html_route(PAGE_A)})
        engine = _engine(settings, session)

        summary = engine.run([b"\n", b"   \r\n", _line("http://x/a", ["news"]), b""])

        assert summary.lines_dispatched == 1
        assert summary.decode_failures == 0

    def test_empty_input(self, settings: CrawlerSettings) -> None:
        summary = _engine(settings, FakeSession()).run([])
        assert summary.lines_dispatched == 0
        assert summary.status == "empty"

    def test_run_file_reassembles_long_lines(self, settings: CrawlerSettings, tmp_path: Path) -> None:
        long_url = "http://x/" + "a" * 200_000
        session = FakeSession({long_url: html_route("<title>Long</title>")})
        input_path = tmp_path / "input.jsonl"
        input_path.write_bytes(_line(long_url, ["long"]) + b"\r\n" + _line("http://x/none", ["long"]))

        summary = _engine(settings, session).run_file(input_path)

        assert summary.lines_dispatched == 2
        assert summary.records_handled == 1
        assert summary.fetch_failures == 1

    def test_many_workers_never_lose_or_duplicate_appends(self, settings: CrawlerSettings, tmp_path: Path) -> None:
        routes = {f"http://x/{n}": html_route(f"<title>T{n}</title>") for n in range(120)}
        session = FakeSession(routes)
        engine = _engine(
            dataclasses.replace(settings, worker_count=8),
            session,
            storage=DirectoryArtifactStorage(output_dir=tmp_path),
        )

        lines = []
        expected = 0
        for n in range(120):
            categories = [f"unique-{n}"] + (["shared"] if n % 2 else []) + (["third"] if n % 3 == 0 else [])
            expected += len(categories)
            lines.append(_line(f"http://x/{n}", categories))
        lines.append(_line("http://x/0"))
        expected += 1

        summary = engine.run(lines)

        written = sum(
            len(path.read_text(encoding="utf-8").splitlines()) for path in tmp_path.glob("*.tsv")
        )
        assert summary.appends == expected
        assert written == expected
        assert engine.store.total_lines() == expected
        assert (tmp_path / "unique-7.tsv").read_text(encoding="utf-8") == "http://x/7\tT7\t\n"


# ---------------------------------------------------------------------------
# Flush failures
# ---------------------------------------------------------------------------


class TestFlushFailure:
    def test_artifact_write_error_is_fatal(self, settings: CrawlerSettings, tmp_path: Path) -> None:
        session = FakeSession({"http://x/a": html_route(PAGE_A)})
        engine = _engine(settings, session, storage=DirectoryArtifactStorage(output_dir=tmp_path / "gone"))

        with pytest.raises(ArtifactWriteError):
            engine.run([_line("http://x/a", ["news"])])

    def test_engine_closes_owned_fetcher_only(self, settings: CrawlerSettings) -> None:
        session = FakeSession()
        with _engine(settings, session) as engine:
            engine.run([])
        assert not session.closed
