"""
Shared crawl runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExtractedMetadata:
    """
    Page title and meta description, empty strings when not found.
    """

    title: str = ""
    description: str = ""


@dataclass(frozen=True)
class ArtifactResult:
    """
    One persisted category artifact.
    """

    category: str
    path: str
    lines: int


@dataclass(frozen=True)
class CrawlRunSummary:
    """
    Outcome for one crawl run.
    """

    lines_dispatched: int
    records_handled: int
    decode_failures: int
    fetch_failures: int
    processing_failures: int
    appends: int
    categories: list[str] = field(default_factory=list)
    artifacts: list[ArtifactResult] = field(default_factory=list)

    @property
    def failures(self) -> int:
        return self.decode_failures + self.fetch_failures + self.processing_failures

    @property
    def status(self) -> str:
        if self.lines_dispatched == 0:
            return "empty"
        if self.failures > 0:
            return "partial_success" if self.records_handled > 0 else "failed"
        return "success"

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "lines_dispatched": self.lines_dispatched,
            "records_handled": self.records_handled,
            "decode_failures": self.decode_failures,
            "fetch_failures": self.fetch_failures,
            "processing_failures": self.processing_failures,
            "appends": self.appends,
            "categories": list(self.categories),
            "artifacts": [
                {"category": item.category, "path": item.path, "lines": item.lines}
                for item in self.artifacts
            ],
        }
