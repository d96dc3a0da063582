"""
meta_crawler/errors.py

Error taxonomy for the crawl pipeline.

Per-record errors (`DecodeError`, `FetchError`, `HTTPStatusError`) are
caught by the worker that raised them and only ever logged and counted.
`ArtifactWriteError` is fatal and propagates to the process boundary.
"""

from __future__ import annotations


class DecodeError(ValueError):
    """
    Raised when an input line is not a valid crawl record.
    """

    def __init__(self, *, line: str, errors: list[str]) -> None:
        self.line = line
        self.errors = tuple(errors)
        super().__init__("invalid record: " + "; ".join(errors))


class FetchError(RuntimeError):
    """
    Raised when a URL cannot be fetched (transport error or timeout).
    """

    def __init__(self, *, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"cannot fetch {url}: {reason}")


class HTTPStatusError(FetchError):
    """
    Raised when a response status code is 300 or above.
    """

    def __init__(self, *, url: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(url=url, reason=f"returned status {status_code}")


class ArtifactWriteError(RuntimeError):
    """
    Raised when a category artifact cannot be created or written.
    """

    def __init__(self, *, category: str, path: str, reason: str) -> None:
        self.category = category
        self.path = path
        self.reason = reason
        super().__init__(f"cannot write artifact for category '{category}' at {path}: {reason}")
