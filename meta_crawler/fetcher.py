"""
HTTP page fetcher with guaranteed response release.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator

import requests

from meta_crawler.config.models import CrawlerSettings
from meta_crawler.errors import FetchError, HTTPStatusError
from meta_crawler.logging_utils import log_event

logger = logging.getLogger(__name__)


class ResponseStream:
    """
    Readable body of a successful response.

    Use as a context manager; the underlying connection is released on
    exit regardless of how far the body was read. Iteration stops once
    `deadline` (a `time.monotonic()` value) has passed.
    """

    def __init__(
        self,
        *,
        url: str,
        response: requests.Response,
        chunk_size: int,
        deadline: float | None = None,
    ) -> None:
        self.url = url
        self.status_code = response.status_code
        self._response = response
        self._chunk_size = chunk_size
        self._deadline = deadline
        self._closed = False

    @property
    def encoding(self) -> str | None:
        """
        Charset declared by the Content-Type header, if any.
        """

        content_type = self._response.headers.get("content-type", "")
        if "charset=" not in content_type.lower():
            return None
        return self._response.encoding

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_content(chunk_size=self._chunk_size):
                if chunk:
                    yield chunk
                if self._deadline is not None and time.monotonic() >= self._deadline:
                    log_event(
                        logger,
                        logging.WARNING,
                        "body_read_truncated",
                        url=self.url,
                        error="deadline exceeded",
                    )
                    return
        except requests.RequestException as exc:
            log_event(
                logger,
                logging.WARNING,
                "body_read_truncated",
                url=self.url,
                error=str(exc),
            )

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._response.close()

    def __enter__(self) -> ResponseStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class PageFetcher:
    """
    Issues single-attempt GET requests with a fixed client-level timeout.

    The timeout bounds each connect and read, and also the whole exchange:
    body iteration ends once it has elapsed since the request was sent.
    """

    def __init__(
        self,
        *,
        settings: CrawlerSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._timeout_seconds = settings.timeout_seconds
        self._chunk_size = settings.chunk_size
        self._session = session or requests.Session()
        self._headers = {
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
        }

    def fetch(self, url: str) -> ResponseStream:
        """
        GET `url` and return its body stream.

        Raises `FetchError` on transport failure or timeout and
        `HTTPStatusError` when the final status code is 300 or above.
        """

        deadline = time.monotonic() + self._timeout_seconds
        try:
            response = self._session.get(
                url,
                headers=self._headers,
                timeout=self._timeout_seconds,
                allow_redirects=True,
                stream=True,
            )
        except requests.RequestException as exc:
            raise FetchError(url=url, reason=str(exc)) from exc

        if response.status_code >= 300:
            response.close()
            raise HTTPStatusError(url=url, status_code=response.status_code)

        return ResponseStream(
            url=url,
            response=response,
            chunk_size=self._chunk_size,
            deadline=deadline,
        )

    def close(self) -> None:
        self._session.close()
