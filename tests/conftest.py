"""
Shared pytest fixtures: an in-memory stand-in for `requests.Session`.
"""

from __future__ import annotations

import io
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import pytest
import requests
from requests.utils import get_encoding_from_headers

from meta_crawler.config import CrawlerSettings


@dataclass
class Route:
    status_code: int = 200
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "text/html"})
    error: BaseException | None = None
    raw_factory: Any = None


class TruncatedBody(io.RawIOBase):
    """
    Body that returns `data` and then fails like a dropped connection.
    """

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._sent = False

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if not self._sent:
            self._sent = True
            return self._data
        raise requests.ConnectionError("connection reset mid-body")


class SlowBody(io.RawIOBase):
    """
    Body that trickles `data` out one byte per read, sleeping `delay` first.
    """

    def __init__(self, data: bytes, delay: float) -> None:
        self._data = data
        self._delay = delay
        self._offset = 0

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if self._offset >= len(self._data):
            return b""
        time.sleep(self._delay)
        self._offset += 1
        return self._data[self._offset - 1 : self._offset]


def make_response(url: str, route: Route) -> requests.Response:
    response = requests.Response()
    response.status_code = route.status_code
    response.url = url
    response.headers.update(route.headers)
    response.encoding = get_encoding_from_headers(response.headers)
    response.raw = route.raw_factory() if route.raw_factory else io.BytesIO(route.body)
    return response


class FakeSession:
    """
    Thread-safe `requests.Session` replacement serving canned routes.
    """

    def __init__(self, routes: dict[str, Route] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.responses: list[requests.Response] = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        with self._lock:
            self.calls.append((url, kwargs))
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"no route to {url}")
        if route.error is not None:
            raise route.error
        response = make_response(url, route)
        with self._lock:
            self.responses.append(response)
        return response

    def close(self) -> None:
        self.closed = True


def html_route(html: str, **kwargs: Any) -> Route:
    return Route(body=html.encode("utf-8"), **kwargs)


@pytest.fixture()
def settings() -> CrawlerSettings:
    return CrawlerSettings(timeout_seconds=15.0, worker_count=4, queue_capacity=1, chunk_size=64)


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()
