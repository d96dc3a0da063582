"""
In-memory per-category output accumulators.

Two lock levels: the store lock guards insertion of new categories, and
each accumulator owns a lock so writers to different categories never
contend.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator


def format_line(url: str, title: str, description: str) -> str:
    return f"{url}\t{title}\t{description}\n"


class CategoryAccumulator:
    """
    Append-only text buffer for one category.
    """

    def __init__(self, category: str) -> None:
        self.category = category
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def append_line(self, url: str, title: str, description: str) -> None:
        line = format_line(url, title, description)
        with self._lock:
            self._lines.append(line)

    @property
    def line_count(self) -> int:
        with self._lock:
            return len(self._lines)

    def text(self) -> str:
        """
        Full buffered content; only read after all writers are done.
        """

        return "".join(self._lines)


class CategoryStore:
    """
    Concurrent mapping from category label to its accumulator.
    """

    def __init__(self) -> None:
        self._accumulators: dict[str, CategoryAccumulator] = {}
        self._lock = threading.Lock()

    def get_or_create(self, category: str) -> CategoryAccumulator:
        accumulator = self._accumulators.get(category)
        if accumulator is not None:
            return accumulator

        with self._lock:
            accumulator = self._accumulators.get(category)
            if accumulator is None:
                accumulator = CategoryAccumulator(category)
                self._accumulators[category] = accumulator
            return accumulator

    @staticmethod
    def append(
        accumulator: CategoryAccumulator,
        url: str,
        title: str,
        description: str,
    ) -> None:
        accumulator.append_line(url, title, description)

    def items(self) -> Iterator[tuple[str, CategoryAccumulator]]:
        with self._lock:
            snapshot = list(self._accumulators.items())
        return iter(snapshot)

    def categories(self) -> list[str]:
        return [category for category, _ in self.items()]

    def total_lines(self) -> int:
        return sum(accumulator.line_count for _, accumulator in self.items())

    def __contains__(self, category: object) -> bool:
        return category in self._accumulators

    def __len__(self) -> int:
        return len(self._accumulators)
