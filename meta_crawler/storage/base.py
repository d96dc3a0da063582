"""
Storage layer interfaces for category artifacts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ArtifactStorage(ABC):
    """
    Storage abstraction for flushed category text.
    """

    @abstractmethod
    def write(self, *, category: str, text: str) -> str:
        """
        Persist the full text for one category and return its location.

        Raises `ArtifactWriteError` when the artifact cannot be written.
        """
