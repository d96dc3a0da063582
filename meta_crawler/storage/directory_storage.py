"""
Filesystem-backed artifact storage writing one TSV file per category.
"""

from __future__ import annotations

from pathlib import Path

from meta_crawler.errors import ArtifactWriteError
from meta_crawler.storage.base import ArtifactStorage

ARTIFACT_SUFFIX = ".tsv"


class DirectoryArtifactStorage(ArtifactStorage):
    """
    Write `<output_dir>/<category>.tsv` artifacts.
    """

    def __init__(self, *, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir).resolve()

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def artifact_path(self, category: str) -> Path:
        return self._output_dir / f"{category}{ARTIFACT_SUFFIX}"

    def write(self, *, category: str, text: str) -> str:
        path = self.artifact_path(category)
        # Category labels are file names, never sub-paths.
        if path.parent != self._output_dir:
            raise ArtifactWriteError(
                category=category,
                path=str(path),
                reason="category label is not a plain file name",
            )

        try:
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(text)
        except (OSError, ValueError) as exc:
            raise ArtifactWriteError(
                category=category,
                path=str(path),
                reason=str(exc),
            ) from exc
        return str(path)
