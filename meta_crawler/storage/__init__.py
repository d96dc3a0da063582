"""
Storage layer exports.
"""

from meta_crawler.storage.base import ArtifactStorage
from meta_crawler.storage.category_store import CategoryAccumulator, CategoryStore
from meta_crawler.storage.directory_storage import DirectoryArtifactStorage
from meta_crawler.storage.flusher import flush_categories

__all__ = [
    "ArtifactStorage",
    "CategoryAccumulator",
    "CategoryStore",
    "DirectoryArtifactStorage",
    "flush_categories",
]
