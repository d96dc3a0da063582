"""
HTML metadata parsing layer.
"""

from meta_crawler.parsing.html_metadata import (
    DescriptionState,
    MetadataScanner,
    TitleState,
    extract_metadata,
    normalize_whitespace,
)

__all__ = [
    "DescriptionState",
    "MetadataScanner",
    "TitleState",
    "extract_metadata",
    "normalize_whitespace",
]
