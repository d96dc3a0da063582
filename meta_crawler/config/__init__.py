"""
Config helpers for the metadata crawler.
"""

from meta_crawler.config.loader import build_crawler_settings, get_crawler_settings, load_env_files
from meta_crawler.config.models import CrawlerSettings

__all__ = [
    "CrawlerSettings",
    "build_crawler_settings",
    "get_crawler_settings",
    "load_env_files",
]
