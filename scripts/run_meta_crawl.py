"""
Run the category metadata crawl from CLI.
"""

from __future__ import annotations

from meta_crawler.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
