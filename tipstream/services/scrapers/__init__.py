"""
TIPSTREAM - Scrapers
Browser-driven source adapters and multi-source collection.
"""

from tipstream.services.scrapers.base_scraper import (
    BaseBrowserScraper,
    ScraperConfig,
    ScrapeResult,
    ScrapeStatus,
    create_stealth_driver,
    parse_decimal_odds,
    resolve_match_date,
)
from tipstream.services.scrapers.vbet_scraper import VbetScraper
from tipstream.services.scrapers.aggregator import (
    CollectionReport,
    SourceTarget,
    collect_matches,
)

__all__ = [
    "BaseBrowserScraper",
    "ScraperConfig",
    "ScrapeResult",
    "ScrapeStatus",
    "create_stealth_driver",
    "parse_decimal_odds",
    "resolve_match_date",
    "VbetScraper",
    "CollectionReport",
    "SourceTarget",
    "collect_matches",
]
