"""
TIPSTREAM - Multi-Source Collection
Scrapes every configured source page in order and concatenates the results.

Sources are visited one at a time with a pause between them; a degraded
source never stops the batch. Deduplication is left to the match store.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from tipstream.core.rate_limiter import RateLimiter
from tipstream.models.schemas import MatchWithOdds
from tipstream.services.scrapers.base_scraper import (
    BaseBrowserScraper,
    ScrapeResult,
    ScrapeStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_LABEL_TEMPLATE = "Лига {index}"


@dataclass
class SourceTarget:
    """One page to scrape and the league label its matches get."""
    url: str
    label: str

    @classmethod
    def numbered(cls, urls: List[str]) -> List["SourceTarget"]:
        return [
            cls(url=url, label=DEFAULT_LABEL_TEMPLATE.format(index=i))
            for i, url in enumerate(urls, start=1)
        ]


@dataclass
class CollectionReport:
    """Per-source outcomes of one collection run."""
    results: List[ScrapeResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    @property
    def matches(self) -> List[MatchWithOdds]:
        collected: List[MatchWithOdds] = []
        for result in self.results:
            collected.extend(result.matches)
        return collected

    @property
    def degraded(self) -> List[ScrapeResult]:
        return [r for r in self.results if r.status == ScrapeStatus.DEGRADED]

    @property
    def all_degraded(self) -> bool:
        """True when no source produced a trustworthy answer (including no sources)."""
        return len(self.degraded) == len(self.results)

    @property
    def errors(self) -> List[str]:
        return [
            f"{r.label}: {r.error_message or 'degraded'}"
            for r in self.degraded
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": (self.finished_at or self.started_at).isoformat(),
            "totalMatchesFound": len(self.matches),
            "urlsUsed": [r.url for r in self.results],
            "sources": [r.to_dict() for r in self.results],
            "matches": [m.model_dump(mode="json", by_alias=True) for m in self.matches],
            "errors": self.errors or None,
        }


async def collect_matches(
    targets: List[SourceTarget],
    scraper: BaseBrowserScraper,
    limiter: Optional[RateLimiter] = None,
    debug_path: Optional[str] = None,
) -> CollectionReport:
    """
    Scrape each target sequentially and gather the outcomes.

    Args:
        targets: Pages to visit, in order
        scraper: Source adapter used for every page
        limiter: Pacing between consecutive pages
        debug_path: If set, a JSON summary of the run is written there
    """
    report = CollectionReport()

    if not targets:
        logger.warning("[Collector] No source URLs configured. Add URLs via the admin API.")
        report.finished_at = datetime.utcnow()
        return report

    logger.info(f"[Collector] Starting to scrape matches from {len(targets)} sources...")

    for i, target in enumerate(targets, start=1):
        logger.info(f"[Collector] Scraping source {i}/{len(targets)}: {target.url}")
        if limiter is not None:
            async with limiter.slot():
                result = await _scrape_one(scraper, target)
        else:
            result = await _scrape_one(scraper, target)

        if result.status == ScrapeStatus.OK:
            logger.info(f"[Collector] Source {i}: found {len(result.matches)} matches")
        elif result.status == ScrapeStatus.EMPTY:
            logger.warning(f"[Collector] Source {i} returned 0 matches")
        else:
            logger.error(f"[Collector] Source {i} degraded: {result.error_message}")
        report.results.append(result)

    report.finished_at = datetime.utcnow()
    logger.info(f"[Collector] Total matches found: {len(report.matches)}")

    if debug_path:
        write_debug_summary(report, debug_path)

    return report


async def _scrape_one(scraper: BaseBrowserScraper, target: SourceTarget) -> ScrapeResult:
    try:
        return await scraper.scrape_url(target.url, target.label)
    except Exception as e:
        logger.error(f"[Collector] Adapter failed for {target.url}: {e}", exc_info=True)
        return ScrapeResult(
            url=target.url,
            label=target.label,
            status=ScrapeStatus.DEGRADED,
            error_message=str(e),
        )


def write_debug_summary(report: CollectionReport, path: str) -> None:
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(report.to_dict(), fh, ensure_ascii=False, indent=2)
        logger.info(f"[Collector] Debug data saved to: {path}")
    except OSError as e:
        logger.warning(f"[Collector] Could not write debug data: {e}")
