"""
TIPSTREAM - Match Cache Store
Deduplicated snapshot of scraped fixtures, replaced wholesale on refresh.

Readers always see either the previous snapshot or the new one: the
delete and the bulk insert run inside a single transaction, and a failed
refresh leaves the table untouched.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select

from tipstream.core.database import DatabaseManager
from tipstream.core.exceptions import RefreshFailedError
from tipstream.core.rate_limiter import RateLimiter
from tipstream.models.models import CachedMatch
from tipstream.models.schemas import MatchWithOdds, Odds
from tipstream.services.matches.source_registry import SourceRegistry
from tipstream.services.scrapers.aggregator import collect_matches
from tipstream.services.scrapers.base_scraper import BaseBrowserScraper

logger = logging.getLogger(__name__)


def dedupe_matches(matches: Iterable[MatchWithOdds]) -> List[MatchWithOdds]:
    """Drop repeated (home, away, date) fixtures, keeping the first occurrence."""
    seen = set()
    unique: List[MatchWithOdds] = []
    for match in matches:
        if match.key in seen:
            continue
        seen.add(match.key)
        unique.append(match)
    return unique


@dataclass
class RefreshReport:
    """Outcome of one cache refresh."""
    success: bool
    scraped: int = 0
    stored: int = 0
    sources: int = 0
    degraded_sources: int = 0
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    @property
    def duplicates(self) -> int:
        return self.scraped - self.stored if self.success else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "scraped": self.scraped,
            "stored": self.stored,
            "duplicates": self.duplicates,
            "sources": self.sources,
            "degraded_sources": self.degraded_sources,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


def _to_row(match: MatchWithOdds, now: datetime) -> CachedMatch:
    return CachedMatch(
        home_team=match.home_team,
        away_team=match.away_team,
        match_date=match.date,
        match_time=match.time,
        league=match.league,
        odds_home=match.odds.home,
        odds_draw=match.odds.draw,
        odds_away=match.odds.away,
        updated_at=now,
    )


def _from_row(row: CachedMatch) -> MatchWithOdds:
    return MatchWithOdds(
        home_team=row.home_team,
        away_team=row.away_team,
        date=row.match_date,
        time=row.match_time,
        league=row.league,
        odds=Odds(home=row.odds_home, draw=row.odds_draw, away=row.odds_away),
    )


class MatchCacheStore:
    """
    Persistent cache of the latest scraped fixtures.

    Usage:
        store = MatchCacheStore(db, scraper=VbetScraper.from_settings(), registry=registry)
        report = await store.refresh()
        matches = await store.read()
    """

    def __init__(
        self,
        db: DatabaseManager,
        scraper: Optional[BaseBrowserScraper] = None,
        registry: Optional[SourceRegistry] = None,
        limiter: Optional[RateLimiter] = None,
        debug_path: Optional[str] = None,
    ):
        self.db = db
        self.scraper = scraper
        self.registry = registry
        self.limiter = limiter
        self.debug_path = debug_path
        self.last_report: Optional[RefreshReport] = None

    async def read(self) -> List[MatchWithOdds]:
        """Cached matches ordered by date, then kick-off time."""
        async with self.db.session() as session:
            result = await session.execute(
                select(CachedMatch).order_by(CachedMatch.match_date, CachedMatch.match_time, CachedMatch.id)
            )
            return [_from_row(row) for row in result.scalars().all()]

    async def count(self) -> int:
        async with self.db.session() as session:
            return (await session.execute(select(func.count(CachedMatch.id)))).scalar_one()

    async def replace(self, matches: List[MatchWithOdds]) -> int:
        """Swap the whole snapshot for the deduplicated matches in one transaction."""
        unique = dedupe_matches(matches)
        now = datetime.utcnow()
        async with self.db.transaction() as session:
            await session.execute(delete(CachedMatch))
            session.add_all([_to_row(m, now) for m in unique])
        return len(unique)

    async def refresh(self) -> RefreshReport:
        """
        Scrape every configured source and replace the snapshot.

        Never raises: failures are reported and the previous snapshot stays.
        """
        logger.info("[MatchStore] Starting refresh...")
        report = RefreshReport(success=False)

        try:
            if self.scraper is None or self.registry is None:
                raise RuntimeError("Match store has no scraper or source registry configured")

            targets = await self.registry.get_targets()
            report.sources = len(targets)
            collection = await collect_matches(
                targets, self.scraper, limiter=self.limiter, debug_path=self.debug_path
            )
            report.degraded_sources = len(collection.degraded)

            if not targets:
                report.error = "No source URLs configured"
            elif collection.all_degraded:
                report.error = "All sources degraded: " + "; ".join(collection.errors)
            else:
                scraped = collection.matches
                report.scraped = len(scraped)
                report.stored = await self.replace(scraped)
                report.success = True

        except Exception as e:
            logger.error(f"[MatchStore] Refresh failed: {e}", exc_info=True)
            report.error = str(e)

        report.finished_at = datetime.utcnow()
        self.last_report = report

        if report.success:
            logger.info(
                f"[MatchStore] Refreshed: {report.stored} matches "
                f"({report.scraped} before dedup, {report.degraded_sources} degraded sources)"
            )
        else:
            logger.warning(f"[MatchStore] Keeping previous snapshot: {report.error}")
        return report

    async def refresh_job(self) -> RefreshReport:
        """Scheduled form of ``refresh``: a report without success is raised."""
        report = await self.refresh()
        if not report.success:
            raise RefreshFailedError(report.error or "Refresh failed", details=report.to_dict())
        return report
