"""
TIPSTREAM - Pool Regeneration Job
Refills the prediction pool for every category from the current match cache.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from tipstream.core.config import Settings, settings as default_settings
from tipstream.core.rate_limiter import RateLimiter
from tipstream.models.models import PredictionCategory
from tipstream.services.matches.match_store import MatchCacheStore
from tipstream.services.predictions.engine import PredictionEngine
from tipstream.services.predictions.pool_store import PredictionPoolStore

logger = logging.getLogger(__name__)


@dataclass
class CategoryReport:
    category: str
    generated: int = 0
    failed: int = 0
    skipped: bool = False
    replaced: bool = False
    errors: List[str] = field(default_factory=list)


@dataclass
class GenerationReport:
    """Per-category outcome of one pool regeneration."""
    matches: int = 0
    categories: Dict[str, CategoryReport] = field(default_factory=dict)
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    @property
    def skipped(self) -> bool:
        return self.matches == 0

    @property
    def total_generated(self) -> int:
        return sum(c.generated for c in self.categories.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": self.matches,
            "skipped": self.skipped,
            "total_generated": self.total_generated,
            "categories": {
                name: {
                    "generated": c.generated,
                    "failed": c.failed,
                    "skipped": c.skipped,
                    "replaced": c.replaced,
                    "errors": c.errors,
                }
                for name, c in self.categories.items()
            },
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class PoolBuilder:
    """
    Generates a fresh batch per category and swaps it into the pool.

    Generation calls are serialized with a cooldown between them. A failed
    item is logged and skipped; a category with no successes keeps its
    previous pool.
    """

    def __init__(
        self,
        engine: PredictionEngine,
        match_store: MatchCacheStore,
        pool_store: PredictionPoolStore,
        settings: Settings = default_settings,
        limiter: Optional[RateLimiter] = None,
    ):
        self.engine = engine
        self.match_store = match_store
        self.pool_store = pool_store
        self.per_category = settings.PREDICTIONS_PER_CATEGORY
        self.limiter = limiter or RateLimiter.with_cooldown(settings.PREDICTION_CALL_DELAY, name="generation")

    async def run(self) -> GenerationReport:
        logger.info("[PoolBuilder] Starting prediction generation...")
        report = GenerationReport()

        matches = await self.match_store.read()
        report.matches = len(matches)
        logger.info(f"[PoolBuilder] Matches in cache: {len(matches)}")
        if not matches:
            logger.warning("[PoolBuilder] No matches in cache, skipping")
            report.finished_at = datetime.utcnow()
            return report

        for category in PredictionCategory:
            category_report = CategoryReport(category=category.value)
            report.categories[category.value] = category_report

            if len(matches) < category.required_matches:
                logger.warning(f"[PoolBuilder] Not enough matches for {category.value}, skipping")
                category_report.skipped = True
                continue

            batch = []
            for i in range(self.per_category):
                try:
                    async with self.limiter.slot():
                        batch.append(await self.engine.generate(category, matches))
                    category_report.generated += 1
                except Exception as e:
                    category_report.failed += 1
                    category_report.errors.append(str(e))
                    logger.error(f"[PoolBuilder] {category.value} {i + 1} failed: {e}", exc_info=True)

            if batch:
                await self.pool_store.replace(category, batch)
                category_report.replaced = True
            else:
                logger.warning(f"[PoolBuilder] No {category.value} predictions generated, keeping previous pool")

        report.finished_at = datetime.utcnow()
        logger.info(f"[PoolBuilder] Generation complete: {report.total_generated} predictions")
        return report
