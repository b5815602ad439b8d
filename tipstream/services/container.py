"""
TIPSTREAM - Service Wiring
Builds the pipeline's long-lived services from settings.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from tipstream.core.config import Settings, settings as default_settings
from tipstream.core.database import DatabaseManager, get_database_manager
from tipstream.core.rate_limiter import RateLimiter
from tipstream.services.matches.match_store import MatchCacheStore
from tipstream.services.matches.source_registry import SourceRegistry
from tipstream.services.predictions.engine import PredictionEngine
from tipstream.services.predictions.llm_client import GenerativeClient
from tipstream.services.predictions.pool_job import PoolBuilder
from tipstream.services.predictions.pool_store import PredictionPoolStore
from tipstream.services.predictions.web_search import WebSearchClient
from tipstream.services.scheduling.scheduler_service import SchedulerService
from tipstream.services.scrapers.vbet_scraper import VbetScraper

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    db: DatabaseManager
    registry: SourceRegistry
    match_store: MatchCacheStore
    pool_store: PredictionPoolStore
    llm: GenerativeClient
    search: WebSearchClient
    engine: PredictionEngine
    pool_builder: PoolBuilder
    scheduler: SchedulerService

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.search.close()
        await self.llm.close()


def build_services(settings: Settings = default_settings, db: Optional[DatabaseManager] = None) -> Services:
    db = db or get_database_manager()

    registry = SourceRegistry(db, default_urls=settings.SOURCE_URLS)
    debug_path = (
        os.path.join(settings.SCRAPER_DEBUG_DIR, "debug-vbet.json")
        if settings.SCRAPER_DEBUG_DUMP and settings.SCRAPER_DEBUG_DIR
        else None
    )
    match_store = MatchCacheStore(
        db,
        scraper=VbetScraper.from_settings(settings),
        registry=registry,
        limiter=RateLimiter.with_cooldown(settings.SCRAPER_REQUEST_DELAY, name="scraping"),
        debug_path=debug_path,
    )
    pool_store = PredictionPoolStore(db)

    llm = GenerativeClient(settings)
    search = WebSearchClient(settings)
    engine = PredictionEngine(llm, match_store=match_store, search=search, settings=settings)
    pool_builder = PoolBuilder(engine, match_store, pool_store, settings=settings)

    scheduler = SchedulerService(
        refresh_func=match_store.refresh_job,
        generate_func=pool_builder.run,
        settings=settings,
    )

    return Services(
        settings=settings,
        db=db,
        registry=registry,
        match_store=match_store,
        pool_store=pool_store,
        llm=llm,
        search=search,
        engine=engine,
        pool_builder=pool_builder,
        scheduler=scheduler,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """Process-wide services, built on first use."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: Optional[Services]) -> None:
    global _services
    _services = services
