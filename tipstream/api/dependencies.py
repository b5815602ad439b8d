"""
TIPSTREAM - API Dependencies
FastAPI dependency accessors for the pipeline services.
"""

from tipstream.core.database import DatabaseManager
from tipstream.services.container import get_services
from tipstream.services.matches.match_store import MatchCacheStore
from tipstream.services.matches.source_registry import SourceRegistry
from tipstream.services.predictions.engine import PredictionEngine
from tipstream.services.predictions.pool_store import PredictionPoolStore
from tipstream.services.scheduling.scheduler_service import SchedulerService


def get_db() -> DatabaseManager:
    return get_services().db


def get_match_store() -> MatchCacheStore:
    return get_services().match_store


def get_pool_store() -> PredictionPoolStore:
    return get_services().pool_store


def get_engine() -> PredictionEngine:
    return get_services().engine


def get_registry() -> SourceRegistry:
    return get_services().registry


def get_scheduler() -> SchedulerService:
    return get_services().scheduler
