"""
TIPSTREAM - Prediction Services
Generation engine, its collaborators, and the serving pool.
"""

from tipstream.services.predictions.engine import PredictionEngine
from tipstream.services.predictions.llm_client import GenerativeClient
from tipstream.services.predictions.web_search import WebSearchClient
from tipstream.services.predictions.recent import RecentSelections
from tipstream.services.predictions.validation import MatchResolver, SubstringMatchResolver
from tipstream.services.predictions.pool_store import PredictionPoolStore
from tipstream.services.predictions.pool_job import GenerationReport, PoolBuilder

__all__ = [
    "PredictionEngine",
    "GenerativeClient",
    "WebSearchClient",
    "RecentSelections",
    "MatchResolver",
    "SubstringMatchResolver",
    "PredictionPoolStore",
    "GenerationReport",
    "PoolBuilder",
]
