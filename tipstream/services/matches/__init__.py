"""
TIPSTREAM - Match Services
Source registry and the deduplicated match cache.
"""

from tipstream.services.matches.source_registry import SourceRegistry, normalize_urls
from tipstream.services.matches.match_store import MatchCacheStore, RefreshReport, dedupe_matches

__all__ = [
    "SourceRegistry",
    "normalize_urls",
    "MatchCacheStore",
    "RefreshReport",
    "dedupe_matches",
]
