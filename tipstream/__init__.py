"""
TIPSTREAM - Odds Acquisition & Prediction Pipeline

This package contains the market data and prediction pipeline behind the
TIPSTREAM prediction product:
- Stealth browser scraping of bookmaker pages
- Deduplicated match cache with atomic snapshot replacement
- Schema-constrained prediction generation with odds repair
- Pre-computed prediction pools served at random
- Background scheduling of cache refresh and pool regeneration
"""

__version__ = "1.0.0"
__author__ = "TIPSTREAM Team"
__description__ = "Odds acquisition and prediction generation pipeline"


def get_version() -> str:
    """Return the package version."""
    return __version__
