"""
TIPSTREAM - Models
ORM tables and domain schemas.
"""

from tipstream.models.models import (
    CachedMatch,
    PooledPrediction,
    PredictionCategory,
    SourceUrl,
)
from tipstream.models.schemas import (
    AnalysisRequest,
    ExpressBet,
    Express3Prediction,
    Express5Prediction,
    Match,
    MatchAnalysis,
    MatchWithOdds,
    Odds,
    SinglePrediction,
)

__all__ = [
    "CachedMatch",
    "PooledPrediction",
    "PredictionCategory",
    "SourceUrl",
    "AnalysisRequest",
    "ExpressBet",
    "Express3Prediction",
    "Express5Prediction",
    "Match",
    "MatchAnalysis",
    "MatchWithOdds",
    "Odds",
    "SinglePrediction",
]
