"""
TIPSTREAM - Domain Schemas
Pydantic models for scraped matches and generated predictions.

Prediction models double as the parse/validate step for generator output.
Fields that are clamped after parsing (confidence, riskPercent, analysis
odds) are only type-checked here; everything else is enforced strictly.
"""

import datetime as dt
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# MATCHES
# =============================================================================

class Odds(CamelModel):
    home: PositiveFloat
    draw: PositiveFloat
    away: PositiveFloat

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.home, self.draw, self.away)


class Match(CamelModel):
    home_team: str = Field(min_length=1)
    away_team: str = Field(min_length=1)
    date: dt.date
    time: Optional[str] = None
    league: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, dt.date]:
        """Natural identity of a fixture."""
        return (self.home_team, self.away_team, self.date)

    @property
    def title(self) -> str:
        return f"{self.home_team} - {self.away_team}"


class MatchWithOdds(Match):
    odds: Odds


# =============================================================================
# PREDICTIONS
# =============================================================================

class SinglePrediction(BaseModel):
    type: Literal["single"] = "single"
    match: str = Field(min_length=3)
    prediction: str = Field(min_length=1)
    odds: PositiveFloat
    confidence: int


class ExpressBet(BaseModel):
    match: str = Field(min_length=3)
    prediction: str = Field(min_length=1)
    odds: PositiveFloat


class Express3Prediction(BaseModel):
    type: Literal["express3"] = "express3"
    bets: List[ExpressBet] = Field(min_length=3, max_length=3)
    total_odds: float
    confidence: int


class Express5Prediction(BaseModel):
    type: Literal["express5"] = "express5"
    bets: List[ExpressBet] = Field(min_length=5, max_length=5)
    total_odds: float
    confidence: int


class MatchAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match: str
    prediction: str = Field(min_length=1)
    risk_percent: int = Field(alias="riskPercent")
    # 0 and values >= 99 are the generator's "odds not found" markers
    odds: float

    def to_public(self) -> dict:
        return self.model_dump(by_alias=True)


class AnalysisRequest(BaseModel):
    match: str = Field(min_length=3)
    league: Optional[str] = None
    date: Optional[str] = None
