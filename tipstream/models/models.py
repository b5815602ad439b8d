"""
TIPSTREAM - Database Models

SQLAlchemy 2.0 models for the match cache, the prediction pool and the
operator-managed list of source pages.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON, Date, DateTime, Float, Index, Integer, String, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from tipstream.core.database import Base


# =============================================================================
# ENUMS
# =============================================================================

class PredictionCategory(str, PyEnum):
    SINGLE = "single"
    EXPRESS3 = "express3"
    EXPRESS5 = "express5"

    @property
    def required_matches(self) -> int:
        return {"single": 1, "express3": 3, "express5": 5}[self.value]

    @property
    def bet_count(self) -> int:
        return self.required_matches


# =============================================================================
# MATCH CACHE
# =============================================================================

class CachedMatch(Base):
    """One scraped fixture with its 1X2 odds. The whole table is one snapshot."""
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    home_team: Mapped[str] = mapped_column(String(200), nullable=False)
    away_team: Mapped[str] = mapped_column(String(200), nullable=False)
    match_date: Mapped[date] = mapped_column(Date, nullable=False)
    match_time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    league: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    odds_home: Mapped[float] = mapped_column(Float, nullable=False)
    odds_draw: Mapped[float] = mapped_column(Float, nullable=False)
    odds_away: Mapped[float] = mapped_column(Float, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("home_team", "away_team", "match_date", name="uq_matches_natural_key"),
        Index("ix_matches_date_time", "match_date", "match_time"),
    )


# =============================================================================
# PREDICTION POOL
# =============================================================================

class PooledPrediction(Base):
    """A pre-generated prediction waiting to be served."""
    __tablename__ = "predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())


# =============================================================================
# SOURCES
# =============================================================================

class SourceUrl(Base):
    """A bookmaker page to scrape on every refresh."""
    __tablename__ = "source_urls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False)
    label: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
