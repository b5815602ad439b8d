"""
TIPSTREAM - Test Configuration
Pytest fixtures and configuration for the test suite.
"""

from datetime import date
from typing import AsyncGenerator, Callable

import pytest

from tipstream.core.config import Settings
from tipstream.core.database import DatabaseManager
from tipstream.models.schemas import MatchWithOdds, Odds

TODAY = date(2026, 10, 19)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with no pacing, no scheduler and no debug files."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        SCHEDULER_ENABLED=False,
        SEARCH_QUERY_DELAY=0,
        PREDICTION_CALL_DELAY=0,
        SCRAPER_REQUEST_DELAY=0,
        SCRAPER_DEBUG_DUMP=False,
        PREDICTIONS_PER_CATEGORY=2,
        SOURCE_URLS=[],
    )


@pytest.fixture
async def db() -> AsyncGenerator[DatabaseManager, None]:
    """Fresh in-memory database with all tables."""
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:", echo=False)
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def make_match() -> Callable[..., MatchWithOdds]:
    """Factory for matches with sensible defaults."""

    def _make(
        home: str,
        away: str,
        odds=(1.55, 4.10, 5.60),
        day: date = TODAY,
        time: str = "18:00",
        league: str = "Лига 1",
    ) -> MatchWithOdds:
        return MatchWithOdds(
            home_team=home,
            away_team=away,
            date=day,
            time=time,
            league=league,
            odds=Odds(home=odds[0], draw=odds[1], away=odds[2]),
        )

    return _make


@pytest.fixture
def sample_matches(make_match):
    """Five distinct fixtures across two days."""
    return [
        make_match("Arsenal", "Chelsea", odds=(1.55, 4.10, 5.60)),
        make_match("Liverpool", "Everton", odds=(1.35, 5.00, 8.50), time="20:00"),
        make_match("Juventus", "Torino", odds=(1.70, 3.60, 5.20), time="21:45"),
        make_match("Ajax", "Feyenoord", odds=(2.10, 3.50, 3.20), day=date(2026, 10, 20)),
        make_match("Porto", "Benfica", odds=(2.40, 3.30, 2.90), day=date(2026, 10, 20), time="19:30"),
    ]
