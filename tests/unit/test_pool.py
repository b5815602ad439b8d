"""
TIPSTREAM - Prediction Pool Unit Tests
Pool storage, random draws, regeneration and recent-selection memory
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tipstream.core.exceptions import EmptyPoolError, ModelOutputInvalidError
from tipstream.core.rate_limiter import RateLimiter
from tipstream.models.models import PredictionCategory
from tipstream.models.schemas import SinglePrediction
from tipstream.services.predictions.pool_job import PoolBuilder
from tipstream.services.predictions.pool_store import PredictionPoolStore
from tipstream.services.predictions.recent import RecentSelections

pytestmark = pytest.mark.unit


def _single(match: str) -> SinglePrediction:
    return SinglePrediction(match=match, prediction="Победа хозяев", odds=1.55, confidence=80)


class TestPoolStore:
    """Test category pools."""

    @pytest.mark.asyncio
    async def test_empty_pool_raises(self, db):
        store = PredictionPoolStore(db)

        with pytest.raises(EmptyPoolError) as exc_info:
            await store.draw_random(PredictionCategory.SINGLE)

        assert exc_info.value.status_code == 503
        assert exc_info.value.code == "NO_PREDICTIONS"
        assert "try again" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_draw_returns_member_of_pool(self, db):
        store = PredictionPoolStore(db)
        await store.replace(PredictionCategory.SINGLE, [_single("Arsenal - Chelsea"), _single("Ajax - PSV")])

        for _ in range(5):
            drawn = await store.draw_random(PredictionCategory.SINGLE)
            assert drawn["match"] in {"Arsenal - Chelsea", "Ajax - PSV"}
            assert drawn["type"] == "single"

    @pytest.mark.asyncio
    async def test_replace_swaps_only_its_category(self, db):
        store = PredictionPoolStore(db)
        await store.replace(PredictionCategory.SINGLE, [_single("Arsenal - Chelsea")])
        await store.replace(PredictionCategory.EXPRESS3, [{"type": "express3", "bets": [], "total_odds": 3.1, "confidence": 60}])
        await store.replace(PredictionCategory.SINGLE, [_single("Ajax - PSV"), _single("Porto - Braga")])

        assert await store.counts() == {"single": 2, "express3": 1, "express5": 0}
        assert await store.has_predictions(PredictionCategory.EXPRESS3)
        assert not await store.has_predictions(PredictionCategory.EXPRESS5)


class TestPoolBuilder:
    """Test pool regeneration from the match cache."""

    @staticmethod
    def _builder(engine, matches, pool_store, settings):
        match_store = MagicMock()
        match_store.read = AsyncMock(return_value=matches)
        return PoolBuilder(engine, match_store, pool_store, settings=settings,
                           limiter=RateLimiter.with_cooldown(0))

    @pytest.mark.asyncio
    async def test_empty_cache_skips(self, db, test_settings):
        engine = MagicMock()
        engine.generate = AsyncMock()
        builder = self._builder(engine, [], PredictionPoolStore(db), test_settings)

        report = await builder.run()

        assert report.skipped
        engine.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_categories_without_enough_matches_are_skipped(self, db, test_settings, sample_matches):
        engine = MagicMock()
        engine.generate = AsyncMock(return_value=_single("Arsenal - Chelsea"))
        pool_store = PredictionPoolStore(db)
        builder = self._builder(engine, sample_matches[:2], pool_store, test_settings)

        report = await builder.run()

        assert report.categories["single"].generated == test_settings.PREDICTIONS_PER_CATEGORY
        assert report.categories["express3"].skipped
        assert report.categories["express5"].skipped
        assert await pool_store.counts() == {"single": 2, "express3": 0, "express5": 0}

    @pytest.mark.asyncio
    async def test_failed_items_are_skipped(self, db, test_settings, sample_matches):
        engine = MagicMock()
        engine.generate = AsyncMock(side_effect=[
            ModelOutputInvalidError("bad json"),
            _single("Arsenal - Chelsea"),
            ModelOutputInvalidError("bad json"),
            ModelOutputInvalidError("bad json"),
            ModelOutputInvalidError("bad json"),
            ModelOutputInvalidError("bad json"),
        ])
        pool_store = PredictionPoolStore(db)
        await pool_store.replace(PredictionCategory.EXPRESS3, [{"type": "express3", "old": True}])
        builder = self._builder(engine, sample_matches, pool_store, test_settings)

        report = await builder.run()

        assert report.categories["single"].generated == 1
        assert report.categories["single"].failed == 1
        assert report.categories["single"].replaced
        assert not report.categories["express3"].replaced
        assert report.total_generated == 1
        # A category with no successes keeps its previous pool
        assert (await pool_store.draw_random(PredictionCategory.EXPRESS3))["old"] is True

    @pytest.mark.asyncio
    async def test_matches_are_passed_explicitly(self, db, test_settings, sample_matches):
        engine = MagicMock()
        engine.generate = AsyncMock(return_value=_single("Arsenal - Chelsea"))
        builder = self._builder(engine, sample_matches, PredictionPoolStore(db), test_settings)

        await builder.run()

        categories = [call.args[0] for call in engine.generate.await_args_list]
        assert categories.count(PredictionCategory.SINGLE) == test_settings.PREDICTIONS_PER_CATEGORY
        assert all(call.args[1] == sample_matches for call in engine.generate.await_args_list)


class TestRecentSelections:
    """Test the bounded selection memory."""

    def test_oldest_entry_is_dropped(self):
        recent = RecentSelections(limit=2)
        recent.record(["A - B"])
        recent.record(["C - D", "E - F"])
        recent.record(["G - H"])

        assert len(recent) == 2
        assert recent.excluded_matches() == ["C - D", "E - F", "G - H"]

    def test_union_is_deduplicated(self):
        recent = RecentSelections()
        recent.record(["A - B", "C - D"])
        recent.record(["C - D"])
        assert recent.excluded_matches() == ["A - B", "C - D"]

    def test_clear(self):
        recent = RecentSelections()
        recent.record(["A - B"])
        recent.clear()
        assert recent.excluded_matches() == []
        assert recent.limit == 5
