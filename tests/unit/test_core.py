"""
TIPSTREAM - Core Unit Tests
Configuration, error bodies, pacing and transactions
"""

import time

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from tipstream.core.config import Settings
from tipstream.core.exceptions import InsufficientDataError, QuotaExceededError, TipstreamError
from tipstream.core.rate_limiter import RateLimiter
from tipstream.models.models import SourceUrl

pytestmark = pytest.mark.unit


class TestSettings:
    """Test configuration validation."""

    def test_defaults(self, test_settings):
        assert test_settings.OPENAI_MODEL == "gpt-4o-mini"
        assert test_settings.PREDICTION_CRON == "0 12,18 * * *"
        assert test_settings.get_sync_database_url() == "sqlite:///:memory:"

    def test_rejects_sync_driver(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DATABASE_URL="sqlite:///./tipstream.db")

    def test_production_requires_api_key(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ENVIRONMENT="production", OPENAI_API_KEY="")


class TestErrors:
    """Test error payloads."""

    def test_to_dict(self):
        error = InsufficientDataError("Need at least 3 matches", details={"required": 3, "available": 1})
        assert error.to_dict() == {
            "error": "NOT_ENOUGH_MATCHES",
            "message": "Need at least 3 matches",
            "details": {"required": 3, "available": 1},
        }
        assert error.status_code == 422

    def test_code_override(self):
        error = TipstreamError("bad", code="CUSTOM", status_code=418)
        assert (error.code, error.status_code) == ("CUSTOM", 418)
        assert "details" not in error.to_dict()

    def test_provider_errors_share_base(self):
        assert isinstance(QuotaExceededError("quota"), TipstreamError)


class TestRateLimiter:
    """Test sliding window and cooldown pacing."""

    def test_window_limit(self):
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        limiter.add_request()
        assert limiter.can_request()
        limiter.add_request()
        assert not limiter.can_request()
        assert limiter.wait_time() > 0

    @pytest.mark.asyncio
    async def test_cooldown_between_slots(self):
        limiter = RateLimiter.with_cooldown(0.05, name="test")
        start = time.monotonic()
        async with limiter.slot():
            pass
        async with limiter.slot():
            pass
        assert time.monotonic() - start >= 0.05

    @pytest.mark.asyncio
    async def test_no_wait_without_cooldown(self):
        limiter = RateLimiter.with_cooldown(0)
        async with limiter.slot():
            pass
        assert limiter.wait_time() == 0.0

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, cooldown_seconds=5)
        limiter.add_request()
        limiter.last_finished = time.monotonic()
        limiter.reset()
        assert limiter.can_request()


class TestTransactions:
    """Test all-or-nothing writes."""

    @pytest.mark.asyncio
    async def test_failed_transaction_rolls_back(self, db):
        async with db.transaction() as session:
            session.add(SourceUrl(url="https://a.example"))

        with pytest.raises(RuntimeError):
            async with db.transaction() as session:
                session.add(SourceUrl(url="https://b.example"))
                await session.flush()
                raise RuntimeError("abort")

        async with db.session() as session:
            urls = (await session.execute(select(SourceUrl.url))).scalars().all()
        assert urls == ["https://a.example"]

    @pytest.mark.asyncio
    async def test_health_check(self, db):
        health = await db.health_check()
        assert health["status"] == "healthy"
