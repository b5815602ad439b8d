"""
TIPSTREAM - Source URL Registry
Operator-managed list of bookmaker pages scraped on every refresh.
"""

import logging
from typing import List, Optional
from urllib.parse import urlparse

from sqlalchemy import delete, func, select

from tipstream.core.database import DatabaseManager
from tipstream.core.exceptions import InvalidInputError
from tipstream.models.models import SourceUrl
from tipstream.services.scrapers.aggregator import DEFAULT_LABEL_TEMPLATE, SourceTarget

logger = logging.getLogger(__name__)


def normalize_urls(urls: List[str]) -> List[str]:
    """
    Trim, validate and de-duplicate a URL list, keeping the given order.

    Raises:
        InvalidInputError: an entry is blank or not an absolute http(s) URL
    """
    cleaned: List[str] = []
    for raw in urls:
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidInputError("All URLs must be non-empty strings", code="INVALID_URL")
        url = raw.strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidInputError(f"Invalid URL: {url}", code="INVALID_URL")
        if url not in cleaned:
            cleaned.append(url)
    return cleaned


class SourceRegistry:
    """Persisted source pages, replaced wholesale by the operator."""

    def __init__(self, db: DatabaseManager, default_urls: Optional[List[str]] = None):
        self.db = db
        self.default_urls = list(default_urls or [])

    async def get_urls(self) -> List[str]:
        async with self.db.session() as session:
            result = await session.execute(select(SourceUrl.url).order_by(SourceUrl.id))
            return list(result.scalars().all())

    async def get_targets(self) -> List[SourceTarget]:
        """Configured pages in order, each with its label or a numbered default."""
        async with self.db.session() as session:
            result = await session.execute(select(SourceUrl).order_by(SourceUrl.id))
            rows = result.scalars().all()
        return [
            SourceTarget(url=row.url, label=row.label or DEFAULT_LABEL_TEMPLATE.format(index=i))
            for i, row in enumerate(rows, start=1)
        ]

    async def set_urls(self, urls: List[str]) -> List[str]:
        """Replace the whole list in one transaction."""
        cleaned = normalize_urls(urls)
        async with self.db.transaction() as session:
            await session.execute(delete(SourceUrl))
            session.add_all([SourceUrl(url=url) for url in cleaned])
        logger.info(f"[Sources] Updated source URLs: {len(cleaned)} URLs saved")
        return cleaned

    async def seed_defaults(self) -> int:
        """Insert the configured default URLs if the registry is empty."""
        if not self.default_urls:
            return 0
        async with self.db.session() as session:
            count = (await session.execute(select(func.count(SourceUrl.id)))).scalar_one()
        if count:
            return 0
        seeded = await self.set_urls(self.default_urls)
        logger.info(f"[Sources] Seeded {len(seeded)} source URLs from settings")
        return len(seeded)
