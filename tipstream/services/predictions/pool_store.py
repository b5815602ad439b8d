"""
TIPSTREAM - Prediction Pool Store
Pre-generated predictions served by uniform random draw.
"""

import logging
from typing import Any, Dict, Sequence, Union

from pydantic import BaseModel
from sqlalchemy import delete, func, select

from tipstream.core.database import DatabaseManager
from tipstream.core.exceptions import EmptyPoolError
from tipstream.models.models import PooledPrediction, PredictionCategory

logger = logging.getLogger(__name__)

EMPTY_POOL_MESSAGE = "Predictions are being refreshed. Please try again in a few minutes."


def _payload(prediction: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(prediction, BaseModel):
        return prediction.model_dump(mode="json", by_alias=True)
    return dict(prediction)


class PredictionPoolStore:
    """One batch of predictions per category; a new batch replaces the old one."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def replace(
        self,
        category: PredictionCategory,
        predictions: Sequence[Union[BaseModel, Dict[str, Any]]],
    ) -> int:
        """Swap the category's pool in one transaction."""
        category = PredictionCategory(category)
        async with self.db.transaction() as session:
            await session.execute(delete(PooledPrediction).where(PooledPrediction.category == category.value))
            session.add_all([
                PooledPrediction(category=category.value, payload=_payload(p))
                for p in predictions
            ])
        logger.info(f"[PoolStore] Saved {len(predictions)} {category.value} predictions")
        return len(predictions)

    async def draw_random(self, category: PredictionCategory) -> Dict[str, Any]:
        """
        Uniformly random prediction of the category.

        Raises:
            EmptyPoolError: nothing has been generated for the category yet
        """
        category = PredictionCategory(category)
        async with self.db.session() as session:
            result = await session.execute(
                select(PooledPrediction.payload)
                .where(PooledPrediction.category == category.value)
                .order_by(func.random())
                .limit(1)
            )
            payload = result.scalar_one_or_none()
        if payload is None:
            raise EmptyPoolError(EMPTY_POOL_MESSAGE, details={"category": category.value})
        return payload

    async def has_predictions(self, category: PredictionCategory) -> bool:
        category = PredictionCategory(category)
        async with self.db.session() as session:
            result = await session.execute(
                select(PooledPrediction.id).where(PooledPrediction.category == category.value).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def counts(self) -> Dict[str, int]:
        """Pool size for every category, zero when empty."""
        counts = {category.value: 0 for category in PredictionCategory}
        async with self.db.session() as session:
            result = await session.execute(
                select(PooledPrediction.category, func.count(PooledPrediction.id))
                .group_by(PooledPrediction.category)
            )
            for category, count in result.all():
                if category in counts:
                    counts[category] = count
        return counts
