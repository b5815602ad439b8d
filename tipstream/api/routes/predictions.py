"""
TIPSTREAM - Predictions API
Read surface for cached matches, pooled predictions and on-demand analysis.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tipstream.api.dependencies import get_engine, get_match_store, get_pool_store
from tipstream.models.models import PredictionCategory
from tipstream.models.schemas import AnalysisRequest
from tipstream.services.matches.match_store import MatchCacheStore
from tipstream.services.predictions.engine import PredictionEngine
from tipstream.services.predictions.pool_store import PredictionPoolStore

router = APIRouter(tags=["predictions"])

# Risk shown with a pooled single; pool entries carry no analysis of their own
SINGLE_COMPANION_RISK = 25


class MatchesResponse(BaseModel):
    matches: List[Dict[str, Any]]


class PoolCountsResponse(BaseModel):
    counts: Dict[str, int]


@router.get("/matches", response_model=MatchesResponse)
async def list_matches(store: MatchCacheStore = Depends(get_match_store)):
    matches = await store.read()
    return {"matches": [m.model_dump(mode="json", by_alias=True) for m in matches]}


@router.post("/single")
async def draw_single(pool: PredictionPoolStore = Depends(get_pool_store)):
    prediction = await pool.draw_random(PredictionCategory.SINGLE)
    return {
        "prediction": prediction,
        "matchAnalysis": {
            "match": prediction.get("match"),
            "prediction": prediction.get("prediction"),
            "riskPercent": SINGLE_COMPANION_RISK,
            "odds": prediction.get("odds"),
        },
    }


@router.post("/express3")
async def draw_express3(pool: PredictionPoolStore = Depends(get_pool_store)):
    return await pool.draw_random(PredictionCategory.EXPRESS3)


@router.post("/express5")
async def draw_express5(pool: PredictionPoolStore = Depends(get_pool_store)):
    return await pool.draw_random(PredictionCategory.EXPRESS5)


@router.post("/analyze")
async def analyze_match(request: AnalysisRequest, engine: PredictionEngine = Depends(get_engine)):
    analysis = await engine.analyze_match(request.match, league=request.league, date=request.date)
    return analysis.to_public()


@router.get("/pool", response_model=PoolCountsResponse)
async def pool_counts(pool: PredictionPoolStore = Depends(get_pool_store)):
    return {"counts": await pool.counts()}
