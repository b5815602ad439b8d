"""
TIPSTREAM - Prediction Engine
Produces single picks, 3/5-leg accumulators and free-form match analyses
from cached fixtures via a schema-constrained generator.

Pipeline per request:
    1. Load candidates (explicit list or the match cache)
    2. Exclude recently picked fixtures (per category)
    3. Build the prompt (analysis prompts get web search context)
    4. Constrained generation call
    5. Parse + schema-validate
    6. Reconcile match/odds against real quotes, clamp ranges
    7. Remember the accepted selection
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

from tipstream.core.config import Settings, settings as default_settings
from tipstream.core.exceptions import InsufficientDataError, InvalidInputError
from tipstream.models.models import PredictionCategory
from tipstream.models.schemas import (
    Express3Prediction,
    Express5Prediction,
    MatchAnalysis,
    MatchWithOdds,
    SinglePrediction,
)
from tipstream.services.matches.match_store import MatchCacheStore
from tipstream.services.predictions.llm_client import GenerativeClient
from tipstream.services.predictions.output_schemas import MATCH_ANALYSIS_SCHEMA, schema_for
from tipstream.services.predictions.prompts import (
    build_analysis_prompt,
    build_express_prompt,
    build_search_queries,
    build_single_prompt,
    with_search_context,
)
from tipstream.services.predictions.recent import RecentSelections
from tipstream.services.predictions.validation import (
    MatchResolver,
    SubstringMatchResolver,
    clamp_express_confidence,
    clamp_risk_percent,
    clamp_single_confidence,
    parse_model_output,
    repair_analysis_odds,
    repair_express_bets,
    repair_single_odds,
    total_odds,
)
from tipstream.services.predictions.web_search import WebSearchClient

logger = logging.getLogger(__name__)

ExpressPrediction = Union[Express3Prediction, Express5Prediction]
Prediction = Union[SinglePrediction, Express3Prediction, Express5Prediction]

EXPRESS_MODELS: Dict[PredictionCategory, Type[ExpressPrediction]] = {
    PredictionCategory.EXPRESS3: Express3Prediction,
    PredictionCategory.EXPRESS5: Express5Prediction,
}


class PredictionEngine:
    """
    Generates validated predictions.

    Usage:
        engine = PredictionEngine(GenerativeClient(), match_store, WebSearchClient())
        single = await engine.generate_single()
        analysis = await engine.analyze_match("Arsenal - Chelsea", league="АПЛ")
    """

    def __init__(
        self,
        llm: GenerativeClient,
        match_store: Optional[MatchCacheStore] = None,
        search: Optional[WebSearchClient] = None,
        resolver: Optional[MatchResolver] = None,
        settings: Settings = default_settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.llm = llm
        self.match_store = match_store
        self.search = search
        self.resolver = resolver or SubstringMatchResolver()
        self.settings = settings
        self._sleep = sleep
        self.recent: Dict[PredictionCategory, RecentSelections] = {
            category: RecentSelections(settings.RECENT_SELECTIONS_LIMIT)
            for category in PredictionCategory
        }

    # -------------------------------------------------------------------------
    # Candidates
    # -------------------------------------------------------------------------

    async def _load_matches(self, matches: Optional[Sequence[MatchWithOdds]]) -> List[MatchWithOdds]:
        if matches is not None:
            return list(matches)
        if self.match_store is None:
            return []
        return await self.match_store.read()

    @staticmethod
    def _require(matches: Sequence[MatchWithOdds], category: PredictionCategory) -> None:
        needed = category.required_matches
        if len(matches) < needed:
            raise InsufficientDataError(
                f"Need at least {needed} matches for {category.value}, have {len(matches)}",
                details={"required": needed, "available": len(matches)},
            )

    def _candidates(
        self, matches: List[MatchWithOdds], category: PredictionCategory
    ) -> Tuple[List[MatchWithOdds], List[str]]:
        excluded = self.recent[category].excluded_matches()
        if not excluded:
            return matches, []

        remaining = [
            m for m in matches
            if not any(m.home_team in name or m.away_team in name for name in excluded)
        ]
        if len(remaining) < category.required_matches:
            logger.info(
                f"[Engine] Only {len(remaining)} {category.value} candidates after exclusions, using full set"
            )
            return matches, excluded
        return remaining, excluded

    # -------------------------------------------------------------------------
    # Selection shapes
    # -------------------------------------------------------------------------

    async def generate_single(self, matches: Optional[Sequence[MatchWithOdds]] = None) -> SinglePrediction:
        category = PredictionCategory.SINGLE
        matches = await self._load_matches(matches)
        self._require(matches, category)

        candidates, excluded = self._candidates(matches, category)
        logger.info(f"[Engine] Single from {len(candidates)} matches, excluding {len(excluded)} recent")

        raw = await self.llm.generate(
            build_single_prompt(candidates, excluded),
            schema_for(category),
            self.settings.SELECTION_TEMPERATURE,
        )
        result = parse_model_output(raw, SinglePrediction)

        accepted = result.model_copy(update={
            "odds": repair_single_odds(result.match, result.prediction, result.odds, matches, self.resolver),
            "confidence": clamp_single_confidence(result.confidence),
        })
        self.recent[category].record([accepted.match])
        logger.info(f"[Engine] Accepted single: {accepted.match} / {accepted.prediction} @ {accepted.odds}")
        return accepted

    async def generate_express3(self, matches: Optional[Sequence[MatchWithOdds]] = None) -> Express3Prediction:
        return await self._generate_express(PredictionCategory.EXPRESS3, matches)

    async def generate_express5(self, matches: Optional[Sequence[MatchWithOdds]] = None) -> Express5Prediction:
        return await self._generate_express(PredictionCategory.EXPRESS5, matches)

    async def _generate_express(
        self, category: PredictionCategory, matches: Optional[Sequence[MatchWithOdds]]
    ) -> ExpressPrediction:
        matches = await self._load_matches(matches)
        self._require(matches, category)

        candidates, excluded = self._candidates(matches, category)
        logger.info(f"[Engine] {category.value} from {len(candidates)} matches, excluding {len(excluded)} recent")

        raw = await self.llm.generate(
            build_express_prompt(candidates, excluded, size=category.bet_count),
            schema_for(category),
            self.settings.SELECTION_TEMPERATURE,
        )
        result = parse_model_output(raw, EXPRESS_MODELS[category])

        bets = repair_express_bets(result.bets, matches, self.resolver)
        accepted = result.model_copy(update={
            "bets": bets,
            "total_odds": total_odds(bets),
            "confidence": clamp_express_confidence(result.confidence),
        })
        self.recent[category].record(bet.match for bet in bets)
        logger.info(f"[Engine] Accepted {category.value}: total odds {accepted.total_odds}")
        return accepted

    async def generate(
        self, category: PredictionCategory, matches: Optional[Sequence[MatchWithOdds]] = None
    ) -> Prediction:
        if category == PredictionCategory.SINGLE:
            return await self.generate_single(matches)
        return await self._generate_express(category, matches)

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    async def analyze_match(
        self, match: str, league: Optional[str] = None, date: Optional[str] = None
    ) -> MatchAnalysis:
        if not match or not match.strip():
            raise InvalidInputError("Match description must not be empty")
        match = match.strip()
        logger.info(f"[Engine] Analyzing match: {match}")

        snippets = await self._search_context(match, league)
        prompt = with_search_context(build_analysis_prompt(match, league, date), snippets)

        raw = await self.llm.generate(prompt, MATCH_ANALYSIS_SCHEMA, self.settings.ANALYSIS_TEMPERATURE)
        result = parse_model_output(raw, MatchAnalysis)

        risk = clamp_risk_percent(result.risk_percent)
        return result.model_copy(update={
            "match": result.match.strip() or match,
            "risk_percent": risk,
            "odds": repair_analysis_odds(result.odds, risk),
        })

    async def _search_context(self, match: str, league: Optional[str]) -> List[str]:
        if self.search is None:
            return []

        queries = build_search_queries(match, league, limit=self.settings.SEARCH_MAX_QUERIES)
        snippets: List[str] = []
        for i, query in enumerate(queries):
            try:
                text = await self.search.search(query)
            except Exception as e:
                logger.warning(f"[Engine] Search query failed: {e}")
                text = ""
            if text:
                snippets.append(f'[Поисковый запрос: "{query}"]\n{text}')
            if i < len(queries) - 1:
                await self._sleep(self.settings.SEARCH_QUERY_DELAY)

        if not snippets:
            logger.warning("[Engine] No web search results found")
        return snippets
