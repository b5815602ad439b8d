"""
TIPSTREAM - Output Validation & Repair
Parsing of raw generator output and reconciliation against real odds.

The generator's match names, outcomes and quoted odds are not trusted:
each bet is resolved to a cached fixture and, where the predicted outcome
maps to one of the three direct markets, its odds are replaced with the
bookmaker's real quote.
"""

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from tipstream.core.exceptions import ModelOutputInvalidError
from tipstream.models.schemas import ExpressBet, MatchWithOdds

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

RAW_PREVIEW_LIMIT = 2000
ODDS_TOLERANCE = 0.1

SINGLE_ODDS_RANGE = (1.30, 1.60)
SINGLE_ODDS_DEFAULT = 1.45
SINGLE_CONFIDENCE_RANGE = (70, 85)
SINGLE_CONFIDENCE_DEFAULT = 75
EXPRESS_CONFIDENCE_DEFAULT = 50
RISK_DEFAULT = 50

ANALYSIS_ODDS_RANGE = (1.0, 10.0)
ANALYSIS_ODDS_FLOOR = 1.10
ANALYSIS_ODDS_DEFAULT = 2.0
ODDS_NOT_FOUND_MARKER = 99.0


# =============================================================================
# PARSING
# =============================================================================

def parse_model_output(raw: str, model_cls: Type[ModelT]) -> ModelT:
    """
    Decode JSON text and validate it against ``model_cls``.

    Raises:
        ModelOutputInvalidError: code OPENAI_INVALID_JSON for non-JSON text,
            OPENAI_SCHEMA_MISMATCH when the shape does not match
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        raise ModelOutputInvalidError(
            "OpenAI returned non-JSON output",
            details={"raw": raw[:RAW_PREVIEW_LIMIT]},
        )

    try:
        return model_cls.model_validate(payload)
    except ValidationError as e:
        issues = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ModelOutputInvalidError(
            "OpenAI output does not match the expected schema",
            code="OPENAI_SCHEMA_MISMATCH",
            details={"issues": issues, "raw": raw[:RAW_PREVIEW_LIMIT]},
        )


# =============================================================================
# MATCH RESOLUTION
# =============================================================================

class MatchResolver(ABC):
    """Maps the generator's free-text match name to a cached fixture."""

    @abstractmethod
    def resolve(self, text: str, matches: Sequence[MatchWithOdds]) -> Optional[MatchWithOdds]:
        ...


class SubstringMatchResolver(MatchResolver):
    """
    First fixture, in cache order, whose home or away team name appears in
    the text. Teams sharing a name fragment can resolve to the wrong
    fixture; callers needing stricter matching plug in another resolver.
    """

    def resolve(self, text: str, matches: Sequence[MatchWithOdds]) -> Optional[MatchWithOdds]:
        for match in matches:
            if match.home_team in text or match.away_team in text:
                return match
        return None


# =============================================================================
# OUTCOME CLASSIFICATION
# =============================================================================

class Outcome(str, Enum):
    HOME = "home"
    DRAW = "draw"
    AWAY = "away"


# (phrases matched as substrings, short codes matched as whole tokens)
OUTCOME_KEYWORDS = (
    (Outcome.HOME, ("победа хозяев", "хозяева", "home win", "home team"), ("п1", "w1")),
    (Outcome.AWAY, ("победа гостей", "гости", "away win", "away team"), ("п2", "w2")),
    (Outcome.DRAW, ("ничья", "draw"), ("x",)),
)

_TOKEN_RE = re.compile(r"\w+")


def classify_outcome(prediction: str) -> Optional[Outcome]:
    """Direct 1X2 market named by a prediction text, or None (totals etc.)."""
    lowered = prediction.lower()
    tokens = set(_TOKEN_RE.findall(lowered))
    for outcome, phrases, codes in OUTCOME_KEYWORDS:
        if any(phrase in lowered for phrase in phrases) or tokens.intersection(codes):
            return outcome
    return None


def real_odd_for(outcome: Outcome, match: MatchWithOdds) -> float:
    return {
        Outcome.HOME: match.odds.home,
        Outcome.DRAW: match.odds.draw,
        Outcome.AWAY: match.odds.away,
    }[outcome]


# =============================================================================
# ODDS REPAIR
# =============================================================================

def _min_fallback(match: MatchWithOdds) -> float:
    return min(match.odds.as_tuple())


def _mean_fallback(match: MatchWithOdds) -> float:
    return round(sum(match.odds.as_tuple()) / 3, 2)


def reconcile_odds(prediction: str, model_odds: float, match: MatchWithOdds, use_mean: bool = False) -> float:
    """
    Real odd for direct markets; for other markets keep the model's odd
    when it is within tolerance of a real one, else a computed fallback
    (minimum real odd, or the rounded mean when ``use_mean``).
    """
    outcome = classify_outcome(prediction)
    if outcome is not None:
        return real_odd_for(outcome, match)

    if any(abs(odd - model_odds) < ODDS_TOLERANCE for odd in match.odds.as_tuple()):
        return model_odds

    fallback = _mean_fallback(match) if use_mean else _min_fallback(match)
    logger.warning(f"[Validation] Odds {model_odds} do not match real odds for {match.title}. Using {fallback}")
    return fallback


def repair_single_odds(
    match_text: str,
    prediction: str,
    model_odds: float,
    matches: Sequence[MatchWithOdds],
    resolver: MatchResolver,
) -> float:
    resolved = resolver.resolve(match_text, matches)
    if resolved is not None:
        return reconcile_odds(prediction, model_odds, resolved)

    low, high = SINGLE_ODDS_RANGE
    if model_odds < low or model_odds > high:
        logger.warning(f"[Validation] Unresolved match '{match_text}', odds {model_odds} out of range. Using {SINGLE_ODDS_DEFAULT}")
        return SINGLE_ODDS_DEFAULT
    return model_odds


def repair_express_bets(
    bets: Sequence[ExpressBet],
    matches: Sequence[MatchWithOdds],
    resolver: MatchResolver,
) -> List[ExpressBet]:
    repaired: List[ExpressBet] = []
    for bet in bets:
        resolved = resolver.resolve(bet.match, matches)
        if resolved is None:
            logger.warning(f"[Validation] Bet match '{bet.match}' not found in list, keeping model text")
            repaired.append(bet)
            continue
        odds = reconcile_odds(bet.prediction, bet.odds, resolved, use_mean=True)
        repaired.append(bet.model_copy(update={"odds": odds}))
    return repaired


def total_odds(bets: Sequence[ExpressBet]) -> float:
    return round(math.prod(bet.odds for bet in bets), 2)


# =============================================================================
# CLAMPS
# =============================================================================

def clamp_or_default(value: int, low: int, high: int, default: int) -> int:
    if value < low or value > high:
        return default
    return value


def clamp_single_confidence(value: int) -> int:
    low, high = SINGLE_CONFIDENCE_RANGE
    return clamp_or_default(value, low, high, SINGLE_CONFIDENCE_DEFAULT)


def clamp_express_confidence(value: int) -> int:
    return clamp_or_default(value, 0, 100, EXPRESS_CONFIDENCE_DEFAULT)


def clamp_risk_percent(value: int) -> int:
    return clamp_or_default(value, 0, 100, RISK_DEFAULT)


def odds_from_risk(risk_percent: int) -> float:
    success_probability = (100 - risk_percent) / 100
    if not 0 < success_probability <= 1:
        return ANALYSIS_ODDS_DEFAULT
    odds = round(1 / success_probability, 2)
    return min(max(odds, ANALYSIS_ODDS_FLOOR), ANALYSIS_ODDS_RANGE[1])


def repair_analysis_odds(odds: float, risk_percent: int) -> float:
    """Keep real-looking odds; replace 'not found' markers and outliers with a risk-derived value."""
    low, high = ANALYSIS_ODDS_RANGE
    not_found = odds == 0 or odds >= ODDS_NOT_FOUND_MARKER
    if not_found or odds < low or odds > high:
        derived = odds_from_risk(risk_percent)
        logger.warning(f"[Validation] Analysis odds {odds} unusable. Using {derived} derived from risk {risk_percent}%")
        return derived
    return odds
