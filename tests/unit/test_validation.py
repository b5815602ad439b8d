"""
TIPSTREAM - Output Validation Unit Tests
Parsing, outcome classification, odds repair and clamps
"""

import pytest

from tipstream.core.exceptions import ModelOutputInvalidError
from tipstream.models.schemas import ExpressBet, SinglePrediction
from tipstream.services.predictions.validation import (
    Outcome,
    SubstringMatchResolver,
    clamp_express_confidence,
    clamp_risk_percent,
    clamp_single_confidence,
    classify_outcome,
    odds_from_risk,
    parse_model_output,
    reconcile_odds,
    repair_analysis_odds,
    repair_express_bets,
    repair_single_odds,
    total_odds,
)

pytestmark = pytest.mark.unit


class TestParseModelOutput:
    """Test JSON decoding and schema validation of generator output."""

    def test_valid_single(self):
        raw = '{"type": "single", "match": "Arsenal - Chelsea", "prediction": "Победа хозяев", "odds": 1.55, "confidence": 80}'
        result = parse_model_output(raw, SinglePrediction)
        assert result.match == "Arsenal - Chelsea"
        assert result.confidence == 80

    def test_non_json(self):
        with pytest.raises(ModelOutputInvalidError) as exc_info:
            parse_model_output("Here is my prediction: Arsenal", SinglePrediction)
        assert exc_info.value.code == "OPENAI_INVALID_JSON"
        assert exc_info.value.details["raw"].startswith("Here is")

    def test_raw_preview_is_truncated(self):
        with pytest.raises(ModelOutputInvalidError) as exc_info:
            parse_model_output("x" * 5000, SinglePrediction)
        assert len(exc_info.value.details["raw"]) == 2000

    def test_schema_mismatch(self):
        with pytest.raises(ModelOutputInvalidError) as exc_info:
            parse_model_output('{"type": "single", "match": "Arsenal - Chelsea"}', SinglePrediction)
        assert exc_info.value.code == "OPENAI_SCHEMA_MISMATCH"
        assert exc_info.value.details["issues"]

    def test_out_of_range_confidence_passes_type_check(self):
        raw = '{"type": "single", "match": "Arsenal - Chelsea", "prediction": "Ничья", "odds": 4.1, "confidence": 99}'
        assert parse_model_output(raw, SinglePrediction).confidence == 99


class TestOutcomeClassification:
    """Test Russian and English outcome keywords."""

    @pytest.mark.parametrize("text,expected", [
        ("Победа хозяев", Outcome.HOME),
        ("П1", Outcome.HOME),
        ("Home win", Outcome.HOME),
        ("Победа гостей", Outcome.AWAY),
        ("W2", Outcome.AWAY),
        ("Ничья", Outcome.DRAW),
        ("X", Outcome.DRAW),
        ("Тотал больше 2.5", None),
        ("Обе забьют", None),
    ])
    def test_classify(self, text, expected):
        assert classify_outcome(text) == expected

    def test_x_inside_word_is_not_draw(self):
        assert classify_outcome("Exact score 2-1") is None


class TestOddsRepair:
    """Test reconciliation against real odds."""

    def test_direct_market_uses_real_odd(self, make_match):
        match = make_match("Arsenal", "Chelsea", odds=(1.55, 4.10, 5.60))
        assert reconcile_odds("Победа хозяев", 1.40, match) == 1.55
        assert reconcile_odds("Победа гостей", 1.40, match) == 5.60
        assert reconcile_odds("Ничья", 1.40, match) == 4.10

    def test_other_market_within_tolerance_is_kept(self, make_match):
        match = make_match("Arsenal", "Chelsea", odds=(1.55, 4.10, 5.60))
        assert reconcile_odds("Тотал больше 2.5", 1.60, match) == 1.60

    def test_other_market_fallbacks(self, make_match):
        match = make_match("Arsenal", "Chelsea", odds=(1.55, 4.10, 5.60))
        assert reconcile_odds("Тотал больше 2.5", 1.85, match) == 1.55
        assert reconcile_odds("Тотал больше 2.5", 1.85, match, use_mean=True) == round((1.55 + 4.10 + 5.60) / 3, 2)

    def test_unresolved_single_out_of_range(self, sample_matches):
        resolver = SubstringMatchResolver()
        assert repair_single_odds("Unknown - Nobody", "Победа хозяев", 2.5, sample_matches, resolver) == 1.45
        assert repair_single_odds("Unknown - Nobody", "Победа хозяев", 1.5, sample_matches, resolver) == 1.5

    def test_resolver_matches_either_team(self, sample_matches):
        resolver = SubstringMatchResolver()
        assert resolver.resolve("ФК Chelsea в гостях", sample_matches).home_team == "Arsenal"
        assert resolver.resolve("Nobody - Unknown", sample_matches) is None

    def test_express_bets_and_total(self, sample_matches):
        bets = [
            ExpressBet(match="Arsenal - Chelsea", prediction="П1", odds=1.3),
            ExpressBet(match="Liverpool - Everton", prediction="Победа хозяев", odds=1.3),
            ExpressBet(match="Mystery - Team", prediction="Победа хозяев", odds=1.77),
        ]
        repaired = repair_express_bets(bets, sample_matches, SubstringMatchResolver())

        assert [b.odds for b in repaired] == [1.55, 1.35, 1.77]
        assert repaired[2].match == "Mystery - Team"
        assert total_odds(repaired) == round(1.55 * 1.35 * 1.77, 2)


class TestClamps:
    """Test range clamps with defaults."""

    def test_single_confidence(self):
        assert clamp_single_confidence(80) == 80
        assert clamp_single_confidence(95) == 75
        assert clamp_single_confidence(60) == 75

    def test_express_confidence(self):
        assert clamp_express_confidence(0) == 0
        assert clamp_express_confidence(101) == 50

    def test_risk_percent(self):
        assert clamp_risk_percent(35) == 35
        assert clamp_risk_percent(150) == 50
        assert clamp_risk_percent(-5) == 50

    def test_odds_from_risk(self):
        assert odds_from_risk(50) == 2.0
        assert odds_from_risk(0) == 1.10
        assert odds_from_risk(95) == 10.0
        assert odds_from_risk(100) == 2.0

    def test_analysis_odds_markers(self):
        assert repair_analysis_odds(2.35, 40) == 2.35
        assert repair_analysis_odds(0, 50) == 2.0
        assert repair_analysis_odds(99.99, 50) == 2.0
        assert repair_analysis_odds(15.0, 75) == 4.0
        assert repair_analysis_odds(-1.0, 50) == 2.0
