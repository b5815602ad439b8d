"""
TIPSTREAM - Structured Output Schemas
JSON schemas passed to the generator as strict ``response_format`` contracts.
"""

from typing import Any, Dict

from tipstream.models.models import PredictionCategory


def _bet_item() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "match": {"type": "string"},
            "prediction": {"type": "string"},
            "odds": {"type": "number", "minimum": 1.30, "maximum": 1.60},
        },
        "required": ["match", "prediction", "odds"],
    }


def _express_schema(name: str, type_name: str, size: int) -> Dict[str, Any]:
    return {
        "name": name,
        "strict": True,
        "schema": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "type": {"type": "string", "enum": [type_name]},
                "bets": {
                    "type": "array",
                    "minItems": size,
                    "maxItems": size,
                    "items": _bet_item(),
                },
                "total_odds": {"type": "number"},
                "confidence": {"type": "integer", "minimum": 0, "maximum": 100},
            },
            "required": ["type", "bets", "total_odds", "confidence"],
        },
    }


SINGLE_SCHEMA: Dict[str, Any] = {
    "name": "single_prediction",
    "strict": True,
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "type": {"type": "string", "enum": ["single"]},
            "match": {"type": "string"},
            "prediction": {"type": "string"},
            "odds": {"type": "number", "minimum": 1.30, "maximum": 1.60},
            "confidence": {"type": "integer", "minimum": 0, "maximum": 100},
        },
        "required": ["type", "match", "prediction", "odds", "confidence"],
    },
}

EXPRESS3_SCHEMA = _express_schema("express_prediction", "express3", 3)
EXPRESS5_SCHEMA = _express_schema("express5_prediction", "express5", 5)

MATCH_ANALYSIS_SCHEMA: Dict[str, Any] = {
    "name": "match_analysis",
    "strict": True,
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "match": {"type": "string"},
            "prediction": {"type": "string"},
            "riskPercent": {"type": "integer", "minimum": 0, "maximum": 100},
            "odds": {"type": "number", "minimum": 1.0, "maximum": 10.0},
        },
        "required": ["match", "prediction", "riskPercent", "odds"],
    },
}


def schema_for(category: PredictionCategory) -> Dict[str, Any]:
    return {
        PredictionCategory.SINGLE: SINGLE_SCHEMA,
        PredictionCategory.EXPRESS3: EXPRESS3_SCHEMA,
        PredictionCategory.EXPRESS5: EXPRESS5_SCHEMA,
    }[category]
