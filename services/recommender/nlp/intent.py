"""
Keyword intent classifier.

Maps a free-text query onto one of the closed intent types the rule engine
and fallback lists understand, plus the entity collections that entity
triggers count (products, use_cases, features, ingredients).

Ordered specs, first match wins: support beats comparison beats medical,
and so on down to product-detail. No match is discovery at 0.5.

When there is no query at all, classify_from_profile() derives an intent
from the visitor profile instead.

No I/O in this module: pure text-in / IntentContext-out.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypedDict

from services.recommender.signals.classifier import models_in_text

if TYPE_CHECKING:
    from services.recommender.profile.types import Profile

INTENT_TYPES: tuple[str, ...] = (
    "discovery",
    "comparison",
    "product-detail",
    "use-case",
    "specs",
    "reviews",
    "price",
    "recommendation",
    "support",
    "partnership",
    "gift",
    "medical",
    "accessibility",
)

DEFAULT_INTENT = "discovery"
DEFAULT_CONFIDENCE = 0.5
KEYWORD_CONFIDENCE = 0.75
PROFILE_CONFIDENCE = 0.6


class IntentSpec(TypedDict):
    pattern: re.Pattern[str]
    intent_type: str
    journey_stage: str


def _kw(regex: str, intent_type: str, journey_stage: str = "exploring") -> IntentSpec:
    return IntentSpec(
        pattern=re.compile(regex, re.IGNORECASE),
        intent_type=intent_type,
        journey_stage=journey_stage,
    )


# Declared order is priority order
INTENT_PATTERNS: list[IntentSpec] = [
    _kw(r"\b(broken|leak(ing|s)?|not working|stopped working|warranty claim|repair|return|refund|problem|issue)\b", "support"),
    _kw(r"\b(vs|versus|compare|comparison|difference between|which is better|which one)\b", "comparison", "comparing"),
    _kw(r"\b(dysphagia|medical|therapy|therapeutic|doctor|puree diet|feeding tube)\b", "medical"),
    _kw(r"\b(arthritis|grip|accessib\w*|disabilit\w*|limited mobility|easy to use|one hand)\b", "accessibility"),
    _kw(r"\b(gift|present|for my (mom|dad|mother|father|wife|husband|sister|brother|friend)|birthday|wedding|registry)\b", "gift", "deciding"),
    _kw(r"\b(affiliate|partnership|wholesale|bulk order|restaurant|cafe|commercial|business)\b", "partnership"),
    _kw(r"\b(price|cost|cheap|budget|afford\w*|deal|discount|sale|financing|how much)\b", "price", "comparing"),
    _kw(r"\b(specs?|specifications|wattage|watts?|horsepower|dimensions|capacity|rpm)\b", "specs", "comparing"),
    _kw(r"\b(reviews?|ratings?|testimonials?|worth it|what do people say)\b", "reviews", "comparing"),
    _kw(r"\b(best|recommend\w*|should i (buy|get)|which should|top pick|what should i buy)\b", "recommendation", "deciding"),
    _kw(r"\b(smoothies?|soups?|nut butters?|frozen desserts?|baby food|recipes?|juices?|dough|meal prep)\b", "use-case"),
]

# (regex, canonical entity)
USE_CASE_TERMS: tuple[tuple[str, str], ...] = (
    (r"\bsmoothies?\b", "smoothies"),
    (r"\bsoups?\b", "soups"),
    (r"\bnut butters?\b|\balmond butter\b|\bpeanut butter\b", "nut_butters"),
    (r"\bfrozen desserts?\b|\bice cream\b|\bsorbet\b", "frozen_desserts"),
    (r"\bbaby food\b", "baby_food"),
    (r"\bjuices?\b", "juicing"),
    (r"\bdough\b|\bbread\b", "dough"),
    (r"\bmeal prep\b", "meal_prep"),
)

FEATURE_TERMS: tuple[tuple[str, str], ...] = (
    (r"\bself[- ]clean\w*\b", "self-cleaning"),
    (r"\bpreset programs?\b|\bpresets?\b", "preset programs"),
    (r"\bquiet\w*\b|\bnoise\b|\bloud\b", "noise level"),
    (r"\bbluetooth\b|\bwi-?fi\b|\bapp\b|\bsmart\b", "smart connectivity"),
    (r"\bwarranty\b", "warranty"),
    (r"\bcontainer size\b|\bcapacity\b", "capacity"),
    (r"\btamper\b", "tamper"),
)

INGREDIENT_TERMS: tuple[tuple[str, str], ...] = (
    (r"\bkale\b", "kale"),
    (r"\bspinach\b", "spinach"),
    (r"\bice\b", "ice"),
    (r"\bnuts?\b|\balmonds?\b|\bcashews?\b|\bpeanuts?\b", "nuts"),
    (r"\bbananas?\b", "banana"),
    (r"\bberr(y|ies)\b", "berries"),
    (r"\boats?\b", "oats"),
    (r"\bginger\b", "ginger"),
    (r"\bcarrots?\b", "carrot"),
    (r"\btomato(es)?\b", "tomato"),
)

_COMPILED_TERMS: dict[str, list[tuple[re.Pattern[str], str]]] = {
    name: [(re.compile(regex, re.IGNORECASE), value) for regex, value in terms]
    for name, terms in (
        ("use_cases", USE_CASE_TERMS),
        ("features", FEATURE_TERMS),
        ("ingredients", INGREDIENT_TERMS),
    )
}


@dataclass
class IntentContext:
    intent_type: str = DEFAULT_INTENT
    confidence: float = DEFAULT_CONFIDENCE
    entities: dict[str, list[str]] = field(default_factory=lambda: {
        "products": [], "use_cases": [], "features": [], "ingredients": [],
    })
    """Keys: products, use_cases, features, ingredients."""

    journey_stage: str = "exploring"

    def to_dict(self) -> dict:
        return {
            "intentType": self.intent_type,
            "confidence": self.confidence,
            "entities": {
                "products": list(self.entities.get("products", [])),
                "useCases": list(self.entities.get("use_cases", [])),
                "features": list(self.entities.get("features", [])),
                "ingredients": list(self.entities.get("ingredients", [])),
            },
            "journeyStage": self.journey_stage,
        }


def extract_entities(query: str) -> dict[str, list[str]]:
    entities: dict[str, list[str]] = {"products": models_in_text(query)}
    for name, terms in _COMPILED_TERMS.items():
        found: list[str] = []
        for pattern, value in terms:
            if pattern.search(query) and value not in found:
                found.append(value)
        entities[name] = found
    return entities


def classify_intent(query: str) -> IntentContext:
    """Classify a query. Two or more product models without other cues is a comparison."""
    query = (query or "").strip()
    entities = extract_entities(query)

    for spec in INTENT_PATTERNS:
        if spec["pattern"].search(query):
            return IntentContext(
                intent_type=spec["intent_type"],
                confidence=KEYWORD_CONFIDENCE,
                entities=entities,
                journey_stage=spec["journey_stage"],
            )

    if len(entities["products"]) >= 2:
        return IntentContext("comparison", KEYWORD_CONFIDENCE, entities, "comparing")
    if len(entities["products"]) == 1:
        return IntentContext("product-detail", KEYWORD_CONFIDENCE, entities, "comparing")

    return IntentContext(entities=entities)


def classify_from_profile(profile: Profile) -> IntentContext:
    """Intent for a query-less request, derived from the inferred profile."""
    intent_type = DEFAULT_INTENT
    stage = "exploring"
    considered = list(profile.products_considered)

    if "gift_buyer" in profile.segments:
        intent_type = "gift"
    elif "comparison_shopper" in profile.segments or len(considered) >= 2:
        intent_type, stage = "comparison", "comparing"
    elif profile.purchase_readiness == "high":
        intent_type, stage = "recommendation", "deciding"
    elif len(considered) == 1:
        intent_type, stage = "product-detail", "comparing"

    return IntentContext(
        intent_type=intent_type,
        confidence=PROFILE_CONFIDENCE,
        entities={
            "products": considered,
            "use_cases": list(profile.use_cases),
            "features": [],
            "ingredients": [],
        },
        journey_stage=stage,
    )
