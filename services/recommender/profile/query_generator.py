"""
Synthetic query generator — turns an inferred profile into the question the
visitor would most likely ask, so /generate can run without typed input.

Template selection (first match wins):
  gift_buyer segment                          -> gift
  existing_owner / upgrade_intent segment     -> upgrader
  comparison_shopper + >=2 products           -> comparison
  confidence < 0.55                           -> simple
  otherwise                                   -> use_case

Below MIN_QUERY_CONFIDENCE no query is produced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence

from services.recommender.profile.types import Profile
from services.recommender.signals.types import Signal

MIN_QUERY_CONFIDENCE = 0.45
SIMPLE_TEMPLATE_BELOW = 0.55

TEMPLATES: dict[str, str] = {
    "use_case": "I want to {intent} {context}. {products}. {constraints}. {action}",
    "gift": "I'm looking for a blender {context}. {products}. {constraints}",
    "upgrader": "I want {intent}. {context}. {products}. {action}",
    "comparison": "{products} for {intent}. {constraints}. {action}",
    "simple": "{intent}. {action}",
}

INTENT_PHRASES: dict[str, str] = {
    "baby_food": "make homemade baby food",
    "purees": "make smooth purees",
    "smoothies": "make smoothies",
    "soups": "make hot soups",
    "hot_blending": "blend hot soups",
    "frozen_desserts": "make frozen desserts and ice cream",
    "nut_butters": "make nut butters",
    "sauces": "make sauces and dips",
    "gift": "find a gift",
    "upgrade": "upgrade my blender",
    "replacement": "replace my old blender",
}

CONTEXT_PHRASES: dict[str, str] = {
    "new_parent": "for my baby",
    "infant_caregiver": "for my infant",
    "gift_buyer": "as a gift",
    "wedding": "for a wedding",
    "existing_owner": "I already have a Vitamix",
    "loyal_customer": "as a long-time Vitamix fan",
    "first_time_buyer": "this would be my first Vitamix",
    "premium_preference": "I want something premium",
    "value_conscious": "I want good value",
}

CONSTRAINT_PHRASES: dict[str, str] = {
    "high": "I'm on a budget",
    "moderate": "I want good value for money",
    "low": "budget isn't a concern",
    "time_sensitive": "I need it to arrive soon",
}

# (lower bound, action phrase), highest first
ACTION_PHRASES: tuple[tuple[float, str], ...] = (
    (0.85, "Which should I choose?"),
    (0.70, "Is this the right choice for me?"),
    (0.55, "What do you recommend?"),
    (0.0, "What are my options?"),
)

_QUESTION_WORDS = ("what", "which", "should i", "is this", "is the")


@dataclass
class SyntheticQuery:
    query: str
    template: str
    confidence: float
    complexity: str
    components: dict[str, str | None] = field(default_factory=dict)


def query_complexity(confidence: float) -> str:
    if confidence >= 0.86:
        return "Comprehensive"
    if confidence >= 0.71:
        return "Rich"
    if confidence >= 0.56:
        return "Standard"
    return "Minimal"


def select_template(profile: Profile) -> str:
    segments = profile.segments
    if "gift_buyer" in segments:
        return "gift"
    if "existing_owner" in segments or "upgrade_intent" in segments:
        return "upgrader"
    if "comparison_shopper" in segments and len(profile.products_considered) >= 2:
        return "comparison"
    if profile.confidence_score < SIMPLE_TEMPLATE_BELOW:
        return "simple"
    return "use_case"


def build_components(profile: Profile, signals: Sequence[Signal]) -> dict[str, str | None]:
    components: dict[str, str | None] = {
        "intent": None,
        "context": None,
        "products": None,
        "constraints": None,
        "action": None,
    }

    intents = [INTENT_PHRASES[uc] for uc in profile.use_cases if uc in INTENT_PHRASES]
    if intents:
        components["intent"] = " and ".join(intents[:2])
    else:
        search = next((s for s in signals if s.type == "search" and s.data.get("query")), None)
        if search is not None:
            components["intent"] = f"find information about {search.data['query']}"

    context: list[str] = []
    for key in (profile.life_stage, profile.occasion, *profile.segments):
        phrase = CONTEXT_PHRASES.get(key or "")
        if phrase and phrase not in context:
            context.append(phrase)
    if context:
        components["context"] = " and ".join(context[:2])

    products = profile.products_considered
    if len(products) == 1:
        components["products"] = f"I've been looking at the {products[0]}"
    elif len(products) == 2:
        components["products"] = f"I'm comparing the {products[0]} and {products[1]}"
    elif products:
        components["products"] = (
            f"I'm considering the {', '.join(products[:-1])} and {products[-1]}"
        )

    constraints: list[str] = []
    if profile.price_sensitivity in CONSTRAINT_PHRASES:
        constraints.append(CONSTRAINT_PHRASES[profile.price_sensitivity])
    if profile.time_sensitive:
        constraints.append(CONSTRAINT_PHRASES["time_sensitive"])
    if constraints:
        components["constraints"] = " and ".join(constraints)

    components["action"] = next(
        phrase for bound, phrase in ACTION_PHRASES if profile.confidence_score >= bound
    )
    return components


def fill_template(template: str, components: dict[str, str | None]) -> str:
    query = TEMPLATES[template]
    for key, value in components.items():
        placeholder = "{" + key + "}"
        if value:
            query = query.replace(placeholder, value)
        else:
            query = re.sub(rf"\s*{re.escape(placeholder)}", "", query)

    query = re.sub(r"\s+", " ", query)
    query = re.sub(r"\s+\.", ".", query)
    query = re.sub(r"\.(\s*\.)+", ".", query)
    query = re.sub(r"\s+,", ",", query)
    query = query.strip()
    query = re.sub(r"^\.\s*", "", query)
    query = re.sub(r"\.\s*$", "", query)
    if query:
        query = query[0].upper() + query[1:]

    lowered = query.lower()
    if "?" in query:
        return query
    if any(word in lowered for word in _QUESTION_WORDS):
        return re.sub(r"[.?!]*$", "?", query)
    if query and not query.endswith(("!", ".")):
        query += "."
    return query


def generate_query(profile: Profile, signals: Sequence[Signal] = ()) -> SyntheticQuery | None:
    """Synthetic query for ``profile``, or None below MIN_QUERY_CONFIDENCE."""
    if profile.confidence_score < MIN_QUERY_CONFIDENCE:
        return None
    template = select_template(profile)
    components = build_components(profile, signals)
    return SyntheticQuery(
        query=fill_template(template, components),
        template=template,
        confidence=profile.confidence_score,
        complexity=query_complexity(profile.confidence_score),
        components=components,
    )
