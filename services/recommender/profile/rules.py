"""
Inference rule catalog for the profile engine.

Each InferenceRule is a record:
  - id:         stable identifier (logged, returned in applied_rules)
  - condition:  predicate(profile, signals) -> bool
  - infer:      attribute -> value, merged via profile.types.merge_attribute
  - confidence: fixed weight added to the pass total when the rule fires

INFERENCE_RULES is a tuple evaluated in declared order on every pass. Later
rules can read attributes written by earlier rules in the same pass
(gift_buyer_compare reads gift_buyer, first_time_buyer reads existing_owner),
so reordering the tuple changes inferred profiles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from services.recommender.profile.types import Profile
from services.recommender.signals.types import Signal

Condition = Callable[[Profile, Sequence[Signal]], bool]


@dataclass(frozen=True)
class InferenceRule:
    id: str
    condition: Condition
    infer: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0


# ---------------------------------------------------------------------------
# Signal accessors
# ---------------------------------------------------------------------------

def _text(signal: Signal, key: str) -> str:
    return str(signal.data.get(key) or "").lower()


def _query(signal: Signal) -> str:
    return _text(signal, "query") if signal.type == "search" else ""


def _count(signals: Sequence[Signal], category: str) -> int:
    return sum(1 for s in signals if s.category == category)


def _any_category(signals: Sequence[Signal], *categories: str) -> bool:
    return any(s.category in categories for s in signals)


def _mentions(signal: Signal, needle: str) -> bool:
    """Search query, h1 or path mentions ``needle``."""
    return (
        needle in _query(signal)
        or needle in _text(signal, "h1")
        or needle in _text(signal, "path")
    )


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

_NEW_PARENT_QUERY = re.compile(r"baby|infant|toddler|puree")
_GIFT_QUERY = re.compile(r"gift|wedding|registry|present")
_UPGRADE_QUERY = re.compile(r"upgrade|\bvs\b|compare|replace|\bold\b")
_NUT_BUTTER_QUERY = re.compile(r"nut butter|almond butter|peanut")

PREMIUM_PRODUCTS = frozenset({"X5", "A3500", "A3500i", "A2500", "A2500i"})


def _new_parent_search(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(_NEW_PARENT_QUERY.search(_query(s)) for s in signals)


def _new_parent_page(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(
        s.type == "page_view"
        and ("baby" in _text(s, "h1") or "baby" in _text(s, "path") or "baby" in _text(s, "title")
             or "baby" in _text(s, "url"))
        for s in signals
    )


def _gift_buyer_referrer(profile: Profile, signals: Sequence[Signal]) -> bool:
    for s in signals:
        if s.type != "referrer":
            continue
        search_query = _text(s, "searchQuery")
        if "gift" in _text(s, "domain") or "gift" in search_query or "wedding" in search_query:
            return True
    return False


def _gift_buyer_search(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(_GIFT_QUERY.search(_query(s)) for s in signals)


def _gift_buyer_compare(profile: Profile, signals: Sequence[Signal]) -> bool:
    return "gift_buyer" in profile.segments and any(
        s.category == "compare" or s.compared_products for s in signals
    )


def _upgrader_search(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(_UPGRADE_QUERY.search(_query(s)) for s in signals)


def _upgrader_direct(profile: Profile, signals: Sequence[Signal]) -> bool:
    return _any_category(signals, "direct") and any(s.type == "search" for s in signals)


def _upgrader_reconditioned(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(
        s.category == "reconditioned"
        or "reconditioned" in _text(s, "path")
        or "reconditioned" in _text(s, "h1")
        for s in signals
    )


def _thorough_researcher(profile: Profile, signals: Sequence[Signal]) -> bool:
    return _count(signals, "reviews") >= 1 and _count(signals, "recipe") >= 2


def _content_engaged(profile: Profile, signals: Sequence[Signal]) -> bool:
    return _count(signals, "recipe") >= 4


def _comparison_shopper(profile: Profile, signals: Sequence[Signal]) -> bool:
    return _any_category(signals, "compare") and _count(signals, "product") >= 2


def _smoothie_maker(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(_mentions(s, "smoothie") for s in signals)


def _soup_maker(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(_mentions(s, "soup") for s in signals)


def _nut_butter_maker(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(
        _NUT_BUTTER_QUERY.search(_query(s)) or "nut-butter" in _text(s, "path")
        for s in signals
    )


def _price_sensitive(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(
        s.category in ("financing", "reconditioned")
        or "financing" in _text(s, "path")
        or "affirm" in _text(s, "path")
        for s in signals
    )


def _premium_buyer(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(p in PREMIUM_PRODUCTS for p in profile.products_considered)


def _high_purchase_intent(profile: Profile, signals: Sequence[Signal]) -> bool:
    return _any_category(signals, "add_to_cart", "shipping")


def _medium_purchase_intent(profile: Profile, signals: Sequence[Signal]) -> bool:
    return len(profile.products_considered) >= 1 and _any_category(signals, "reviews")


def _time_sensitive_buyer(profile: Profile, signals: Sequence[Signal]) -> bool:
    return _any_category(signals, "shipping") and _any_category(signals, "returns")


def _first_time_buyer(profile: Profile, signals: Sequence[Signal]) -> bool:
    return "existing_owner" not in profile.segments and _any_category(signals, "whats_in_box")


def _video_engaged(profile: Profile, signals: Sequence[Signal]) -> bool:
    return any(s.type == "video_complete" for s in signals)


def _support_visitor(profile: Profile, signals: Sequence[Signal]) -> bool:
    return _any_category(signals, "support")


# ---------------------------------------------------------------------------
# Catalog: declared order is evaluation order
# ---------------------------------------------------------------------------

INFERENCE_RULES: tuple[InferenceRule, ...] = (
    # New parent
    InferenceRule(
        "new_parent_search", _new_parent_search,
        {"segments": ["new_parent"], "life_stage": "infant_caregiver", "use_cases": ["baby_food"]},
        0.20,
    ),
    InferenceRule(
        "new_parent_page", _new_parent_page,
        {"segments": ["new_parent", "baby_feeding"], "use_cases": ["baby_food", "purees"]},
        0.15,
    ),
    # Gift buyer
    InferenceRule(
        "gift_buyer_referrer", _gift_buyer_referrer,
        {"segments": ["gift_buyer"], "shopping_for": "someone_else", "use_cases": ["gift"]},
        0.18,
    ),
    InferenceRule(
        "gift_buyer_search", _gift_buyer_search,
        {"segments": ["gift_buyer"], "shopping_for": "someone_else", "occasion": "gift",
         "use_cases": ["gift"]},
        0.20,
    ),
    InferenceRule(
        "gift_buyer_compare", _gift_buyer_compare,
        {"segments": ["gift_comparison"], "decision_style": "informed_comparison"},
        0.10,
    ),
    # Existing owner / upgrader
    InferenceRule(
        "upgrader_search", _upgrader_search,
        {"segments": ["existing_owner", "upgrade_intent"], "brand_relationship": "loyal_customer",
         "use_cases": ["replacement", "upgrade"]},
        0.18,
    ),
    InferenceRule(
        "upgrader_direct", _upgrader_direct,
        {"segments": ["existing_owner"], "brand_relationship": "loyal_customer"},
        0.10,
    ),
    InferenceRule(
        "upgrader_reconditioned", _upgrader_reconditioned,
        {"segments": ["value_conscious"], "price_sensitivity": "moderate"},
        0.12,
    ),
    # Research behavior
    InferenceRule(
        "thorough_researcher", _thorough_researcher,
        {"decision_style": "thorough_researcher", "content_engagement": "high"},
        0.12,
    ),
    InferenceRule(
        "content_engaged", _content_engaged,
        {"segments": ["content_engaged"], "content_engagement": "high"},
        0.12,
    ),
    InferenceRule(
        "comparison_shopper", _comparison_shopper,
        {"segments": ["comparison_shopper"], "decision_style": "informed_comparison"},
        0.15,
    ),
    # Use cases
    InferenceRule("smoothie_maker", _smoothie_maker, {"use_cases": ["smoothies"]}, 0.08),
    InferenceRule("soup_maker", _soup_maker, {"use_cases": ["soups", "hot_blending"]}, 0.08),
    InferenceRule("nut_butter_maker", _nut_butter_maker, {"use_cases": ["nut_butters"]}, 0.08),
    # Price sensitivity
    InferenceRule("price_sensitive", _price_sensitive, {"price_sensitivity": "high"}, 0.10),
    InferenceRule(
        "premium_buyer", _premium_buyer,
        {"price_sensitivity": "low", "segments": ["premium_preference"]},
        0.08,
    ),
    # Purchase readiness
    InferenceRule("high_purchase_intent", _high_purchase_intent,
                  {"purchase_readiness": "high"}, 0.15),
    InferenceRule("medium_purchase_intent", _medium_purchase_intent,
                  {"purchase_readiness": "medium_high"}, 0.10),
    InferenceRule("time_sensitive_buyer", _time_sensitive_buyer, {"time_sensitive": True}, 0.08),
    InferenceRule("first_time_buyer", _first_time_buyer, {"segments": ["first_time_buyer"]}, 0.10),
    InferenceRule(
        "video_engaged", _video_engaged,
        {"decision_style": "visual", "content_engagement": "high"},
        0.12,
    ),
    InferenceRule("support_visitor", _support_visitor, {"segments": ["support_seeker"]}, 0.08),
)
