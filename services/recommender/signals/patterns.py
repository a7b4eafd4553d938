"""
Declarative classification patterns for behavioral signals.

Each entry in PAGE_CLASSIFIERS / CLICK_CLASSIFIERS is a spec dict with:
  - "pattern":  compiled regex (IGNORECASE) tested against the joined text fields
  - "category": the signal category assigned on match
  - "weight":   one of the fixed weight tiers from signals.taxonomy
  - "label":    short human-readable description of the behavior

Lists are ORDERED: the classifier returns the first match and never falls
through, so more specific patterns (reconditioned, compare, support) must
come before broader ones (product, category).
"""

from __future__ import annotations

import re
from typing import TypedDict

from services.recommender.signals.taxonomy import HIGH, LOW, MEDIUM, VERY_HIGH


class ClassifierSpec(TypedDict):
    pattern: re.Pattern[str]
    category: str
    weight: float
    label: str


def _rx(regex: str, category: str, weight: float, label: str) -> ClassifierSpec:
    """Compile a classifier regex."""
    return ClassifierSpec(
        pattern=re.compile(regex, re.IGNORECASE),
        category=category,
        weight=weight,
        label=label,
    )


# ---------------------------------------------------------------------------
# Page views: matched against "url path title h1"
# ---------------------------------------------------------------------------

PAGE_CLASSIFIERS: list[ClassifierSpec] = [
    _rx(r"certified-reconditioned|reconditioned|refurbished", "reconditioned", HIGH,
        "Viewed reconditioned blenders"),
    _rx(r"/compare\b|\bcompare\b", "compare", VERY_HIGH, "Viewed product comparison"),
    _rx(r"/(support|help|contact-us|manuals?|troubleshooting)\b", "support", HIGH,
        "Visited support content"),
    _rx(r"/(shipping|delivery)\b", "shipping", HIGH, "Checked shipping information"),
    _rx(r"/(returns?|return-policy)\b", "returns", MEDIUM, "Checked return policy"),
    _rx(r"/(financing|affirm|payment|klarna)\b", "financing", MEDIUM,
        "Viewed financing options"),
    _rx(r"/recipes?/", "recipe", HIGH, "Viewed recipe"),
    _rx(r"/shop/blenders/[\w-]+", "product", HIGH, "Viewed product page"),
    _rx(r"/shop/accessories/[\w-]+", "accessories", MEDIUM, "Viewed accessory"),
    _rx(r"/(articles?|blog|learn|inspiration)/", "article", MEDIUM, "Read article"),
    _rx(r"/shop/(blenders|accessories|containers)/?(?=[\s?#]|$)", "category", MEDIUM,
        "Browsed product category"),
]

GENERIC_PAGE = _rx(r".", "page", LOW, "Viewed page")


# ---------------------------------------------------------------------------
# Clicks: matched against "text ariaLabel action className href"
# ---------------------------------------------------------------------------

CLICK_CLASSIFIERS: list[ClassifierSpec] = [
    _rx(r"\b(load|show|see|read) (more|all)\b.*\breviews?\b"
        r"|\breviews?\b.*\b(load|show|see|read) (more|all)\b",
        "reviews", HIGH, "Expanded reviews"),
    _rx(r"\b(filter|sort)\b.*\breviews?\b|\brating\b|\bstars?\b", "reviews", MEDIUM,
        "Filtered reviews"),
    _rx(r"add to (cart|bag|basket)|buy now|\bpurchase\b", "add_to_cart", VERY_HIGH,
        "Clicked add to cart"),
    _rx(r"\bcompare\b|\bvs\b", "compare", VERY_HIGH, "Clicked compare"),
    _rx(r"what.*in.*box|package contents?|in the box|\bincluded\b", "whats_in_box", MEDIUM,
        "Checked what's in the box"),
    _rx(r"specifications?|tech spec|\bfeatures\b|\bdetails\b|\boverview\b", "specs", MEDIUM,
        "Opened specifications"),
    _rx(r"\bgallery\b|\bcarousel\b|\bthumbnail\b|\bzoom\b", "gallery", LOW,
        "Browsed image gallery"),
    _rx(r"\breviews?\b", "reviews", MEDIUM, "Opened reviews"),
]

GENERIC_CLICK = _rx(r".", "click", LOW, "Clicked element")


# ---------------------------------------------------------------------------
# Product identification
# ---------------------------------------------------------------------------

PRODUCT_URL_PATTERN = re.compile(r"/shop/blenders/([\w-]+)", re.IGNORECASE)

# URL slug fragment -> product name. Checked longest-key first so that
# "explorian-e310" wins over "e310".
PRODUCT_MAPPINGS: dict[str, str] = {
    "a3500": "A3500",
    "a2500": "A2500",
    "a2300": "A2300",
    "explorian-e310": "E310",
    "e310": "E310",
    "e320": "E320",
    "x5": "X5",
    "x4": "X4",
    "x3": "X3",
    "x2": "X2",
    "venturist-v1200": "V1200",
    "5200": "5200",
    "5300": "5300",
    "7500": "7500",
    "propel-series": "Propel Series",
    "immersion-blender": "Immersion Blender",
    "foodcycler": "FoodCycler",
}

# Model identifiers recognised in free text (search queries, headings)
MODEL_PATTERN = re.compile(
    r"\b(x5|x4|x3|x2|a3500i?|a2500i?|a2300i?|e310|e320|v1200|5200|5300|7500"
    r"|propel|explorian|ascent)\b",
    re.IGNORECASE,
)

MODEL_NAMES: dict[str, str] = {
    "x5": "X5",
    "x4": "X4",
    "x3": "X3",
    "x2": "X2",
    "a3500": "A3500",
    "a3500i": "A3500i",
    "a2500": "A2500",
    "a2500i": "A2500i",
    "a2300": "A2300",
    "a2300i": "A2300i",
    "e310": "E310",
    "e320": "E320",
    "v1200": "V1200",
    "5200": "5200",
    "5300": "5300",
    "7500": "7500",
    "propel": "Propel Series",
    "explorian": "Explorian",
    "ascent": "Ascent",
}

RECIPE_CATEGORIES: dict[str, str] = {
    "baby-food": "baby_food",
    "smoothies": "smoothies",
    "soups": "soups",
    "frozen-desserts": "frozen_desserts",
    "nut-butters": "nut_butters",
    "sauces": "sauces",
    "dressings": "dressings",
    "cocktails": "cocktails",
    "juices": "juices",
}


# ---------------------------------------------------------------------------
# Referrers
# ---------------------------------------------------------------------------

# Search engine domain fragment -> query parameter names tried in order
SEARCH_ENGINES: dict[str, tuple[str, ...]] = {
    "google": ("q",),
    "bing": ("q",),
    "duckduckgo": ("q",),
    "yahoo": ("p", "q"),
}

# Milestone thresholds reported by the capture layer
SCROLL_DEEP_PERCENT = 75
ENGAGED_TIME_MS = 120_000
