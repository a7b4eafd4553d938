"""
Block vocabulary — the closed set of content blocks the page renderer knows.

Anything outside BlockType must be normalised through BLOCK_ALIASES or
dropped before it reaches ordering / gating code.
"""

from __future__ import annotations

import re
from enum import Enum


class BlockType(str, Enum):
    HERO = "hero"
    PRODUCT_HERO = "product-hero"
    PRODUCT_CARDS = "product-cards"
    RECIPE_CARDS = "recipe-cards"
    COMPARISON_TABLE = "comparison-table"
    SPECS_TABLE = "specs-table"
    PRODUCT_RECOMMENDATION = "product-recommendation"
    FEATURE_HIGHLIGHTS = "feature-highlights"
    USE_CASE_CARDS = "use-case-cards"
    TESTIMONIALS = "testimonials"
    FAQ = "faq"
    FOLLOW_UP = "follow-up"
    FOLLOW_UP_ADVISOR = "follow-up-advisor"
    SPLIT_CONTENT = "split-content"
    COLUMNS = "columns"
    TEXT = "text"
    QUICK_ANSWER = "quick-answer"
    SUPPORT_TRIAGE = "support-triage"
    BUDGET_BREAKDOWN = "budget-breakdown"
    ACCESSIBILITY_SPECS = "accessibility-specs"
    EMPATHY_HERO = "empathy-hero"
    BEST_PICK = "best-pick"
    SUSTAINABILITY_INFO = "sustainability-info"
    SMART_FEATURES = "smart-features"
    ENGINEERING_SPECS = "engineering-specs"
    NOISE_CONTEXT = "noise-context"
    ALLERGEN_SAFETY = "allergen-safety"
    TROUBLESHOOTING_STEPS = "troubleshooting-steps"
    TECHNIQUE_SPOTLIGHT = "technique-spotlight"

    def __str__(self) -> str:
        return self.value


# Blocks that must never sit next to each other
HERO_LIKE: frozenset[BlockType] = frozenset({
    BlockType.HERO,
    BlockType.PRODUCT_RECOMMENDATION,
    BlockType.BEST_PICK,
    BlockType.EMPATHY_HERO,
})

# Neutral separators tried in order when two hero-like blocks are adjacent
SEPARATOR_CANDIDATES: tuple[BlockType, ...] = (
    BlockType.FEATURE_HIGHLIGHTS,
    BlockType.USE_CASE_CARDS,
    BlockType.TESTIMONIALS,
)

# Discovery-oriented blocks (low-confidence pages need one)
DISCOVERY_BLOCKS: frozenset[BlockType] = frozenset({
    BlockType.USE_CASE_CARDS,
    BlockType.FEATURE_HIGHLIGHTS,
})

# Meta blocks the reasoning model sometimes emits; never rendered
IGNORED_BLOCK_NAMES: frozenset[str] = frozenset({"reasoning", "reasoning-user"})

BLOCK_ALIASES: dict[str, BlockType] = {
    "hero-block": BlockType.HERO,
    "hero-banner": BlockType.HERO,
    "faq-block": BlockType.FAQ,
    "faqs": BlockType.FAQ,
    "product-recommendations": BlockType.PRODUCT_RECOMMENDATION,
    "recommendation": BlockType.PRODUCT_RECOMMENDATION,
    "product-card": BlockType.PRODUCT_CARDS,
    "products": BlockType.PRODUCT_CARDS,
    "recipe-card": BlockType.RECIPE_CARDS,
    "recipes": BlockType.RECIPE_CARDS,
    "comparison": BlockType.COMPARISON_TABLE,
    "compare-table": BlockType.COMPARISON_TABLE,
    "specs": BlockType.SPECS_TABLE,
    "features": BlockType.FEATURE_HIGHLIGHTS,
    "use-cases": BlockType.USE_CASE_CARDS,
    "followup": BlockType.FOLLOW_UP,
    "follow-ups": BlockType.FOLLOW_UP,
    "troubleshooting": BlockType.TROUBLESHOOTING_STEPS,
    "technique": BlockType.TECHNIQUE_SPOTLIGHT,
}

_VALUES: dict[str, BlockType] = {b.value: b for b in BlockType}


def normalize_block_type(name: object) -> BlockType | None:
    """
    Map a raw block name onto BlockType.

    Case, surrounding whitespace and underscores are tolerated
    ("Hero_Block" -> hero). Returns None for meta blocks and anything
    unmappable.
    """
    if isinstance(name, BlockType):
        return name
    if not isinstance(name, str):
        return None
    key = re.sub(r"[\s_]+", "-", name.strip().lower())
    if key in IGNORED_BLOCK_NAMES:
        return None
    return _VALUES.get(key) or BLOCK_ALIASES.get(key)
