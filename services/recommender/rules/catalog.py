"""
Static block rule catalog.

Rules are additive constraints, not complete page sequences:
  - requires:  blocks that MUST appear when the rule triggers
  - excludes:  blocks that MUST NOT appear (always beats requires/enhances)
  - enhances:  blocks that SHOULD appear if coherent
  - sequence_hints / content_guidance: ordering and messaging hints

Every trigger regex is compiled when this module is imported. A bad pattern
raises RuleCatalogError at import, so it can never surface at request time.

Categories:
  structure    primary page flow (comparison, support, discovery)
  context      lifestyle / situational needs
  enhancement  always-on additions (follow-up, default hero)
"""

from __future__ import annotations

import re

from services.recommender.generation.blocks import BlockType as B
from services.recommender.rules.types import (
    BlockRule,
    EntityType,
    Position,
    RuleCatalogError,
    SequenceHint,
    TriggerCondition,
)


def _compile(regex: str) -> re.Pattern[str]:
    try:
        return re.compile(regex, re.IGNORECASE)
    except re.error as exc:
        raise RuleCatalogError(f"Invalid trigger pattern {regex!r}: {exc}") from exc


def _kw(regex: str, *negative: str) -> TriggerCondition:
    """Keyword trigger: case-insensitive regex over the query, with optional vetoes."""
    return TriggerCondition(
        kind="keyword",
        pattern=_compile(regex),
        negative_patterns=tuple(_compile(n) for n in negative),
    )


def _intent(intent_type: str) -> TriggerCondition:
    return TriggerCondition(kind="intent", intent_type=intent_type)


def _entity(entity_type: EntityType, min_count: int = 1) -> TriggerCondition:
    return TriggerCondition(kind="entity", entity_type=entity_type, min_count=min_count)


def _hint(block: B, position: Position, after: B | None = None, before: B | None = None) -> SequenceHint:
    return SequenceHint(block=block, position=position, after=after, before=before)


# ---------------------------------------------------------------------------
# Catalog: declared order is the tie-break order for equal priorities
# ---------------------------------------------------------------------------

BLOCK_RULES: tuple[BlockRule, ...] = (

    # -------------------------------------------------------------------
    # Structure rules
    # -------------------------------------------------------------------
    BlockRule(
        id="comparison",
        name="Product Comparison",
        category="structure",
        triggers=(
            _kw(r"\bvs\b"),
            _kw(r"\bversus\b"),
            _kw(r"\bcompare\b"),
            _kw(r"\bcomparison\b"),
            _kw(r"\bdifference between\b"),
            _kw(r"\bwhich is better\b"),
            _kw(r"\bwhich one\b"),
            _kw(r"\bshould i choose\b"),
            _intent("comparison"),
            _entity("products", 2),
        ),
        requires=(B.BEST_PICK, B.COMPARISON_TABLE),
        enhances=(B.PRODUCT_CARDS,),
        sequence_hints=(
            _hint(B.BEST_PICK, "early", after=B.HERO),
            _hint(B.COMPARISON_TABLE, "middle", after=B.BEST_PICK),
        ),
        content_guidance=(
            "Focus on differentiating features between models. "
            "Highlight which is best for their specific use case."
        ),
        priority=80,
    ),
    BlockRule(
        id="support",
        name="Support/Frustrated Customer",
        category="structure",
        triggers=(
            _kw(r"\bproblem\b"),
            _kw(r"\bbroken\b"),
            _kw(r"\bfrustrated\b"),
            # Research questions about warranty as a feature are not support
            _kw(
                r"\bwarranty\b",
                r"\bspecs\b",
                r"\bspecifications\b",
                r"\bfeatures\b",
                r"\bwhat (does|is).*warranty.*cover",
                r"\bhow long.*warranty",
                r"\bwarranty (length|period|coverage|duration)",
                r"\byear.*warranty",
                r"\bwarranty.*year",
            ),
            _kw(r"\breturn\b"),
            _kw(r"\bissue\b"),
            _kw(r"\bnot working\b"),
            _kw(r"\bleak"),
            _kw(r"\brepair\b"),
            _intent("support"),
        ),
        requires=(B.SUPPORT_TRIAGE, B.FAQ),
        excludes=(B.PRODUCT_RECOMMENDATION, B.BEST_PICK, B.PRODUCT_CARDS, B.COMPARISON_TABLE),
        sequence_hints=(
            _hint(B.SUPPORT_TRIAGE, "early"),
            _hint(B.FAQ, "middle"),
        ),
        content_guidance=(
            "Lead with empathy. Prioritize resolution over sales. "
            "Never recommend products to frustrated customers."
        ),
        priority=100,
    ),
    BlockRule(
        id="discovery",
        name="General Discovery",
        category="structure",
        triggers=(
            _intent("discovery"),
            _kw(r"\bwhat can\b"),
            _kw(r"\bshow me\b"),
            _kw(r"\bexplore\b"),
        ),
        requires=(B.HERO, B.USE_CASE_CARDS),
        enhances=(B.FEATURE_HIGHLIGHTS, B.PRODUCT_CARDS),
        sequence_hints=(
            _hint(B.HERO, "early"),
            _hint(B.USE_CASE_CARDS, "middle"),
        ),
        content_guidance="Inspire and educate. Help them understand what's possible with a Vitamix.",
        priority=30,
    ),

    # -------------------------------------------------------------------
    # Context rules
    # -------------------------------------------------------------------
    BlockRule(
        id="picky-eaters",
        name="Family with Picky Eaters",
        category="context",
        triggers=(
            _kw(r"\bpicky eater"),
            _kw(r"\bkids\b"),
            _kw(r"\bchildren\b"),
            _kw(r"\bfamily of\b"),
            _kw(r"\bson\b"),
            _kw(r"\bdaughter\b"),
            _kw(r"doesn't like veg"),
            _kw(r"won't eat veg"),
            _kw(r"\bhiding vegetables\b"),
            _kw(r"\bsneak vegetables\b"),
        ),
        requires=(B.RECIPE_CARDS,),
        enhances=(B.FEATURE_HIGHLIGHTS,),
        sequence_hints=(_hint(B.RECIPE_CARDS, "middle"),),
        content_guidance=(
            "Emphasize soup-making as a solution for hiding vegetables. Mention that soups can "
            "sneak in nutrition without kids noticing. Include smoothie content for kids who "
            "love them."
        ),
        priority=70,
    ),
    BlockRule(
        id="recipes-cooking",
        name="Recipe/Cooking Interest",
        category="context",
        triggers=(
            _kw(r"\brecipe"),
            _kw(r"\bsoup"),
            _kw(r"\bhot soup\b"),
            _kw(r"\bmake a\b"),
            _kw(r"\bcook\b"),
            _kw(r"\bprepare\b"),
            _kw(r"\bmeal ideas\b"),
            _kw(r"\bwhat can i make\b"),
            _kw(r"\bsmoothie"),
            _kw(r"\bpuree\b"),
            _kw(r"\bnut butter\b"),
            _entity("ingredients", 1),
        ),
        requires=(B.RECIPE_CARDS,),
        enhances=(B.FEATURE_HIGHLIGHTS,),
        sequence_hints=(_hint(B.RECIPE_CARDS, "middle"),),
        content_guidance=(
            "Focus on inspiring them with what they can create. For soup queries, emphasize "
            "hot-blending and friction-heat technology."
        ),
        priority=65,
    ),
    BlockRule(
        id="budget-conscious",
        name="Budget-Conscious User",
        category="context",
        triggers=(
            _kw(r"\bbudget\b"),
            _kw(r"\bafford\b"),
            _kw(r"\bcheap\b"),
            _kw(r"\bworth it\b"),
            _kw(r"\bexpensive\b"),
            _kw(r"\bstudent\b"),
            _kw(r"\bprice\b"),
            _intent("price"),
        ),
        requires=(B.BUDGET_BREAKDOWN,),
        enhances=(B.PRODUCT_CARDS,),
        sequence_hints=(_hint(B.BUDGET_BREAKDOWN, "middle"),),
        content_guidance="Be honest about value and alternatives. Show price transparency.",
        priority=60,
    ),
    BlockRule(
        id="gift-purchase",
        name="Gift Purchase",
        category="context",
        triggers=(
            _kw(r"\bgift\b"),
            _kw(r"\bfor my (mom|dad|wife|husband|friend|sister|brother)\b"),
            _kw(r"\bbirthday\b"),
            _kw(r"\bwedding\b"),
            _kw(r"\bchristmas\b"),
            _kw(r"\bpresent\b"),
            _intent("gift"),
        ),
        requires=(B.BEST_PICK,),
        enhances=(B.PRODUCT_CARDS,),
        sequence_hints=(_hint(B.BEST_PICK, "early", after=B.HERO),),
        content_guidance=(
            "Focus on recipient's needs. Only recommend NEW products (never reconditioned for "
            "gifts). Emphasize premium presentation and warranty."
        ),
        priority=65,
    ),
    BlockRule(
        id="medical-accessibility",
        name="Medical/Accessibility Needs",
        category="context",
        triggers=(
            _kw(r"\barthritis\b"),
            _kw(r"\bdisability\b"),
            _kw(r"\bdysphagia\b"),
            _kw(r"\bstroke\b"),
            _kw(r"\bmobility\b"),
            _kw(r"\bgrip\b"),
            _kw(r"\bheavy\b"),
            _kw(r"\baging\b"),
            _intent("medical"),
            _intent("accessibility"),
        ),
        requires=(B.EMPATHY_HERO, B.ACCESSIBILITY_SPECS),
        excludes=(B.HERO,),
        enhances=(B.PRODUCT_RECOMMENDATION,),
        sequence_hints=(
            _hint(B.EMPATHY_HERO, "early"),
            _hint(B.ACCESSIBILITY_SPECS, "middle"),
        ),
        content_guidance=(
            "Lead with empathy. Acknowledge their situation. Focus on physical considerations "
            "and ease of use."
        ),
        priority=85,
    ),
    BlockRule(
        id="sustainability",
        name="Eco-Conscious User",
        category="context",
        triggers=(
            _kw(r"\beco\b"),
            _kw(r"\beco-friendly\b"),
            _kw(r"\bsustainable\b"),
            _kw(r"\benvironment(al)?\b"),
            _kw(r"\bgreen (product|choice|option|alternative)"),
            _kw(r"\breduce waste\b"),
            _kw(r"\blandfill\b"),
            _kw(r"\bplastic free\b"),
            _kw(r"\bcarbon footprint\b"),
        ),
        requires=(B.SUSTAINABILITY_INFO,),
        enhances=(B.PRODUCT_RECOMMENDATION,),
        sequence_hints=(_hint(B.SUSTAINABILITY_INFO, "middle"),),
        content_guidance="Focus on longevity and repairability as eco-benefits.",
        priority=55,
    ),
    BlockRule(
        id="noise-sensitive",
        name="Noise-Sensitive User",
        category="context",
        triggers=(
            _kw(r"\bnoise\b"),
            _kw(r"\bquiet"),
            _kw(r"\bloud\b"),
            _kw(r"\bapartment\b"),
            _kw(r"\broommate\b"),
            _kw(r"\bneighbor"),
            _kw(r"\bdB\b"),
            _kw(r"\bdecibel\b"),
        ),
        requires=(B.NOISE_CONTEXT,),
        enhances=(B.PRODUCT_CARDS,),
        sequence_hints=(_hint(B.NOISE_CONTEXT, "middle"),),
        content_guidance=(
            "Be honest about limitations - blenders are loud. Provide real-world comparisons."
        ),
        priority=55,
    ),
    BlockRule(
        id="allergen-concerns",
        name="Allergy/Cross-Contamination",
        category="context",
        triggers=(
            _kw(r"\ballergy\b"),
            _kw(r"\ballergen\b"),
            _kw(r"\bcross.?contamination\b"),
            _kw(r"\bpeanut\b"),
            _kw(r"\bgluten\b"),
            _kw(r"\bceliac\b"),
            _kw(r"\banaphylaxis\b"),
        ),
        requires=(B.ALLERGEN_SAFETY,),
        enhances=(B.PRODUCT_RECOMMENDATION,),
        sequence_hints=(_hint(B.ALLERGEN_SAFETY, "middle"),),
        content_guidance=(
            "Include cleaning protocols. Emphasize dedicated container strategy for allergen "
            "safety."
        ),
        priority=75,
    ),
    BlockRule(
        id="smart-tech",
        name="Smart Home/Tech Integration",
        category="context",
        triggers=(
            _kw(r"\bapp\b"),
            _kw(r"\bwifi\b"),
            _kw(r"\bconnected\b"),
            _kw(r"\bsmart\b"),
            _kw(r"\balexa\b"),
            _kw(r"\bvoice\b"),
            _kw(r"\bbluetooth\b"),
        ),
        requires=(B.SMART_FEATURES,),
        enhances=(B.COMPARISON_TABLE,),
        sequence_hints=(_hint(B.SMART_FEATURES, "middle"),),
        content_guidance=(
            "Be transparent about smart feature limitations while highlighting genuine benefits."
        ),
        priority=50,
    ),
    BlockRule(
        id="engineering-specs",
        name="Deep Technical Interest",
        category="context",
        triggers=(
            _kw(r"\bwattage\b"),
            _kw(r"\brpm\b"),
            _kw(r"\bmotor\b"),
            _kw(r"\bspecs\b"),
            _kw(r"\bspecifications\b"),
            _kw(r"\btechnical\b"),
            _kw(r"\bengineer\b"),
            _intent("specs"),
        ),
        requires=(B.ENGINEERING_SPECS,),
        excludes=(B.SPECS_TABLE,),
        enhances=(B.COMPARISON_TABLE,),
        sequence_hints=(_hint(B.ENGINEERING_SPECS, "middle"),),
        content_guidance="Focus on raw data and measurements. No marketing fluff.",
        priority=55,
    ),
    BlockRule(
        id="commercial-b2b",
        name="Commercial/B2B Interest",
        category="context",
        triggers=(
            _kw(r"\brestaurant\b"),
            _kw(r"\bbusiness\b"),
            _kw(r"\bcommercial\b"),
            _kw(r"\bbulk\b"),
            _kw(r"\bb2b\b"),
            _kw(r"\bprofessional kitchen\b"),
            _kw(r"\bbar\b"),
            _kw(r"\bcafe\b"),
            _kw(r"\bjuice bar\b"),
            _intent("partnership"),
        ),
        requires=(B.SPECS_TABLE,),
        excludes=(B.ENGINEERING_SPECS,),
        enhances=(B.COMPARISON_TABLE,),
        sequence_hints=(_hint(B.SPECS_TABLE, "middle"),),
        content_guidance=(
            "Focus on durability, warranty, volume capacity. Mention commercial support contact."
        ),
        priority=70,
    ),
    BlockRule(
        id="cleaning",
        name="Cleaning & Maintenance",
        category="context",
        triggers=(
            _kw(r"\bclean"),
            _kw(r"\bwash"),
            _kw(r"\bmaintenance\b"),
            _kw(r"\bcare\b"),
            _kw(r"\bresidue\b"),
            _kw(r"\bstain"),
            _kw(r"\bself.?clean"),
            _kw(r"\bdishwasher\b"),
            _kw(r"\bsanitize\b"),
        ),
        requires=(B.TROUBLESHOOTING_STEPS,),
        excludes=(B.PRODUCT_RECOMMENDATION, B.BEST_PICK, B.COMPARISON_TABLE),
        enhances=(B.FAQ,),
        sequence_hints=(
            _hint(B.TROUBLESHOOTING_STEPS, "early", after=B.HERO),
            _hint(B.FAQ, "middle"),
        ),
        content_guidance=(
            "Focus on step-by-step cleaning instructions. Mention self-cleaning feature. "
            "Include tips for stubborn residue."
        ),
        priority=72,
    ),
    BlockRule(
        id="troubleshooting",
        name="Troubleshooting & Problem Resolution",
        category="context",
        triggers=(
            _kw(r"\bfix\b"),
            _kw(r"\berror\b"),
            _kw(r"\bburning\b"),
            _kw(r"\bsmell"),
            _kw(r"\bwon'?t\b"),
            _kw(r"\bdoesn'?t\b"),
            _kw(r"\btroubleshoot"),
            _kw(r"\bstuck\b"),
            _kw(r"\bjammed\b"),
            _kw(r"\boverheating\b"),
            _kw(r"\bnot blending\b"),
            _kw(r"\bstopped working\b"),
            _kw(r"\bhow (do i|to) fix\b"),
        ),
        requires=(B.TROUBLESHOOTING_STEPS, B.FAQ),
        excludes=(B.PRODUCT_RECOMMENDATION, B.BEST_PICK, B.PRODUCT_CARDS, B.COMPARISON_TABLE),
        sequence_hints=(
            _hint(B.TROUBLESHOOTING_STEPS, "early", after=B.HERO),
            _hint(B.FAQ, "middle"),
        ),
        content_guidance=(
            "Provide clear step-by-step troubleshooting. Lead with the most common fix. "
            "Be reassuring - most issues are easily resolved."
        ),
        priority=90,
    ),
    BlockRule(
        id="technique",
        name="Technique & Operation Guidance",
        category="context",
        triggers=(
            _kw(r"\bhow (do i|to)\b"),
            _kw(r"\btechnique\b"),
            _kw(r"\btips\b"),
            _kw(r"\bsettings?\b"),
            _kw(r"\bspeed\b"),
            _kw(r"\bproper way\b"),
            _kw(r"\bbest way\b"),
            _kw(r"\bmethod\b"),
            _kw(r"\blayer"),
            _kw(r"\btamper\b"),
            _kw(r"\bprogram"),
            _kw(r"\btime\b"),
            _kw(r"\bminutes?\b"),
            _kw(r"\bduration\b"),
        ),
        requires=(B.TECHNIQUE_SPOTLIGHT,),
        enhances=(B.FAQ, B.RECIPE_CARDS),
        sequence_hints=(
            _hint(B.TECHNIQUE_SPOTLIGHT, "early", after=B.HERO),
            _hint(B.FAQ, "middle"),
            _hint(B.RECIPE_CARDS, "late"),
        ),
        content_guidance=(
            "Focus on practical how-to guidance. Include specific speed/time recommendations. "
            "Visual step-by-step is ideal."
        ),
        priority=68,
    ),

    # -------------------------------------------------------------------
    # Enhancement rules
    # -------------------------------------------------------------------
    BlockRule(
        id="quick-question",
        name="Quick Yes/No Question",
        category="enhancement",
        triggers=(
            _kw(r"^can vitamix\b"),
            _kw(r"^will it\b"),
            _kw(r"^does it\b"),
            _kw(r"^is it worth\b"),
            _kw(r"^should i\b"),
            _kw(r"^can i\b"),
        ),
        requires=(B.QUICK_ANSWER,),
        sequence_hints=(_hint(B.QUICK_ANSWER, "early"),),
        content_guidance="Lead with a direct answer. Be concise.",
        priority=40,
    ),
    BlockRule(
        id="follow-up-always",
        name="Always Include Follow-up",
        category="enhancement",
        triggers=(_kw(r"^"),),
        requires=(B.FOLLOW_UP,),
        sequence_hints=(_hint(B.FOLLOW_UP, "late"),),
        content_guidance="Provide contextual next steps.",
        priority=10,
    ),
    BlockRule(
        id="hero-default",
        name="Default Hero Block",
        category="enhancement",
        triggers=(_kw(r"^"),),
        requires=(B.HERO,),
        sequence_hints=(_hint(B.HERO, "early"),),
        priority=5,
    ),
)


def rule_by_id(rule_id: str) -> BlockRule:
    for rule in BLOCK_RULES:
        if rule.id == rule_id:
            return rule
    raise KeyError(rule_id)


def _validate(rules: tuple[BlockRule, ...]) -> None:
    seen: set[str] = set()
    for rule in rules:
        if rule.id in seen:
            raise RuleCatalogError(f"Duplicate block rule id {rule.id!r}")
        seen.add(rule.id)
        if not rule.triggers:
            raise RuleCatalogError(f"Block rule {rule.id!r} has no triggers")
        for trigger in rule.triggers:
            if trigger.kind in ("keyword", "pattern") and trigger.pattern is None:
                raise RuleCatalogError(f"Block rule {rule.id!r} has a keyword trigger without a pattern")
            if trigger.kind == "intent" and not trigger.intent_type:
                raise RuleCatalogError(f"Block rule {rule.id!r} has an intent trigger without a type")
            if trigger.kind == "entity" and not trigger.entity_type:
                raise RuleCatalogError(f"Block rule {rule.id!r} has an entity trigger without a type")


_validate(BLOCK_RULES)
