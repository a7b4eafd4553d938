"""
Reasoning collaborator adapter.

Asks the configured Anthropic model to propose a block layout for a query, given the
classified intent, the visitor profile and the rule engine's merged
requirements. The call is one atomic request: nothing is applied until it
returns, and any failure is left to the caller (which falls back).

Every call logs: model, prompt version, latency, token usage.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import anthropic

from services.recommender.config import settings
from services.recommender.generation.blocks import BlockType
from services.recommender.nlp.intent import IntentContext
from services.recommender.rules.engine import format_content_guidance
from services.recommender.rules.types import MergedBlockRequirements

logger = logging.getLogger(__name__)

# Bump whenever prompt text changes meaningfully
REASONING_PROMPT_VERSION = "block-reasoning-v1.0"

_BLOCK_PURPOSES: dict[BlockType, str] = {
    BlockType.HERO: "Full-width banner with headline and image, for landing/discovery",
    BlockType.PRODUCT_CARDS: "Grid of 3-4 product cards, for browsing products",
    BlockType.RECIPE_CARDS: "Grid of 3-4 recipe cards, for inspiration",
    BlockType.COMPARISON_TABLE: "Side-by-side product comparison",
    BlockType.SPECS_TABLE: "Technical specifications table",
    BlockType.PRODUCT_RECOMMENDATION: "Featured single product with full details",
    BlockType.FEATURE_HIGHLIGHTS: "Key features showcase",
    BlockType.USE_CASE_CARDS: "Use case selection grid, for discovery",
    BlockType.TESTIMONIALS: "Customer reviews, for social proof",
    BlockType.FAQ: "Common questions",
    BlockType.FOLLOW_UP: "Suggestion chips for next actions (always last)",
    BlockType.QUICK_ANSWER: "Direct answer for yes/no or quick questions",
    BlockType.SUPPORT_TRIAGE: "Help for customers with a product problem or warranty issue",
    BlockType.BUDGET_BREAKDOWN: "Price and value transparency",
    BlockType.ACCESSIBILITY_SPECS: "Physical and ergonomic specs",
    BlockType.EMPATHY_HERO: "Warm, acknowledging hero for medical/emotional situations",
    BlockType.SUSTAINABILITY_INFO: "Environmental responsibility",
    BlockType.SMART_FEATURES: "Connected/app capabilities",
    BlockType.ENGINEERING_SPECS: "Deep technical data",
    BlockType.NOISE_CONTEXT: "Real-world noise comparisons",
    BlockType.ALLERGEN_SAFETY: "Cross-contamination protocols",
    BlockType.BEST_PICK: "Prominent best pick callout, always before comparison-table",
    BlockType.TROUBLESHOOTING_STEPS: "Step-by-step fixes for a product issue",
    BlockType.TECHNIQUE_SPOTLIGHT: "One blending technique explained in depth",
}

_SYSTEM_PROMPT = """You are the reasoning engine for a blender recommender.
Analyse what the visitor wants, plan their journey, and select the content
blocks for the page they will see. Reasoning text is shown to the visitor:
speak to them directly, warmly, under 50 words per field.

## Available Blocks
{blocks}

## Block Selection Guidelines
- Never include 'reasoning' or 'reasoning-user' blocks.
- Always end with a 'follow-up' block.
- Never place hero, product-recommendation, best-pick or empathy-hero next to each other.
- Include every REQUIRED block and none of the EXCLUDED blocks you are given.

## Dual Confidence
- intent (0-1): how sure you are what the visitor wants.
- productMatch (0-1): how sure you are that ONE product is clearly best.
Only use product-recommendation when productMatch >= 0.8.

You must return ONLY a valid JSON object in this exact shape:
{{
  "selectedBlocks": [
    {{"type": "<block>", "variant": "<optional>", "priority": 1,
      "rationale": "<why>", "contentGuidance": "<what to say>"}}
  ],
  "selectedProducts": [
    {{"id": "<product id>", "rationale": "<why>", "isPrimary": true,
      "contextType": "consumer" | "commercial" | "either"}}
  ],
  "productSelectionRationale": "<one sentence>",
  "reasoning": {{
    "intentAnalysis": "...",
    "userNeedsAssessment": "...",
    "blockSelectionRationale": [{{"blockType": "<block>", "reason": "...", "contentFocus": "..."}}],
    "alternativesConsidered": ["..."],
    "finalDecision": "..."
  }},
  "userJourney": {{
    "currentStage": "exploring" | "comparing" | "deciding",
    "nextBestAction": "<action>",
    "suggestedFollowUps": ["...", "..."]
  }},
  "confidence": {{"intent": 0.0, "productMatch": 0.0}}
}}
No markdown, no explanation outside the JSON block."""


def build_system_prompt() -> str:
    rows = "\n".join(f"- {block.value}: {purpose}" for block, purpose in _BLOCK_PURPOSES.items())
    return _SYSTEM_PROMPT.format(blocks=rows)


def build_user_prompt(
    query: str,
    intent: IntentContext,
    requirements: MergedBlockRequirements,
    profile: dict[str, Any] | None = None,
) -> str:
    """Query, intent, profile snapshot and block constraints as one prompt."""
    sections = [
        f"## User Query\n{query}",
        "## Intent Classification\n" + json.dumps(intent.to_dict(), ensure_ascii=False),
    ]
    if profile:
        sections.append("## User Profile\n" + json.dumps(profile, ensure_ascii=False, default=str))
    if requirements.required:
        sections.append("## REQUIRED Blocks\n" + ", ".join(b.value for b in requirements.required))
    if requirements.excluded:
        sections.append("## EXCLUDED Blocks\n" + ", ".join(b.value for b in requirements.excluded))
    guidance = format_content_guidance(requirements)
    if guidance:
        sections.append(guidance)
    return "\n\n".join(sections)


async def propose_blocks(
    query: str,
    intent: IntentContext,
    requirements: MergedBlockRequirements,
    profile: dict[str, Any] | None,
    client: anthropic.AsyncAnthropic,
) -> tuple[str, dict[str, Any]]:
    """
    Ask the reasoning model for a block proposal.

    Returns:
        (raw_text, log_meta)
        raw_text: model output, validated later by parse_reasoning_payload
        log_meta: {"model", "promptVersion", "latencyMs", "inputTokens", "outputTokens"}

    Raises:
        asyncio.TimeoutError if the model exceeds settings.reasoning_timeout_s
        anthropic.APIError on Anthropic API errors
        ValueError if the response carries no text
    """
    start = time.monotonic()

    response = await asyncio.wait_for(
        client.messages.create(
            model=settings.reasoning_model,
            max_tokens=settings.reasoning_max_tokens,
            system=build_system_prompt(),
            messages=[{
                "role": "user",
                "content": build_user_prompt(query, intent, requirements, profile),
            }],
        ),
        timeout=settings.reasoning_timeout_s,
    )

    latency_ms = int((time.monotonic() - start) * 1000)

    if not response.content:
        raise ValueError("Reasoning model returned an empty response")
    raw_text = response.content[0].text.strip()

    log_meta = {
        "model": settings.reasoning_model,
        "promptVersion": REASONING_PROMPT_VERSION,
        "latencyMs": latency_ms,
        "inputTokens": response.usage.input_tokens,
        "outputTokens": response.usage.output_tokens,
    }

    logger.info(
        "Reasoning proposal received in %dms (in=%d out=%d)",
        latency_ms,
        response.usage.input_tokens,
        response.usage.output_tokens,
    )

    return raw_text, log_meta
