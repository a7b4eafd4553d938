"""
Unit tests for reasoning payload validation — generation/schemas.py.

Covers:
- JSON extraction from prose / code fences
- Required fields (selectedBlocks, reasoning, userJourney)
- Dual / legacy / absent confidence, clamping
- Block name normalisation, unknown names dropped, duplicates collapsed
- Product selection parsing
"""

import json

import pytest

from services.recommender.generation.blocks import BlockType, normalize_block_type
from services.recommender.generation.schemas import (
    BlockSelection,
    Confidence,
    ReasoningPayloadError,
    ReasoningResult,
    parse_reasoning_payload,
)
from services.recommender.tests.helpers.factories import reasoning_payload


class TestExtraction:
    def test_dict_payload(self):
        proposal = parse_reasoning_payload(reasoning_payload())
        assert [b.type for b in proposal.blocks] == [
            BlockType.HERO, BlockType.PRODUCT_RECOMMENDATION, BlockType.FOLLOW_UP,
        ]

    def test_json_wrapped_in_prose_and_fences(self):
        text = "Here is my plan:\n```json\n" + json.dumps(reasoning_payload()) + "\n```\nThanks!"
        assert len(parse_reasoning_payload(text).blocks) == 3

    def test_no_json_raises(self):
        with pytest.raises(ReasoningPayloadError):
            parse_reasoning_payload("I could not decide.")

    def test_malformed_json_raises(self):
        with pytest.raises(ReasoningPayloadError):
            parse_reasoning_payload('{"selectedBlocks": [}')

    def test_non_object_raises(self):
        with pytest.raises(ReasoningPayloadError):
            parse_reasoning_payload(["hero"])


class TestRequiredFields:
    @pytest.mark.parametrize("field", ["selectedBlocks", "reasoning", "userJourney"])
    def test_missing_required_field_raises(self, field):
        payload = reasoning_payload()
        del payload[field]
        with pytest.raises(ReasoningPayloadError):
            parse_reasoning_payload(payload)

    def test_selected_blocks_must_be_list(self):
        with pytest.raises(ReasoningPayloadError):
            parse_reasoning_payload(reasoning_payload(selectedBlocks="hero"))

    def test_block_without_string_type_raises(self):
        payload = reasoning_payload()
        payload["selectedBlocks"].append({"type": 7})
        with pytest.raises(ReasoningPayloadError):
            parse_reasoning_payload(payload)


class TestConfidenceParsing:
    def test_dual_confidence(self):
        proposal = parse_reasoning_payload(reasoning_payload(intent=0.9, product_match=0.3))
        assert proposal.confidence == Confidence(intent=0.9, product_match=0.3)

    def test_legacy_single_number(self):
        proposal = parse_reasoning_payload(
            reasoning_payload(intent=None, product_match=None, confidence=0.7)
        )
        assert proposal.confidence == Confidence(intent=0.7, product_match=0.5)

    def test_absent_confidence_defaults(self):
        proposal = parse_reasoning_payload(reasoning_payload(intent=None, product_match=None))
        assert proposal.confidence == Confidence(intent=0.8, product_match=0.5)

    def test_partial_dual_confidence_defaults_missing_half(self):
        proposal = parse_reasoning_payload(reasoning_payload(intent=0.4, product_match=None))
        assert proposal.confidence == Confidence(intent=0.4, product_match=0.5)

    def test_out_of_range_values_clamped(self):
        proposal = parse_reasoning_payload(reasoning_payload(intent=1.7, product_match=-0.2))
        assert proposal.confidence == Confidence(intent=1.0, product_match=0.0)

    def test_non_numeric_confidence_rejected(self):
        with pytest.raises(ReasoningPayloadError):
            parse_reasoning_payload(reasoning_payload(intent="very", product_match=0.5))


class TestBlockNormalisation:
    @pytest.mark.parametrize("raw,expected", [
        ("hero", BlockType.HERO),
        ("  Hero_Block ", BlockType.HERO),
        ("FAQs", BlockType.FAQ),
        ("product-recommendations", BlockType.PRODUCT_RECOMMENDATION),
        ("reasoning", None),
        ("carousel-of-doom", None),
        (None, None),
    ])
    def test_normalize_block_type(self, raw, expected):
        assert normalize_block_type(raw) is expected

    def test_unknown_and_meta_blocks_dropped(self):
        proposal = parse_reasoning_payload(
            reasoning_payload(blocks=["hero", "reasoning", "mystery-block", "follow-up"])
        )
        assert [b.type for b in proposal.blocks] == [BlockType.HERO, BlockType.FOLLOW_UP]
        assert proposal.dropped_blocks == ["reasoning", "mystery-block"]

    def test_duplicates_collapsed_first_wins(self):
        proposal = parse_reasoning_payload(reasoning_payload(blocks=["hero", "faq", "hero-block"]))
        assert [b.type for b in proposal.blocks] == [BlockType.HERO, BlockType.FAQ]
        assert proposal.blocks[0].rationale == "because hero"

    def test_guidance_and_variant_kept(self):
        payload = reasoning_payload(blocks=["faq"])
        payload["selectedBlocks"][0]["variant"] = "compact"
        block = parse_reasoning_payload(payload).blocks[0]
        assert block.content_guidance == "write faq"
        assert block.variant == "compact"


class TestProducts:
    def test_products_parsed_and_sanitised(self):
        proposal = parse_reasoning_payload(reasoning_payload(
            selectedProducts=[
                {"id": "x5", "rationale": "quiet", "isPrimary": True, "contextType": "consumer"},
                {"id": "a3500", "contextType": "spaceship"},
                {"rationale": "no id"},
                "junk",
            ],
            productSelectionRationale="Quiet and powerful",
        ))
        assert [p.id for p in proposal.selected_products] == ["x5", "a3500"]
        assert proposal.selected_products[0].is_primary is True
        assert proposal.selected_products[1].context_type == "either"
        assert proposal.product_selection_rationale == "Quiet and powerful"


class TestResultShape:
    def test_camel_case_dump(self):
        result = ReasoningResult(
            selected_blocks=[BlockSelection(type=BlockType.FOLLOW_UP, priority=1)],
        )
        data = result.model_dump(by_alias=True, mode="json")
        assert data["selectedBlocks"][0] == {
            "type": "follow-up",
            "priority": 1,
            "rationale": "",
            "contentGuidance": "",
            "variant": None,
        }
        assert data["confidence"] == {"intent": 0.8, "productMatch": 0.5}
        assert data["userJourney"]["currentStage"] == "exploring"
        assert result.block_types == [BlockType.FOLLOW_UP]

    def test_priority_must_be_positive(self):
        with pytest.raises(ValueError):
            BlockSelection(type=BlockType.HERO, priority=0)
