"""
Block constraint rules — declarative query -> block requirements.

Modules
-------
types     TriggerCondition, SequenceHint, BlockRule, MergedBlockRequirements
catalog   BLOCK_RULES, the static catalog (validated at import)
engine    evaluate_rules, order_blocks, build_block_list, format_content_guidance
"""

from services.recommender.rules.catalog import BLOCK_RULES, rule_by_id
from services.recommender.rules.engine import (
    build_block_list,
    evaluate_rules,
    format_content_guidance,
    order_blocks,
)
from services.recommender.rules.types import BlockRule, MergedBlockRequirements, RuleCatalogError

__all__ = [
    "BLOCK_RULES",
    "BlockRule",
    "MergedBlockRequirements",
    "RuleCatalogError",
    "build_block_list",
    "evaluate_rules",
    "format_content_guidance",
    "order_blocks",
    "rule_by_id",
]
