"""
Signal taxonomy — weight tiers, weight labels and dwell-time boosts.

Tier VERY_HIGH (0.20) — direct purchase / comparison intent (search, add to cart)
Tier HIGH      (0.15) — strong research cues (product, recipe, support pages)
Tier MEDIUM    (0.10) — supporting browsing cues (accessories, financing)
Tier LOW       (0.05) — ambient interaction (generic pages, scrolls, navigation)

Weights are fixed at classification time. The only revision is the dwell-time
upgrade for page views, which is an absolute boost over the original base
weight: crossing 120s replaces the 60s boost, it does not add to it.
"""

# ---------------------------------------------------------------------------
# Weight tiers
# ---------------------------------------------------------------------------

LOW = 0.05
MEDIUM = 0.10
HIGH = 0.15
VERY_HIGH = 0.20

WEIGHT_TIERS: dict[str, float] = {
    "LOW": LOW,
    "MEDIUM": MEDIUM,
    "HIGH": HIGH,
    "VERY_HIGH": VERY_HIGH,
}

# ---------------------------------------------------------------------------
# Dwell-time boosts: (threshold_ms, absolute boost over base weight).
# Ordered highest threshold first; the first crossed threshold wins.
# ---------------------------------------------------------------------------

DWELL_BOOSTS: tuple[tuple[int, float], ...] = (
    (300_000, 0.08),
    (120_000, 0.06),
    (60_000, 0.04),
    (30_000, 0.02),
)

# Signal types whose weight may be revised by dwell time
DWELL_ELIGIBLE_TYPES: frozenset[str] = frozenset({"page_view"})


def clamp_unit(value: float) -> float:
    """Clamp any numeric confidence / weight into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


def get_weight_label(weight: float) -> str:
    """Human-readable label for a weight value."""
    if weight >= VERY_HIGH:
        return "Very High"
    if weight >= HIGH:
        return "High"
    if weight >= MEDIUM:
        return "Medium"
    return "Low"


def dwell_boost(dwell_ms: int) -> float:
    """Return the absolute boost for the highest dwell threshold crossed, 0.0 if none."""
    for threshold_ms, boost in DWELL_BOOSTS:
        if dwell_ms >= threshold_ms:
            return boost
    return 0.0


def boosted_weight(base_weight: float, dwell_ms: int) -> float:
    """Weight for a page view after ``dwell_ms`` on page.

    Computed from the base weight every time, so re-applying a later
    threshold replaces the previous boost. Capped at VERY_HIGH.
    """
    return round(min(VERY_HIGH, base_weight + dwell_boost(dwell_ms)), 4)
