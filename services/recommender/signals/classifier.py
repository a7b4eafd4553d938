"""
Signal classifier — raw interaction events -> typed Signals.

Input shape (from the capture layer):
    {"type": "page_view" | "click" | "search" | "scroll" | "referrer"
             | "video_play" | "video_complete" | "time_on_page" | ...,
     "data": {...free-form context...}}

Flow per event type:
  page_view  -> ordered PAGE_CLASSIFIERS over "url path title h1", first match wins
  click      -> ordered CLICK_CLASSIFIERS over "text ariaLabel action className href";
                no match + navigable href -> destination classified as a synthetic
                page view, emitted as nav_to_<category> at LOW weight
  search     -> always VERY_HIGH
  referrer   -> search engine / external / direct
  scroll, time_on_page, video_* -> fixed categories, weight by milestone
  anything else -> generic LOW signal so no event is ever lost

classify() is pure: no I/O, no shared state. Storing and sending the
resulting Signal is the caller's job.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any
from urllib.parse import parse_qs, urlparse

from services.recommender.signals.patterns import (
    CLICK_CLASSIFIERS,
    ENGAGED_TIME_MS,
    GENERIC_CLICK,
    GENERIC_PAGE,
    MODEL_NAMES,
    MODEL_PATTERN,
    PAGE_CLASSIFIERS,
    PRODUCT_MAPPINGS,
    PRODUCT_URL_PATTERN,
    SCROLL_DEEP_PERCENT,
    SEARCH_ENGINES,
    ClassifierSpec,
)
from services.recommender.signals.taxonomy import HIGH, LOW, MEDIUM, VERY_HIGH
from services.recommender.signals.types import Signal

logger = logging.getLogger(__name__)

_PAGE_FIELDS = ("url", "path", "title", "h1")
_CLICK_FIELDS = ("text", "ariaLabel", "action", "className", "href")

# Event types with a fixed category (weight decided per type below)
_VIDEO_TYPES = {"video_play": MEDIUM, "video_complete": HIGH}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def strip_empty(value: Any) -> Any:
    """Recursively drop None / "" values from dicts and lists.

    0 and False are kept. Containers left empty after stripping are dropped
    by their parent.
    """
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            cleaned = strip_empty(item)
            if _is_empty(cleaned):
                continue
            out[key] = cleaned
        return out
    if isinstance(value, (list, tuple)):
        return [cleaned for cleaned in (strip_empty(v) for v in value) if not _is_empty(cleaned)]
    return value


def _is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, (dict, list)) and len(value) == 0


def _new_id(event_type: str, timestamp: int) -> str:
    return f"{event_type}_{timestamp}_{uuid.uuid4().hex[:8]}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _joined(data: dict[str, Any], fields: tuple[str, ...]) -> str:
    return " ".join(str(data[f]) for f in fields if data.get(f) not in (None, ""))


def _first_match(specs: list[ClassifierSpec], text: str) -> ClassifierSpec | None:
    for spec in specs:
        if spec["pattern"].search(text):
            return spec
    return None


def product_from_url(url: str) -> str | None:
    """Map a /shop/blenders/<slug> URL to a product name, if recognised."""
    match = PRODUCT_URL_PATTERN.search(url or "")
    if not match:
        return None
    slug = match.group(1).lower()
    for key in sorted(PRODUCT_MAPPINGS, key=len, reverse=True):
        if key in slug:
            return PRODUCT_MAPPINGS[key]
    return None


def models_in_text(text: str) -> list[str]:
    """Distinct product model names mentioned in free text, in order of appearance."""
    seen: list[str] = []
    for match in MODEL_PATTERN.finditer(text or ""):
        name = MODEL_NAMES[match.group(1).lower()]
        if name not in seen:
            seen.append(name)
    return seen


def _build(
    event_type: str,
    spec_category: str,
    label: str,
    weight: float,
    data: dict[str, Any],
    timestamp: int | None,
    product: str | None = None,
    compared: list[str] | None = None,
) -> Signal:
    ts = timestamp if timestamp is not None else _now_ms()
    return Signal(
        id=_new_id(event_type, ts),
        type=event_type,
        category=spec_category,
        label=label,
        weight=weight,
        timestamp=ts,
        data=data,
        product=product,
        compared_products=tuple(compared or ()),
    )


# ---------------------------------------------------------------------------
# Per-type classification
# ---------------------------------------------------------------------------

def _classify_page(data: dict[str, Any]) -> tuple[ClassifierSpec, str | None]:
    text = _joined(data, _PAGE_FIELDS)
    spec = _first_match(PAGE_CLASSIFIERS, text) or GENERIC_PAGE
    product = None
    if spec["category"] in ("product", "reconditioned"):
        product = product_from_url(data.get("url") or data.get("path") or "")
        if product is None and data.get("h1"):
            product = _product_from_heading(str(data["h1"]))
    return spec, product


def _product_from_heading(h1: str) -> str | None:
    """Product name from a product page heading: strip marks, keep text before ' - '."""
    name = h1.replace("®", "").replace("™", "").split(" - ")[0].strip()
    return name or None


def _classify_click(
    data: dict[str, Any], timestamp: int | None
) -> Signal:
    text = _joined(data, _CLICK_FIELDS)
    spec = _first_match(CLICK_CLASSIFIERS, text)
    if spec is not None:
        return _build("click", spec["category"], spec["label"], spec["weight"], data, timestamp,
                      product=data.get("product"))

    href = data.get("href")
    if href and not str(href).startswith(("#", "javascript:", "mailto:", "tel:")):
        target, product = _classify_page({"url": href})
        if target is not GENERIC_PAGE:
            return _build(
                "click",
                f"nav_to_{target['category']}",
                f"Navigated: {target['label']}",
                LOW,
                data,
                timestamp,
                product=product,
            )

    return _build("click", GENERIC_CLICK["category"], GENERIC_CLICK["label"],
                  GENERIC_CLICK["weight"], data, timestamp)


def _classify_search(data: dict[str, Any], timestamp: int | None) -> Signal:
    query = str(data.get("query") or "").strip()
    models = models_in_text(query)
    return _build(
        "search",
        "search",
        f'Searched "{query}"' if query else "Searched",
        VERY_HIGH,
        data,
        timestamp,
        product=models[0] if len(models) == 1 else None,
        compared=models if len(models) >= 2 else None,
    )


def _classify_referrer(data: dict[str, Any], timestamp: int | None) -> Signal:
    referrer = str(data.get("referrer") or "")
    domain = str(data.get("domain") or "")
    search_query = data.get("searchQuery")

    if referrer and not domain:
        parsed = urlparse(referrer)
        domain = parsed.netloc.lower()
        for engine, params in SEARCH_ENGINES.items():
            if engine in domain:
                qs = parse_qs(parsed.query)
                for param in params:
                    if qs.get(param):
                        search_query = qs[param][0]
                        break
                break

    enriched = {**data}
    if domain:
        enriched["domain"] = domain
    if search_query:
        enriched["searchQuery"] = search_query

    if not domain:
        return _build("referrer", "direct", "Arrived directly", LOW, enriched, timestamp)
    if any(engine in domain for engine in SEARCH_ENGINES):
        label = f'Arrived from search "{search_query}"' if search_query else "Arrived from search"
        return _build("referrer", "search_referrer", label, HIGH, enriched, timestamp)
    return _build("referrer", "external_referrer", f"Arrived from {domain}", MEDIUM,
                  enriched, timestamp)


def _as_int(value: Any) -> int:
    """Lenient numeric read of free-form event context; unparsable -> 0."""
    try:
        return int(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


def _classify_scroll(data: dict[str, Any], timestamp: int | None) -> Signal:
    depth = _as_int(data.get("depth"))
    weight = MEDIUM if depth >= SCROLL_DEEP_PERCENT else LOW
    return _build("scroll", "scroll_depth", f"Scrolled {depth}% of page", weight, data, timestamp)


def _classify_time_on_page(data: dict[str, Any], timestamp: int | None) -> Signal:
    duration = _as_int(data.get("duration"))
    weight = MEDIUM if duration >= ENGAGED_TIME_MS else LOW
    return _build("time_on_page", "engaged_time", f"Spent {duration // 1000}s on page",
                  weight, data, timestamp)


# ---------------------------------------------------------------------------
# Public entrypoint
# ---------------------------------------------------------------------------

def classify(raw_event: dict[str, Any], timestamp: int | None = None) -> Signal:
    """
    Classify one raw event into a Signal.

    Args:
        raw_event: {"type": str, "data": dict}. Missing type -> "unknown".
        timestamp: Epoch ms override (tests, replays). Defaults to now.

    Returns:
        A Signal. Never raises for unknown event types.
    """
    event_type = str(raw_event.get("type") or "unknown")
    data = strip_empty(dict(raw_event.get("data") or {}))

    if event_type == "page_view":
        spec, product = _classify_page(data)
        return _build("page_view", spec["category"], spec["label"], spec["weight"], data,
                      timestamp, product=product)
    if event_type == "click":
        return _classify_click(data, timestamp)
    if event_type == "search":
        return _classify_search(data, timestamp)
    if event_type == "referrer":
        return _classify_referrer(data, timestamp)
    if event_type == "scroll":
        return _classify_scroll(data, timestamp)
    if event_type == "time_on_page":
        return _classify_time_on_page(data, timestamp)
    if event_type in _VIDEO_TYPES:
        verb = "Watched" if event_type == "video_complete" else "Played"
        title = data.get("title") or "video"
        return _build(event_type, "video", f"{verb} {title}", _VIDEO_TYPES[event_type], data,
                      timestamp, product=data.get("product"))

    logger.debug("Unknown signal type %r classified as generic", event_type)
    return _build(event_type, "other", f"Unclassified {event_type} event", LOW, data, timestamp)
