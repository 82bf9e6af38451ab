# src/synthesis/bridge.py — v1
"""Target-relevance bridge: why the primary entity's themes matter to the target."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from protoscope.synthesis.models import Bridge, BridgeItem, PatternSet
from protoscope.synthesis.patterns import iter_text_fields

if TYPE_CHECKING:
    from protoscope.core.models import Entity

logger = logging.getLogger(__name__)

BRIDGE_LIMIT = 5
SINGLE_ENTITY_RATIONALE = "Single-company analysis: no target bridge required"

_TOKEN_RE = re.compile(r"[a-z][a-z0-9]+")
_STOPWORDS = frozenset({
    "about", "across", "after", "also", "among", "and", "are", "been", "between",
    "both", "but", "can", "for", "from", "has", "have", "into", "its", "more",
    "most", "not", "over", "such", "than", "that", "the", "their", "them", "there",
    "these", "they", "this", "those", "through", "under", "was", "were", "which",
    "while", "will", "with", "within",
})


def tokens(text: str) -> set[str]:
    return {t for t in _TOKEN_RE.findall(text.lower()) if len(t) > 3 and t not in _STOPWORDS}


def build_target_bridge(
    patterns: PatternSet,
    primary: Entity,
    secondary: Entity | None = None,
    payloads: dict[str, dict[str, Any]] | None = None,
) -> Bridge:
    """Rank pressure and lever themes by relevance to the secondary entity.

    Never raises: an internal error yields a minimal bridge.
    """
    if secondary is None:
        return Bridge(items=[], rationale=[SINGLE_ENTITY_RATIONALE])

    try:
        if not primary.name.strip():
            raise ValueError("Source entity name is required for bridge analysis")

        profile = target_profile(secondary, payloads or {})
        items: list[BridgeItem] = []
        for theme in [*patterns.pressures, *patterns.levers]:
            theme_tokens = tokens(theme.text)
            matched = sorted(theme_tokens & profile)
            overlap = len(matched) / len(theme_tokens) if theme_tokens else 0.0
            score = round(0.5 * theme.confidence + 0.5 * min(1.0, overlap * 2), 2)
            items.append(BridgeItem(
                theme=theme.text,
                why_it_matters_to_target=_why_it_matters(secondary.name, matched),
                relevance_score=score,
            ))

        items.sort(key=lambda i: i.relevance_score, reverse=True)
        top = items[:BRIDGE_LIMIT]
        return Bridge(
            items=top,
            rationale=[f"Target bridge analysis completed with {len(top)} items"],
        )
    except Exception as e:
        logger.warning("Bridge analysis failed: %s", e)
        return Bridge(items=[], rationale=[f"Bridge analysis failed: {str(e)[:100]}"])


def target_profile(target: Entity, payloads: dict[str, dict[str, Any]]) -> set[str]:
    """Vocabulary describing the target: its sector plus payload text mentioning it."""
    profile = tokens(" ".join(part for part in (target.sector, target.name) if part and part.strip()))
    name = target.name.lower()
    for payload in payloads.values():
        for _, text in iter_text_fields(payload):
            if name and name in text.lower():
                profile |= tokens(text)
    return profile


def _why_it_matters(target_name: str, matched: list[str]) -> str:
    if matched:
        return f"addresses {target_name}'s exposure to {', '.join(matched[:3])}"
    return f"positions {target_name} to respond to the same market forces"
