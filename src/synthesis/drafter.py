# src/synthesis/drafter.py — v1
"""Section drafting: executive summary, overlooked, opportunities, convergence.

Each section is drafted independently from patterns and the bridge. A
drafting error replaces only that section with its fixed fallback; an
empty result is a hard error (SectionEmptyError).
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from protoscope.core.models import Section
from protoscope.synthesis.errors import SectionEmptyError

if TYPE_CHECKING:
    from protoscope.core.models import Entity
    from protoscope.synthesis.models import Bridge, BridgeItem, Pattern, PatternSet

logger = logging.getLogger(__name__)

SECTION_NAMES = ("executive_summary", "overlooked", "opportunities", "convergence")

EXECUTIVE_SUMMARY_WORDS = 140
CONVERGENCE_WORDS = 120
BLUEPRINT_WORDS = 120
MIN_OPPORTUNITIES = 2
MAX_OPPORTUNITIES = 4
MAX_OVERLOOKED = 5

DEFAULT_PRESSURE = "operational efficiency pressures"
DEFAULT_TIMING = "current market conditions"

FALLBACK_BLUEPRINT_TITLES = (
    "Operational Excellence Initiative",
    "Strategic Partnership Alignment",
    "Resource Optimization Framework",
    "Capability Development Program",
)

FALLBACK_SECTIONS: dict[str, Any] = {
    "executive_summary": {
        "summary": (
            "This Intelligence Brief synthesizes findings from available research "
            "blocks to provide strategic insights."
        ),
        "key_themes": [
            "Market positioning analysis completed",
            "Competitive landscape assessment available",
            "Strategic opportunities identified",
        ],
        "confidence_score": 0.6,
        "data_quality": "Partial - based on available research blocks",
    },
    "overlooked": {
        "overlooked_aspects": [
            {
                "aspect": "Implementation Timeline Considerations",
                "why_overlooked": "Often underestimated in strategic planning",
                "potential_impact": "Medium",
            },
            {
                "aspect": "Resource Allocation Dependencies",
                "why_overlooked": "Cross-functional requirements not always clear",
                "potential_impact": "High",
            },
        ],
    },
    "opportunities": {
        "opportunities": [
            {
                "title": "Strategic Positioning Enhancement",
                "description": "Use available insights to strengthen market position",
                "priority": "High",
                "timeline": "3-6 months",
                "success_metrics": ["Market share growth", "Competitive advantage"],
            },
        ],
    },
    "convergence": {
        "convergence_points": [
            "Market dynamics and internal capabilities show alignment potential",
            "Strategic timing appears favorable for key initiatives",
            "Resource allocation can be optimized for maximum impact",
        ],
        "synthesis_confidence": 0.5,
        "next_steps": [
            "Validate insights with stakeholder input",
            "Develop detailed implementation plan",
            "Monitor key success metrics",
        ],
    },
}


def draft_sections(
    patterns: PatternSet,
    bridge: Bridge,
    primary: Entity,
    secondary: Entity | None = None,
) -> dict[str, Section]:
    """Draft the four sections.

    Raises:
        SectionEmptyError: If a drafted (or fallback) section is empty.
    """
    sections: dict[str, Section] = {}

    sections["executive_summary"] = _guarded(
        "executive_summary",
        lambda: draft_executive_summary(patterns, primary, secondary),
    )
    sections["overlooked"] = _guarded(
        "overlooked",
        lambda: draft_overlooked(patterns, bridge, primary, secondary),
    )
    sections["opportunities"] = _guarded(
        "opportunities",
        lambda: draft_opportunities(patterns, bridge),
    )
    sections["convergence"] = _guarded(
        "convergence",
        lambda: draft_convergence(patterns, primary, secondary),
    )

    for name, section in sections.items():
        section_ok(name, section.content)
    return sections


def fallback_section(name: str, reason: str) -> Section:
    return Section(
        name=name,
        content=copy.deepcopy(FALLBACK_SECTIONS[name]),
        fallback=True,
        fallback_reason=reason,
    )


def section_ok(name: str, value: Any) -> None:
    """Raise SectionEmptyError unless value has meaningful content."""
    if not _has_content(value):
        raise SectionEmptyError(name)


def draft_executive_summary(
    patterns: PatternSet, primary: Entity, secondary: Entity | None = None,
) -> str:
    pressure = summarize_pressure(_first_text(patterns.pressures, DEFAULT_PRESSURE))
    timing = _first_text(patterns.timing, DEFAULT_TIMING).rstrip(".")

    parts = [f"{primary.name} faces {pressure}."]
    if patterns.numeric_proofs:
        gap = f"The {patterns.numeric_proofs[0].text} performance gap"
    else:
        gap = "The performance gap"
    if patterns.executives:
        executive = patterns.executives[0]
        title = executive.detail.get("title", "Leadership")
        parts.append(
            f"{gap} creates urgency for {executive.text} ({title}), "
            "who is accountable for addressing this pressure."
        )
    else:
        parts.append(f"{gap} creates urgency for the leadership accountable for this pressure.")
    parts.append(
        f"Why now: {_lower_first(timing)} opens a time-sensitive window for action."
    )
    if secondary is not None:
        parts.append(
            f"Strategic alignment with {secondary.name} enables a coordinated response to these pressures."
        )
    return trim_to_word_limit(" ".join(parts), EXECUTIVE_SUMMARY_WORDS)


def draft_overlooked(
    patterns: PatternSet,
    bridge: Bridge,
    primary: Entity,
    secondary: Entity | None = None,
) -> list[str]:
    """Three to five "teams see X, but the real driver is Y" insights."""
    context = (
        f"within {secondary.name}'s operating environment"
        if secondary is not None
        else "in current market conditions"
    )
    items = [
        "Teams see quarterly performance pressures limiting strategic initiatives, "
        f"but the real driver is insufficient visibility into long-term value creation {context}."
    ]
    if secondary is not None and "health" in secondary.name.lower():
        items.append(
            "Teams see regulatory compliance as administrative burden, but the real driver "
            "is patient safety excellence that creates sustainable competitive moats."
        )
        items.append(
            "Teams see academic calendar constraints limiting partnership timing, but the real "
            "driver is research cycle synchronization that unlocks innovation pipelines."
        )
    else:
        items.append(
            "Teams see budget constraints limiting expansion, but the real driver is misaligned "
            "resource allocation across competing priorities that dilutes impact."
        )
        items.append(
            "Teams see external market pressures driving urgency, but the real driver is internal "
            "capability gaps that prevent rapid response to opportunities."
        )
    if patterns.levers:
        lever = _lower_first(patterns.levers[0].text.rstrip("."))
        items.append(
            f"Teams see {primary.name}'s capabilities as fixed, but the real driver is how "
            f"{lever} compounds over time."
        )
    items.append(
        "Teams see compliance requirements as operational overhead, but the real driver is "
        "competitive advantage through trust and reliability differentiation."
    )
    return items[:MAX_OVERLOOKED]


def draft_opportunities(patterns: PatternSet, bridge: Bridge) -> list[dict[str, str]]:
    """Two to four opportunity blueprints, bridge-derived first."""
    opportunities = [
        blueprint_from_bridge(item, patterns.timing) for item in bridge.items[:3]
    ]
    while len(opportunities) < MIN_OPPORTUNITIES:
        opportunities.append(fallback_blueprint(patterns, len(opportunities)))
    return opportunities[:MAX_OPPORTUNITIES]


def draft_convergence(
    patterns: PatternSet, primary: Entity, secondary: Entity | None = None,
) -> str:
    timing = _first_text(patterns.timing, DEFAULT_TIMING).rstrip(".")
    pressure = summarize_pressure(_first_text(patterns.pressures, DEFAULT_PRESSURE))
    target = f" and {secondary.name}" if secondary is not None else ""
    parts = [
        f"The convergence of {pressure} and {_lower_first(timing)} market timing creates a "
        f"critical decision window for {primary.name}{target}.",
        "Current operational gaps combined with regulatory requirements demand a coordinated "
        "strategic response.",
        "Leadership accountability enables rapid deployment of capability improvements "
        "across operational units.",
        "The intersection of these factors creates both urgency and opportunity for "
        "systematic value creation.",
    ]
    return trim_to_word_limit(" ".join(parts), CONVERGENCE_WORDS)


def blueprint_from_bridge(item: BridgeItem, timing: list[Pattern]) -> dict[str, str]:
    theme = item.theme.rstrip(".")
    parts = [
        f"Coordinate work on {_lower_first(theme)} to address identified capability gaps.",
        f"This approach {item.why_it_matters_to_target} through focused resource allocation.",
    ]
    if timing:
        parts.append(f"The window around {_lower_first(timing[0].text.rstrip('.'))} favours early action.")
    parts.append(
        "If this opportunity is missed, operational fragmentation accelerates and "
        "competitive positioning deteriorates."
    )
    return {
        "title": blueprint_title(theme),
        "body": trim_to_word_limit(" ".join(parts), BLUEPRINT_WORDS),
    }


def fallback_blueprint(patterns: PatternSet, index: int) -> dict[str, str]:
    title = FALLBACK_BLUEPRINT_TITLES[index % len(FALLBACK_BLUEPRINT_TITLES)]
    timing = _lower_first(_first_text(patterns.timing, DEFAULT_TIMING).rstrip("."))
    lever = _lower_first(_first_text(patterns.levers, "existing capabilities").rstrip("."))
    body = (
        f"Use {timing} to establish coordinated approaches with key stakeholders. "
        f"Build on {lever} to improve efficiency through focused resource allocation. "
        "If this opportunity is missed, efforts are duplicated and improvement windows close."
    )
    return {"title": title, "body": trim_to_word_limit(body, BLUEPRINT_WORDS)}


def blueprint_title(theme: str) -> str:
    words = theme.split()[:4]
    return " ".join(w.strip(",;:") for w in words).title() + " Initiative"


def summarize_pressure(text: str) -> str:
    lowered = text.lower()
    if "margin" in lowered:
        return "margin compression pressures"
    if "efficiency" in lowered:
        return "operational efficiency pressures"
    if "compliance" in lowered or "regulat" in lowered:
        return "regulatory compliance pressures"
    if "compet" in lowered:
        return "competitive pressures"
    return "operational pressures"


def trim_to_word_limit(text: str, limit: int) -> str:
    words = text.split()
    if len(words) <= limit:
        return text
    return " ".join(words[:limit]).rstrip(",;:") + "..."


def section_text(content: Any) -> str:
    """Flatten section content (str, list or dict) to plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        if "title" in content and "body" in content:
            return f"{content['title']}: {content['body']}"
        return "\n".join(section_text(v) for v in content.values() if _has_content(v))
    if isinstance(content, list):
        return "\n".join(section_text(item) for item in content if _has_content(item))
    if content is None:
        return ""
    return str(content)


def _guarded(name: str, draft) -> Section:
    try:
        return Section(name=name, content=draft())
    except Exception as e:
        logger.warning("Drafting %s failed, using fallback: %s", name, e)
        return fallback_section(name, f"{type(e).__name__}: {e}")


def _has_content(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, dict):
        return any(_has_content(v) for v in value.values())
    if isinstance(value, list):
        return any(_has_content(v) for v in value)
    return True


def _first_text(patterns: list[Pattern], default: str) -> str:
    return patterns[0].text if patterns else default


def _lower_first(text: str) -> str:
    if len(text) > 1 and text[1].isupper():
        return text
    return text[:1].lower() + text[1:]
