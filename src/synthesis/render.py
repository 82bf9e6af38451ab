# src/synthesis/render.py — v1
"""Render the synthesis as Markdown text and as a JSON document."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from protoscope.citations.scorer import parse_published

if TYPE_CHECKING:
    from protoscope.core.models import Entity, ResolvedCitation, Section
    from protoscope.synthesis.models import Bridge, PatternSet

SECTION_TITLES = {
    "executive_summary": "Executive Summary",
    "overlooked": "What's Being Overlooked",
    "opportunities": "Opportunity Blueprints",
    "convergence": "Convergence Insight",
}


def render_markdown(
    sections: dict[str, Section],
    citations: list[ResolvedCitation],
    primary: Entity,
    secondary: Entity | None = None,
) -> str:
    """Markdown report with a numbered Sources list."""
    title = f"# Intelligence Brief: {primary.name}"
    if secondary is not None:
        title += f" and {secondary.name}"
    lines = [title, ""]

    for name, section in sections.items():
        lines.append(f"## {SECTION_TITLES.get(name, name.replace('_', ' ').title())}")
        lines.append("")
        lines.extend(render_content(section.content))
        lines.append("")

    if citations:
        lines.append("## Sources")
        lines.append("")
        for idx, citation in enumerate(citations, 1):
            lines.append(format_source(idx, citation))
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def render_json(
    run_id: str,
    sections: dict[str, Section],
    patterns: PatternSet,
    bridge: Bridge,
    citations: list[ResolvedCitation],
    selfcheck_passed: bool | None = None,
) -> str:
    """JSON document: sections, patterns, bridge, sources and meta."""
    output = {
        "sections": {name: section.content for name, section in sections.items()},
        "patterns": patterns.model_dump(),
        "bridge": bridge.model_dump(),
        "sources": [
            {"number": idx, **citation.model_dump(mode="json")}
            for idx, citation in enumerate(citations, 1)
        ],
        "meta": {
            "run_id": run_id,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "fallback_sections": [n for n, s in sections.items() if s.fallback],
            "selfcheck_pass": selfcheck_passed,
        },
    }
    return json.dumps(output, indent=2, ensure_ascii=False, default=str)


def render_content(content: Any) -> list[str]:
    """Markdown lines for str, list or dict section content."""
    if isinstance(content, str):
        return [content]
    if isinstance(content, list):
        lines: list[str] = []
        for item in content:
            if isinstance(item, dict) and "title" in item:
                lines.append(f"### {item['title']}")
                lines.append("")
                lines.append(str(item.get("body") or item.get("description") or ""))
                lines.append("")
            elif isinstance(item, dict):
                lines.append("- " + "; ".join(f"{k}: {v}" for k, v in item.items()))
            else:
                lines.append(f"- {item}")
        return lines or ["_No content._"]
    if isinstance(content, dict):
        lines = []
        for key, value in content.items():
            label = key.replace("_", " ").capitalize()
            if isinstance(value, (list, dict)):
                lines.append(f"**{label}**")
                lines.append("")
                lines.extend(render_content(value))
                lines.append("")
            else:
                lines.append(f"**{label}:** {value}")
        return lines
    return [str(content)]


def format_source(number: int, citation: ResolvedCitation) -> str:
    """Source line: [n] "Title", domain (year) (host/path)."""
    text = f'[{number}] "{citation.title or citation.domain}", {citation.domain}'
    published = parse_published(citation.published_at) if citation.published_at else None
    if published is not None:
        text += f" ({published.year})"
    parsed = urlparse(citation.url)
    path = parsed.path
    if path and path != "/":
        if len(path) > 50:
            path = f"{path[:20]}...{path[-20:]}"
        text += f" ({parsed.netloc}{path})"
    return text
