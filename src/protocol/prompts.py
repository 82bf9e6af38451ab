# src/protocol/prompts.py — v1
"""Prompt construction for protocol steps.

Builds the retrieval query, the generation system prompt and the user
prompt (market intelligence + company documentation), plus the feedback
block appended when a response fails schema validation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from protoscope.core.models import Entity
    from protoscope.protocol.steps import StepDefinition

COMPANY_PLACEHOLDER = "[company name]"
VALIDATION_ERRORS_HEADER = "=== VALIDATION ERRORS ==="

_JSON_SHAPE = (
    "You must respond with valid JSON that includes:\n"
    "- summary: string (comprehensive analysis summary)\n"
    "- key_points: array of strings (specific insights)\n"
    "- implications: array of strings (strategic implications, optional)\n"
    "- citations: array of objects with source_id, quote, and url\n"
    "\nBe precise, analytical, and comprehensive. Include citations for all facts and findings."
)


def build_query(step: StepDefinition, primary: Entity, secondary: Entity | None = None) -> str:
    """Retrieval query with the company placeholder substituted.

    A secondary entity turns the query comparative ("A and B").
    """
    name = primary.name
    if secondary is not None:
        name = f"{primary.name} and {secondary.name}"
    return step.query_template.replace(COMPANY_PLACEHOLDER, name)


def build_system_prompt(step: StepDefinition) -> str:
    return (
        f"You are an expert business analyst executing the {step.objective} analysis.\n"
        f"{step.system_prompt}\n\n"
        f"{_JSON_SHAPE}"
    )


def build_user_prompt(
    retrieval_content: str,
    chunks: list[dict[str, Any]],
    primary: Entity,
    secondary: Entity | None = None,
) -> str:
    """Combine retrieval output and context documents into the user prompt."""
    parts: list[str] = ["# Company Analysis Context\n"]

    parts.append("## Primary Company Information")
    parts.extend(_entity_lines(primary))

    if secondary is not None:
        parts.append("\n## Target Company Information")
        parts.extend(_entity_lines(secondary))
        parts.append(
            f"\n**Analysis Focus**: Examine relationship dynamics, competitive positioning, "
            f"and strategic relevance between {primary.name} and {secondary.name}."
        )

    parts.append("\n## Current Market Intelligence")
    parts.append(retrieval_content.strip() or "No current market data available.")

    parts.append("\n## Company Documentation")
    documented = False
    for idx, chunk in enumerate(chunks, 1):
        text = str(chunk.get("text", "")).strip()
        if not text:
            continue
        title = chunk.get("source") or "Unknown Source"
        parts.append(f"\n### [Source ID: {idx}] {title}\n{text}\n---")
        documented = True
    if not documented:
        parts.append("No company documentation available.")

    parts.append("\n## Analysis Request")
    parts.append(
        "Based on the above current market intelligence and company documentation, "
        "provide a structured JSON analysis. Include specific citations with source IDs "
        "for all claims and findings."
    )
    return "\n".join(parts)


def append_validation_errors(user_prompt: str, errors: list[str]) -> str:
    """Append the validation feedback block used on regeneration."""
    lines = "\n".join(f"- {e}" for e in errors)
    return (
        f"{user_prompt}\n\n{VALIDATION_ERRORS_HEADER}\n"
        "Your previous response had the following validation errors:\n"
        f"{lines}\n"
        "Please provide a corrected JSON response that addresses these issues."
    )


def _entity_lines(entity: Entity) -> list[str]:
    lines = [f"- Name: {entity.name}"]
    if entity.website:
        lines.append(f"- Website: {entity.website}")
    if entity.sector:
        lines.append(f"- Sector: {entity.sector}")
    return lines
