# src/synthesis/canonical.py — v1
"""Step-code canonicalisation ("NB-1", "nb_1", "Nb01" -> "NB1")."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from protoscope.core.models import StepResult

_DIGITS_RE = re.compile(r"\d+")
_CANONICAL_RE = re.compile(r"^NB\d+$")


def canonicalize_step_code(code: str) -> str | None:
    """Canonical form of a step code, or None when it carries no number."""
    if not code or not code.strip().upper().startswith("NB"):
        return None
    match = _DIGITS_RE.search(code)
    if match is None:
        return None
    return f"NB{int(match.group())}"


def is_canonical(code: str) -> bool:
    return bool(_CANONICAL_RE.match(code))


def is_placeholder_payload(payload: dict) -> bool:
    return payload.get("placeholder") is True or payload.get("execution_status") == "failed"


def canonical_results(results: list[StepResult]) -> tuple[dict[str, StepResult], list[str]]:
    """Map canonical step code -> usable result.

    Placeholder results and unparseable codes are skipped. When two
    results canonicalise to the same code, the most recently updated wins.

    Returns:
        (results by canonical code, raw step codes seen).
    """
    seen = [r.step_code for r in results]
    chosen: dict[str, StepResult] = {}
    for result in results:
        if result.placeholder or is_placeholder_payload(result.payload):
            continue
        code = canonicalize_step_code(result.step_code)
        if code is None:
            continue
        current = chosen.get(code)
        if current is None or result.updated_at > current.updated_at:
            chosen[code] = result
    ordered = sorted(chosen, key=lambda c: int(c[2:]))
    return {code: chosen[code] for code in ordered}, seen
