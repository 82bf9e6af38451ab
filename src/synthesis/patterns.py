# src/synthesis/patterns.py — v1
"""Pattern detection over canonical step payloads.

Collects pressure themes, capability levers, timing signals, executive
accountabilities and numeric proofs. Each kind reads specific steps:

    pressures   NB1 (positioning fields), NB3, NB4, NB8      limit 4
    levers      NB1 (innovation/model fields), NB8, NB13     limit 4
    timing      NB1 (notable_shifts), NB2, NB10, NB15        limit 6
    executives  NB3, NB11 (executives lists), NB1 (mission)  limit 3
    numeric     every step                                    limit 10

When no pressure and no lever is found, step-derived fallback themes
guarantee at least one of each.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator

from protoscope.synthesis.models import Pattern, PatternSet

logger = logging.getLogger(__name__)

PRESSURE_LIMIT = 4
LEVER_LIMIT = 4
TIMING_LIMIT = 6
EXECUTIVE_LIMIT = 3
NUMERIC_LIMIT = 10

MIN_TEXT_LENGTH = 20
PATTERN_TEXT_LIMIT = 200

SKIPPED_KEYS = frozenset({"citations", "sources", "source_id", "url"})

NB1_PRESSURE_FIELDS = frozenset({"market_positioning", "focus", "notable_shifts"})
NB1_LEVER_FIELDS = frozenset({"innovation", "collaboration", "business_model"})
NB1_TIMING_FIELDS = frozenset({"notable_shifts"})
NB1_EXECUTIVE_FIELDS = ("mission", "vision")

TEMPORAL_KEYWORDS = (
    "recent", "upcoming", "currently", "now", "future", "shift", "transition",
    "emerging", "new", "change", "evolving", "growing", "expanding", "launched",
    "planned",
)
_TEMPORAL_RE = re.compile(r"\b(" + "|".join(TEMPORAL_KEYWORDS) + r")\w*\b", re.IGNORECASE)

NUMERIC_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*%|(\d+(?:,\d{3})*(?:\.\d+)?)\s*(?:million|billion|thousand|M|B|K)\b",
    re.IGNORECASE,
)

_KEY_RE = re.compile(r"[^a-z0-9]+")
_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s")


def normalize_key(key: str) -> str:
    return _KEY_RE.sub("_", key.lower()).strip("_")


def iter_text_fields(node: Any, key: str = "") -> Iterator[tuple[str, str]]:
    """Yield (normalized field key, text) for every string leaf of a payload."""
    if isinstance(node, str):
        text = node.strip()
        if text:
            yield key, text
    elif isinstance(node, dict):
        for k, v in node.items():
            nk = normalize_key(str(k))
            if nk in SKIPPED_KEYS:
                continue
            yield from iter_text_fields(v, nk)
    elif isinstance(node, list):
        for item in node:
            yield from iter_text_fields(item, key)


def payload_text(payload: dict[str, Any]) -> str:
    """Summary of a payload, or all of its text joined."""
    summary = payload.get("summary")
    if isinstance(summary, str) and summary.strip():
        return summary.strip()
    return " ".join(text for _, text in iter_text_fields(payload))


def clip(text: str, limit: int = PATTERN_TEXT_LIMIT) -> str:
    """First sentence of text, capped at limit characters."""
    first = _SENTENCE_END_RE.split(text.strip(), maxsplit=1)[0]
    if len(first) <= limit:
        return first
    return first[:limit].rsplit(" ", 1)[0] + "..."


def detect_patterns(payloads: dict[str, dict[str, Any]], entity_name: str = "") -> PatternSet:
    """Detect patterns across canonical payloads (keyed "NB1".."NB15")."""
    numeric = collect_numeric_proofs(payloads)
    pressures = rank_themes(collect_pressure_themes(payloads), numeric, PRESSURE_LIMIT)
    levers = rank_themes(collect_capability_levers(payloads), numeric, LEVER_LIMIT)

    if not pressures and not levers:
        pressures = fallback_pressures(payloads)
        levers = fallback_levers(payloads)
        logger.info("No pressures or levers detected; using step-derived fallbacks")

    patterns = PatternSet(
        pressures=pressures,
        levers=levers,
        timing=_dedupe(collect_timing_signals(payloads), TIMING_LIMIT),
        executives=collect_executives(payloads, entity_name),
        numeric_proofs=numeric,
    )
    logger.debug("Pattern detection: %s", patterns.counts())
    return patterns


def collect_pressure_themes(payloads: dict[str, dict[str, Any]]) -> list[Pattern]:
    themes: list[Pattern] = []
    for key, text in iter_text_fields(payloads.get("NB1", {})):
        if key in NB1_PRESSURE_FIELDS:
            themes.append(Pattern(kind="pressure", text=clip(text), confidence=0.7, step_codes=["NB1"]))
    for code in ("NB3", "NB4", "NB8"):
        themes.extend(_long_fields(payloads.get(code, {}), "pressure", code, 0.6))
    return themes


def collect_capability_levers(payloads: dict[str, dict[str, Any]]) -> list[Pattern]:
    levers: list[Pattern] = []
    for key, text in iter_text_fields(payloads.get("NB1", {})):
        if key in NB1_LEVER_FIELDS:
            levers.append(Pattern(kind="lever", text=clip(text), confidence=0.7, step_codes=["NB1"]))
    for code in ("NB8", "NB13"):
        levers.extend(_long_fields(payloads.get(code, {}), "lever", code, 0.6))
    return levers


def collect_timing_signals(payloads: dict[str, dict[str, Any]]) -> list[Pattern]:
    signals: list[Pattern] = []
    for key, text in iter_text_fields(payloads.get("NB1", {})):
        if key in NB1_TIMING_FIELDS:
            signals.append(Pattern(kind="timing", text=clip(text), confidence=0.7, step_codes=["NB1"]))
    for code in ("NB2", "NB10", "NB15"):
        for _, text in iter_text_fields(payloads.get(code, {})):
            if _TEMPORAL_RE.search(text):
                signals.append(Pattern(kind="timing", text=clip(text), confidence=0.6, step_codes=[code]))
    return signals


def collect_executives(payloads: dict[str, dict[str, Any]], entity_name: str = "") -> list[Pattern]:
    executives: list[Pattern] = []
    for code in ("NB3", "NB11"):
        listed = payloads.get(code, {}).get("executives")
        if not isinstance(listed, list):
            continue
        for item in listed:
            if not isinstance(item, dict) or not str(item.get("name", "")).strip():
                continue
            executives.append(Pattern(
                kind="executive",
                text=str(item["name"]).strip(),
                confidence=0.7,
                step_codes=[code],
                detail={
                    "title": str(item.get("title") or "Leadership"),
                    "accountability": str(
                        item.get("accountability") or item.get("responsibility") or "Strategic oversight"
                    ),
                },
            ))

    nb1 = payloads.get("NB1", {})
    for field in NB1_EXECUTIVE_FIELDS:
        value = nb1.get(field)
        if isinstance(value, str) and value.strip():
            executives.append(Pattern(
                kind="executive",
                text=entity_name or "Leadership",
                confidence=0.5,
                step_codes=["NB1"],
                detail={"title": "Organization", "accountability": clip(value)},
            ))
            break

    unique: dict[str, Pattern] = {}
    for executive in executives:
        unique.setdefault(executive.text.lower(), executive)
    return list(unique.values())[:EXECUTIVE_LIMIT]


def collect_numeric_proofs(payloads: dict[str, dict[str, Any]]) -> list[Pattern]:
    proofs: list[Pattern] = []
    seen: set[str] = set()
    for code, payload in payloads.items():
        for _, text in iter_text_fields(payload):
            for match in NUMERIC_RE.finditer(text):
                value = match.group(0).strip()
                if value.lower() in seen:
                    continue
                seen.add(value.lower())
                proofs.append(Pattern(
                    kind="numeric",
                    text=value,
                    confidence=0.6,
                    step_codes=[code],
                    detail={"description": clip(text)},
                ))
                if len(proofs) >= NUMERIC_LIMIT:
                    return proofs
    return proofs


def rank_themes(themes: list[Pattern], numeric: list[Pattern], limit: int) -> list[Pattern]:
    """De-duplicate, boost themes backed by a number, keep the top `limit`."""
    values = [p.text.lower() for p in numeric]
    ranked: list[Pattern] = []
    for theme in _dedupe(themes, len(themes)):
        lowered = theme.text.lower()
        if any(v in lowered for v in values):
            theme = theme.model_copy(update={"confidence": min(1.0, round(theme.confidence + 0.1, 2))})
        ranked.append(theme)
    ranked.sort(key=lambda p: p.confidence, reverse=True)
    return ranked[:limit]


def fallback_pressures(payloads: dict[str, dict[str, Any]]) -> list[Pattern]:
    themes = [
        Pattern(
            kind="pressure",
            text=f"Business Pressure from {code}",
            confidence=0.5,
            step_codes=[code],
            detail={"signal": payload_text(payloads[code])[:PATTERN_TEXT_LIMIT] + "..."},
        )
        for code in ("NB1", "NB3", "NB4")
        if code in payloads and payload_text(payloads[code])
    ]
    if not themes:
        themes.append(Pattern(
            kind="pressure",
            text="Market Evolution Pressure",
            confidence=0.3,
            detail={"signal": "Competitive landscape changes require strategic adaptation"},
        ))
    return themes


def fallback_levers(payloads: dict[str, dict[str, Any]]) -> list[Pattern]:
    levers = [
        Pattern(
            kind="lever",
            text=f"Capability Opportunity from {code}",
            confidence=0.5,
            step_codes=[code],
            detail={"impact": payload_text(payloads[code])[:PATTERN_TEXT_LIMIT] + "..."},
        )
        for code in ("NB8", "NB13")
        if code in payloads and payload_text(payloads[code])
    ]
    if not levers:
        levers.append(Pattern(
            kind="lever",
            text="Operational Excellence",
            confidence=0.3,
            detail={"impact": "Enhanced efficiency and competitive positioning"},
        ))
    return levers


def _long_fields(payload: dict[str, Any], kind: str, code: str, confidence: float) -> list[Pattern]:
    return [
        Pattern(kind=kind, text=clip(text), confidence=confidence, step_codes=[code])
        for _, text in iter_text_fields(payload)
        if len(text) > MIN_TEXT_LENGTH
    ]


def _dedupe(patterns: list[Pattern], limit: int) -> list[Pattern]:
    unique: dict[str, Pattern] = {}
    for pattern in patterns:
        key = pattern.text.lower()
        if key in unique:
            for code in pattern.step_codes:
                if code not in unique[key].step_codes:
                    unique[key].step_codes.append(code)
            continue
        unique[key] = pattern
    return list(unique.values())[:limit]
