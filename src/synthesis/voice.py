# src/synthesis/voice.py — v1
"""Deterministic voice enforcement for drafted sections.

Removes casual asides, replaces consultant-speak and execution terms,
and splits sentences longer than 25 words at a conjunction. Every
string inside a section (lists and dicts included) is rewritten.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from protoscope.core.models import Section
from protoscope.synthesis.drafter import section_text
from protoscope.synthesis.models import VoiceReport

logger = logging.getLogger(__name__)

MAX_SENTENCE_WORDS = 25
LONG_SENTENCE_SHARE = 0.2

_ASIDE_RE = re.compile(
    r"\b(?:to be honest|let me be clear|frankly|honestly|basically|clearly|obviously|"
    r"essentially|literally),?\s+|\blook,\s+",
    re.IGNORECASE,
)

CONSULTANT_REPLACEMENTS: dict[str, str] = {
    "synergy": "collaboration",
    "leverage": "use",
    "strategic alignment": "coordination",
    "roadmap": "plan",
    "workstream": "project",
    "best practices": "proven methods",
    "low-hanging fruit": "easy wins",
    "circle back": "follow through",
    "touch base": "connect",
    "deep dive": "detailed analysis",
    "drill down": "examine",
    "move the needle": "make progress",
    "paradigm shift": "major change",
    "disruptive": "innovative",
    "game-changer": "significant advantage",
    "game changer": "significant advantage",
    "thought leadership": "expertise",
    "actionable insights": "useful findings",
    "scalable solutions": "adaptable approaches",
    "enablement": "support",
    "optimize": "improve",
}

EXECUTION_REPLACEMENTS: dict[str, str] = {
    r"emails?": "communication",
    r"schedul(?:e|es|ing)": "timing",
    r"sequences?": "approach",
    r"cadences?": "frequency",
    r"cold calls?": "connection",
    r"calls?|calling": "conversation",
    r"DM": "message",
    r"direct messages?": "message",
    r"LinkedIn": "professional network",
    r"outreach": "connection",
    r"follow[- ]ups?": "next conversation",
    r"scripts?": "framework",
    r"templates?": "structure",
    r"automation|automated": "systematic approach",
}

CASE_SENSITIVE_TERMS = frozenset({"DM"})

_BREAK_RE = re.compile(r",?\s+(?:and|but|while|because|since|although)\s+", re.IGNORECASE)
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")
_NUMBER_RE = re.compile(r"\b\d+(?:,\d{3})*(?:\.\d+)?\s*(?:%|percent|million|billion|thousand)?")


def _compile(table: dict[str, str], literal: bool) -> list[tuple[re.Pattern[str], str]]:
    compiled = []
    for pattern, replacement in table.items():
        body = re.escape(pattern) if literal else f"(?:{pattern})"
        flags = 0 if pattern in CASE_SENSITIVE_TERMS else re.IGNORECASE
        compiled.append((re.compile(rf"\b{body}\b", flags), replacement))
    return compiled


_CONSULTANT_RULES = _compile(CONSULTANT_REPLACEMENTS, literal=True)
_EXECUTION_RULES = _compile(EXECUTION_REPLACEMENTS, literal=False)


def apply_voice_enforcement(sections: dict[str, Section]) -> tuple[dict[str, Section], VoiceReport]:
    """Rewrite every section and report the checks that fired.

    Returns:
        (rewritten sections, report). Input sections are not mutated.
    """
    rewritten: dict[str, Section] = {}
    report = VoiceReport()
    scores: list[int] = []

    for name, section in sections.items():
        text = section_text(section.content)
        checks = {
            "casual_asides": check_casual_asides(text),
            "ban_list": check_terms(text, _CONSULTANT_RULES),
            "execution_details": check_terms(text, _EXECUTION_RULES),
            "sentence_breath": check_sentence_breath(text),
            "concrete_numbers": check_concrete_numbers(text, name),
        }
        report.checks[name] = checks

        passes: list[tuple[str, str, Callable[[str], str]]] = [
            ("casual_asides", "Removed casual asides", remove_casual_asides),
            ("ban_list", "Removed consultant-speak terms", lambda s: _replace(s, _CONSULTANT_RULES)),
            ("execution_details", "Removed execution details", lambda s: _replace(s, _EXECUTION_RULES)),
            ("sentence_breath", "Fixed sentence length", split_long_sentences),
        ]
        content = section.content
        for check_name, label, rewrite in passes:
            if checks[check_name]["passed"]:
                continue
            content = map_strings(content, rewrite)
            report.rewrites_applied.append(f"{name}: {label}")

        passed = sum(1 for c in checks.values() if c["passed"])
        scores.append(round(passed / len(checks) * 100))
        rewritten[name] = section.model_copy(update={"content": content})

    report.score = round(sum(scores) / len(scores)) if scores else 100
    logger.debug("Voice enforcement: score=%d rewrites=%d", report.score, len(report.rewrites_applied))
    return rewritten, report


def map_strings(value: Any, fn: Callable[[str], str]) -> Any:
    """Apply fn to every string leaf of a str/list/dict value."""
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, list):
        return [map_strings(v, fn) for v in value]
    if isinstance(value, dict):
        return {k: map_strings(v, fn) for k, v in value.items()}
    return value


# --- Checks ---


def check_casual_asides(text: str) -> dict[str, Any]:
    found = _ASIDE_RE.findall(text)
    return {"passed": not found, "found": len(found), "examples": [f.strip() for f in found[:3]]}


def check_terms(text: str, rules: list[tuple[re.Pattern[str], str]]) -> dict[str, Any]:
    found = sorted({m.group(0).lower() for pattern, _ in rules for m in pattern.finditer(text)})
    return {"passed": not found, "found_terms": found}


def check_sentence_breath(text: str) -> dict[str, Any]:
    counts = [len(s.split()) for s in _sentences(text)]
    if not counts:
        return {"passed": True, "average_words": 0.0, "max_words": 0, "long_sentences": 0}
    average = sum(counts) / len(counts)
    long_count = sum(1 for c in counts if c > MAX_SENTENCE_WORDS)
    return {
        "passed": average <= MAX_SENTENCE_WORDS and long_count <= len(counts) * LONG_SENTENCE_SHARE,
        "average_words": round(average, 1),
        "max_words": max(counts),
        "long_sentences": long_count,
    }


def check_concrete_numbers(text: str, section_name: str) -> dict[str, Any]:
    """Executive summary and opportunities should carry at least one number."""
    found = len(_NUMBER_RE.findall(text))
    required = 1 if section_name in ("executive_summary", "opportunities") else 0
    return {"passed": found >= required, "found": found, "required": required}


# --- Rewrites ---


def remove_casual_asides(text: str) -> str:
    text = _ASIDE_RE.sub("", text)
    text = re.sub(r"([.!?]\s+)([a-z])", lambda m: m.group(1) + m.group(2).upper(), text)
    text = re.sub(r"\s+", " ", text).strip()
    return text[:1].upper() + text[1:]


def split_long_sentences(text: str) -> str:
    out: list[str] = []
    for sentence in _sentences(text):
        if len(sentence.split()) > MAX_SENTENCE_WORDS:
            match = _BREAK_RE.search(sentence)
            if match:
                head = sentence[: match.start()].rstrip(",;")
                tail = sentence[match.end():]
                out.append(head + ".")
                out.append(tail[:1].upper() + tail[1:])
                continue
        out.append(sentence)
    return " ".join(out)


def _replace(text: str, rules: list[tuple[re.Pattern[str], str]]) -> str:
    for pattern, replacement in rules:
        text = pattern.sub(lambda m, r=replacement: _match_case(m.group(0), r), text)
    return text


def _match_case(original: str, replacement: str) -> str:
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def _sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_RE.split(text.strip()) if s.strip()]
