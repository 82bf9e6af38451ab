# src/synthesis/selfcheck.py — v1
"""Self-check validation of the final section text.

Rules and severities:

    execution_leak       error   tactical steps or channel details
    consultant_speak     warn    jargon that survived voice enforcement
    unsupported_claims   error   strong assertion with no number, year or [n]
    repetition           warn    opportunity pairs with Jaccard similarity > 0.6
    citation_quality     error   "Source N" placeholders, empty [] brackets
    citation_quality     warn    bare URLs

The report passes when no error-severity violation is present.
"""

from __future__ import annotations

import logging
import re

from protoscope.core.models import Section
from protoscope.synthesis.drafter import section_text
from protoscope.synthesis.models import SelfCheckReport, SelfCheckViolation

logger = logging.getLogger(__name__)

REPETITION_THRESHOLD = 0.6
MIN_OPPORTUNITY_CHARS = 50

EXECUTION_LEAK_TERMS = (
    "email", "schedule", "cadence", "outreach", "step 1", "step 2", "step 3",
    "script", "playbook", "call the", "LinkedIn", "first,", "then,", "finally",
    "weekly plan", "sequence", "reach out", "contact them", "send a", "follow up",
)

CONSULTANT_TERMS = (
    "synergy", "strategic alignment", "roadmap", "workstream", "enablement",
    "leverage", "optimize", "low-hanging fruit", "best practices", "paradigm shift",
    "game changer", "move the needle", "circle back", "touch base", "deep dive",
    "drill down",
)

STRONG_CLAIM_RE = re.compile(
    r"will drive|proves|dominates|guarantees|ensures|definitely|certainly will",
    re.IGNORECASE,
)
EVIDENCE_RES = (
    re.compile(r"\[\d+\]"),
    re.compile(r"\d+%"),
    re.compile(r"\$\d+"),
    re.compile(r"\b\d{4}\b"),
    re.compile(r"\b\d+\.\d+\b"),
)

SOURCE_PLACEHOLDER_RE = re.compile(r"\bSource\s*\d+\b")
EMPTY_BRACKETS_RE = re.compile(r"\[\s*\]")
BARE_URL_RE = re.compile(r"https?://[^\s\])]+")

_LEAK_RES = [(t, re.compile(rf"(?<!\w){re.escape(t)}(?!\w)", re.IGNORECASE)) for t in EXECUTION_LEAK_TERMS]
_LEAK_RES.append(("DM", re.compile(r"\bDM\b")))
_CONSULTANT_RES = [(t, re.compile(rf"\b{re.escape(t)}\b", re.IGNORECASE)) for t in CONSULTANT_TERMS]
_WORD_RE = re.compile(r"[^\w\s]")


def run_selfcheck(sections: dict[str, Section]) -> SelfCheckReport:
    """Run every rule over the sections."""
    texts = {name: section_text(section.content) for name, section in sections.items()}
    violations: list[SelfCheckViolation] = []
    violations += check_execution_leak(texts)
    violations += check_consultant_speak(texts)
    violations += check_unsupported_claims(texts)
    violations += check_repetition(sections)
    violations += check_citation_quality(texts)

    report = SelfCheckReport(
        passed=not any(v.severity == "error" for v in violations),
        violations=violations,
    )
    logger.debug("Self-check: pass=%s violations=%d", report.passed, len(violations))
    return report


def check_execution_leak(texts: dict[str, str]) -> list[SelfCheckViolation]:
    violations = []
    for name, text in texts.items():
        for term, pattern in _LEAK_RES:
            if pattern.search(text):
                violations.append(SelfCheckViolation(
                    rule="execution_leak",
                    severity="error",
                    location=name,
                    message=f"Found execution detail: '{term}' in {name}",
                    suggested_rewrite="Remove execution details and focus on strategic insights instead of tactical steps",
                ))
    return violations


def check_consultant_speak(texts: dict[str, str]) -> list[SelfCheckViolation]:
    violations = []
    for name, text in texts.items():
        for term, pattern in _CONSULTANT_RES:
            if pattern.search(text):
                violations.append(SelfCheckViolation(
                    rule="consultant_speak",
                    severity="warn",
                    location=name,
                    message=f"Found consultant-speak: '{term}' in {name}",
                    suggested_rewrite="Replace with specific, concrete language",
                ))
    return violations


def check_unsupported_claims(texts: dict[str, str]) -> list[SelfCheckViolation]:
    violations = []
    for name, text in texts.items():
        for paragraph in re.split(r"\n\s*\n", text):
            if not paragraph.strip() or not STRONG_CLAIM_RE.search(paragraph):
                continue
            if any(pattern.search(paragraph) for pattern in EVIDENCE_RES):
                continue
            violations.append(SelfCheckViolation(
                rule="unsupported_claims",
                severity="error",
                location=name,
                message=f"Strong assertion without supporting evidence in {name}",
                suggested_rewrite="Add specific numbers, dates, or citations to support the claim",
            ))
    return violations


def check_repetition(sections: dict[str, Section]) -> list[SelfCheckViolation]:
    section = sections.get("opportunities")
    if section is None:
        return []
    content = section.content
    if isinstance(content, list):
        parts = [section_text(item) for item in content]
    else:
        parts = re.split(r"\n\s*[-*]\s*|\n\s*\d+\.\s*", section_text(content))
    parts = [p.strip() for p in parts if len(p.strip()) > MIN_OPPORTUNITY_CHARS]

    violations = []
    for i in range(len(parts)):
        for j in range(i + 1, len(parts)):
            similarity = jaccard_similarity(parts[i], parts[j])
            if similarity > REPETITION_THRESHOLD:
                violations.append(SelfCheckViolation(
                    rule="repetition",
                    severity="warn",
                    location="opportunities",
                    message=f"High similarity ({similarity:.2f}) between opportunity {i} and {j}",
                    suggested_rewrite="Differentiate opportunities or merge similar ones",
                ))
    return violations


def check_citation_quality(texts: dict[str, str]) -> list[SelfCheckViolation]:
    violations = []
    for name, text in texts.items():
        if SOURCE_PLACEHOLDER_RE.search(text):
            violations.append(SelfCheckViolation(
                rule="citation_quality",
                severity="error",
                location=name,
                message=f"Found generic 'Source' placeholder in {name}",
                suggested_rewrite="Replace with enriched citations including title and domain",
            ))
        if EMPTY_BRACKETS_RE.search(text):
            violations.append(SelfCheckViolation(
                rule="citation_quality",
                severity="error",
                location=name,
                message=f"Found empty citation brackets in {name}",
                suggested_rewrite="Add proper citation numbers or remove empty brackets",
            ))
        if BARE_URL_RE.search(text):
            violations.append(SelfCheckViolation(
                rule="citation_quality",
                severity="warn",
                location=name,
                message=f"Found bare URL in {name}",
                suggested_rewrite="Replace bare URLs with proper citation format",
            ))
    return violations


def jaccard_similarity(a: str, b: str) -> float:
    words_a = set(_WORD_RE.sub("", a.lower()).split())
    words_b = set(_WORD_RE.sub("", b.lower()).split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)
