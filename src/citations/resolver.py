# src/citations/resolver.py — v1
"""Citation resolution: canonical citations → de-duplicated ResolvedCitation.

Each citation gets a stable id derived from its URL fingerprint and a
title (given, derived from the URL path, or a publisher fallback).
Citations sharing a fingerprint are merged and keep every step code that
referenced them.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Any, Iterable
from urllib.parse import urlparse

from pydantic import ValidationError

from protoscope.citations.scorer import parse_published
from protoscope.core.models import ResolvedCitation

logger = logging.getLogger(__name__)

PUBLISHER_NAMES: dict[str, str] = {
    "bloomberg.com": "Bloomberg",
    "sec.gov": "SEC Filing",
    "reuters.com": "Reuters",
    "wsj.com": "Wall Street Journal",
    "ft.com": "Financial Times",
    "techcrunch.com": "TechCrunch",
    "crunchbase.com": "Crunchbase",
    "linkedin.com": "LinkedIn",
    "forbes.com": "Forbes",
    "fortune.com": "Fortune",
}

_SCHEME_RE = re.compile(r"^https?://")
_EXTENSION_RE = re.compile(r"\.[a-zA-Z]+$")


def citation_fingerprint(url: str) -> str:
    """md5 of the lower-cased URL without scheme and trailing slashes."""
    normalized = _SCHEME_RE.sub("", url.strip().lower()).rstrip("/")
    return hashlib.md5(normalized.encode("utf-8")).hexdigest()  # noqa: S324


def title_from_url(url: str) -> str | None:
    """Derive a title from the last URL path segment, if there is one."""
    path = urlparse(url).path.strip("/")
    if not path:
        return None
    segment = path.split("/")[-1]
    segment = _EXTENSION_RE.sub("", segment)
    segment = segment.replace("-", " ").replace("_", " ").strip()
    if not segment:
        return None
    return " ".join(word.capitalize() for word in segment.split())


def fallback_title(domain: str) -> str:
    name = PUBLISHER_NAMES.get(domain)
    if name is None:
        name = domain.replace(".com", "").capitalize() if domain else "Unknown"
    return f"{name} Article"


class CitationResolver:
    """Resolve canonical citations into de-duplicated, titled records.

    malformed counts the records of the last resolve() call that could not
    be turned into a ResolvedCitation and were skipped.
    """

    def __init__(self) -> None:
        self.malformed = 0

    def resolve(
        self,
        citations: Iterable[tuple[str, dict[str, Any]]],
    ) -> list[ResolvedCitation]:
        """Resolve (step_code, canonical citation) pairs.

        Citations without a url or domain are skipped. Order of first
        appearance is preserved.
        """
        self.malformed = 0
        resolved: dict[str, ResolvedCitation] = {}
        for step_code, citation in citations:
            url = citation.get("url")
            domain = citation.get("domain")
            if not isinstance(url, str) or not url.strip() or not domain:
                continue

            fingerprint = citation_fingerprint(url)
            existing = resolved.get(fingerprint)
            if existing is not None:
                if step_code not in existing.step_codes:
                    existing.step_codes.append(step_code)
                if not existing.snippet and citation.get("snippet"):
                    existing.snippet = str(citation["snippet"])
                continue

            title = citation.get("title") or title_from_url(url) or fallback_title(domain)
            published = parse_published(
                citation.get("published_at")
                or citation.get("publishedAt")
                or citation.get("publishedat")
            )
            kind = citation.get("type")
            try:
                resolved[fingerprint] = ResolvedCitation(
                    id=f"url_{hashlib.md5(url.encode('utf-8')).hexdigest()[:8]}",  # noqa: S324
                    fingerprint=fingerprint,
                    url=url,
                    domain=domain,
                    title=str(title),
                    snippet=str(citation.get("snippet") or citation.get("quote") or ""),
                    published_at=published.isoformat() if published else None,
                    type=kind if isinstance(kind, str) and kind.strip() else None,
                    step_codes=[step_code],
                )
            except ValidationError as e:
                self.malformed += 1
                logger.warning("Skipping malformed citation %s from %s: %s", url, step_code, e.errors()[:1])
        return list(resolved.values())
