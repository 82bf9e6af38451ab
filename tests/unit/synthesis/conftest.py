# tests/unit/synthesis/conftest.py — v1
"""Fixtures for synthesis tests: canonical payloads, patterns and sections."""

from __future__ import annotations

from typing import Any

import pytest

from protoscope.core.models import Section
from protoscope.synthesis.models import Pattern, PatternSet


@pytest.fixture
def payloads() -> dict[str, dict[str, Any]]:
    """Canonical step payloads covering every pattern source."""
    return {
        "NB1": {
            "summary": "Acme Corp supplies surgical consumables to US hospital systems.",
            "market_positioning": "Acme is losing share to low-cost importers in surgical supplies.",
            "business_model": "Direct contracts with hospital systems and purchasing groups.",
            "notable_shifts": "Recent shift toward value-based procurement across US health systems.",
            "mission": "Deliver reliable clinical supplies to every care setting.",
            "citations": [{"source_id": 1, "url": "https://www.reuters.com/business/acme"}],
        },
        "NB2": {
            "summary": "Revenue reached $450 million in 2024 with growing demand from clinics.",
            "key_points": ["Upcoming contract renewals cover 40% of revenue."],
        },
        "NB3": {
            "summary": "Leadership is focused on margin recovery.",
            "key_points": ["Operating margin fell to 8% as freight costs climbed."],
            "executives": [
                {"name": "Jane Doe", "title": "CFO", "accountability": "Margin recovery program"},
                {"name": "John Roe", "title": "COO"},
            ],
        },
        "NB8": {
            "summary": "Distribution network modernization could cut fulfilment costs by 15%.",
        },
        "NB10": {
            "summary": "Emerging regulatory changes will reshape supplier qualification for health systems.",
        },
        "NB13": {
            "summary": "Partnerships with academic medical centers expand clinical evaluation capacity.",
        },
    }


@pytest.fixture
def patterns() -> PatternSet:
    return PatternSet(
        pressures=[
            Pattern(kind="pressure", text="Operating margin fell to 8% as freight costs climbed.",
                    confidence=0.7, step_codes=["NB3"]),
        ],
        levers=[
            Pattern(kind="lever", text="Partnerships with academic medical centers expand evaluation capacity.",
                    confidence=0.6, step_codes=["NB13"]),
        ],
        timing=[
            Pattern(kind="timing", text="Recent shift toward value-based procurement.", confidence=0.7,
                    step_codes=["NB1"]),
        ],
        executives=[
            Pattern(kind="executive", text="Jane Doe", confidence=0.7, step_codes=["NB3"],
                    detail={"title": "CFO", "accountability": "Margin recovery"}),
        ],
        numeric_proofs=[
            Pattern(kind="numeric", text="8%", confidence=0.6, step_codes=["NB3"]),
        ],
    )


@pytest.fixture
def clean_sections() -> dict[str, Section]:
    return {
        "executive_summary": Section(
            name="executive_summary",
            content="Acme Corp faces margin compression. The 8% gap matters in 2025.",
        ),
        "opportunities": Section(
            name="opportunities",
            content=[
                {"title": "Freight Cost Initiative", "body": "Consolidate carriers to recover 2 points of margin."},
                {"title": "Clinical Partnership Initiative", "body": "Co-develop evaluation studies with academic centers."},
            ],
        ),
        "convergence": Section(name="convergence", content="Pressure and timing now coincide."),
    }
