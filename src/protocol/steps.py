# src/protocol/steps.py — v1
"""The fifteen research steps NB1..NB15.

Each step pairs a retrieval query template (with a ``[company name]``
placeholder) and a generation system prompt.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StepDefinition:
    """Immutable description of one protocol step."""

    code: str
    objective: str
    description: str
    query_template: str
    system_prompt: str

    @property
    def number(self) -> int:
        return int(self.code[2:])


STEP_DEFINITIONS: tuple[StepDefinition, ...] = (
    StepDefinition(
        code="NB1",
        objective="Customer Fundamentals",
        description="Build a foundational understanding of the customer company.",
        query_template="Key facts, history, business model, and primary markets for [company name].",
        system_prompt=(
            "Summarize the customer's core identity: what they do, who they serve, "
            "and how they generate value. Include mission, vision, market positioning, "
            "and notable recent shifts."
        ),
    ),
    StepDefinition(
        code="NB2",
        objective="Financial Performance & Pressures",
        description="Identify recent financial trends, growth patterns, and pressures.",
        query_template="Recent financial performance, growth drivers, and cost pressures for [company name].",
        system_prompt=(
            "Analyze the company's financial trajectory, revenue composition, and recent "
            "cost or margin trends. Highlight risks or opportunities in their financial posture."
        ),
    ),
    StepDefinition(
        code="NB3",
        objective="Leadership & Decision-Makers",
        description="Identify key leaders, their backgrounds, and influence.",
        query_template=(
            "Current leadership team, executive changes, and recent public statements "
            "by leadership of [company name]."
        ),
        system_prompt=(
            "Summarize leadership composition, priorities, and recent commentary. Note any "
            "leadership transitions or emerging internal priorities."
        ),
    ),
    StepDefinition(
        code="NB4",
        objective="Strategic Initiatives & Expansion",
        description="Identify current strategies and expansion priorities.",
        query_template=(
            "Recent strategic initiatives, acquisitions, partnerships, and geographic "
            "expansions by [company name]."
        ),
        system_prompt=(
            "Summarize strategic initiatives: where the company is investing, growing, or "
            "transforming. Include rationale, expected outcomes, and alignment with company goals."
        ),
    ),
    StepDefinition(
        code="NB5",
        objective="Operational Challenges",
        description="Identify execution or supply-side challenges.",
        query_template=(
            "Operational issues, supply chain challenges, and production constraints "
            "faced by [company name]."
        ),
        system_prompt=(
            "Identify recurring operational challenges or efficiency constraints. Include "
            "internal process issues, capacity limitations, or supply vulnerabilities."
        ),
    ),
    StepDefinition(
        code="NB6",
        objective="Technology & Systems",
        description="Identify key technologies, systems, and digital capabilities.",
        query_template="Core technologies, systems, and digital infrastructure in use by [company name].",
        system_prompt=(
            "Describe the company's technology stack, digital maturity, and ongoing "
            "modernization efforts. Note any dependencies or vulnerabilities."
        ),
    ),
    StepDefinition(
        code="NB7",
        objective="Competitive Dynamics",
        description="Understand competitors and the company's market positioning.",
        query_template="Major competitors, market share trends, and competitive advantages for [company name].",
        system_prompt=(
            "Analyze how the company differentiates itself and responds to competition. "
            "Include competitor strategies and any changing market dynamics."
        ),
    ),
    StepDefinition(
        code="NB8",
        objective="Organizational Structure & Culture",
        description="Explore organizational characteristics and internal culture.",
        query_template="Organizational structure, workforce composition, and corporate culture of [company name].",
        system_prompt=(
            "Summarize organizational culture, structure, and engagement trends. Include "
            "workforce priorities and cultural values influencing performance."
        ),
    ),
    StepDefinition(
        code="NB9",
        objective="Stakeholder Influence",
        description="Identify key external influencers shaping company decisions.",
        query_template=(
            "External stakeholders, investors, regulators, or advocacy groups "
            "influencing [company name]."
        ),
        system_prompt=(
            "Describe external entities influencing company behavior or policy: investors, "
            "partnerships, regulators, and advocacy organizations."
        ),
    ),
    StepDefinition(
        code="NB10",
        objective="Sustainability & ESG",
        description="Analyze sustainability goals, ESG commitments, and reporting.",
        query_template=(
            "Sustainability and ESG initiatives of [company name], including carbon "
            "reduction, DEI, and governance."
        ),
        system_prompt=(
            "Summarize ESG strategy, metrics, and public commitments. Highlight key "
            "performance areas and potential gaps."
        ),
    ),
    StepDefinition(
        code="NB11",
        objective="Research & Innovation",
        description="Identify innovation pipelines and R&D focus.",
        query_template="Recent research, innovation, or new product developments at [company name].",
        system_prompt=(
            "Summarize innovation priorities, product development pipelines, and technology "
            "investments. Highlight trends in innovation focus."
        ),
    ),
    StepDefinition(
        code="NB12",
        objective="Market and Customer Segments",
        description="Understand primary markets and customer relationships.",
        query_template=(
            "Primary customer segments, buying trends, and satisfaction indicators "
            "for [company name]."
        ),
        system_prompt=(
            "Analyze target markets, key customer segments, and relationship strategies. "
            "Identify where growth is occurring or declining."
        ),
    ),
    StepDefinition(
        code="NB13",
        objective="Industry Context",
        description="Contextualize company activity within broader industry trends.",
        query_template=(
            "Key industry developments, technology shifts, and regulatory changes "
            "affecting [company name]."
        ),
        system_prompt=(
            "Provide contextual analysis: what macro or regulatory forces shape this "
            "company's landscape and decisions."
        ),
    ),
    StepDefinition(
        code="NB14",
        objective="Future Outlook",
        description="Identify forward-looking trends, forecasts, and risks.",
        query_template="Expert or analyst forecasts and future outlook for [company name].",
        system_prompt=(
            "Summarize expectations for the company's direction: growth, challenges, "
            "and near-term catalysts."
        ),
    ),
    StepDefinition(
        code="NB15",
        objective="Implications for Engagement",
        description="Synthesize actionable insights for commercial strategy.",
        query_template=(
            "Strategic opportunities or engagement implications for partners working "
            "with [company name]."
        ),
        system_prompt=(
            "Based on all previous phases, synthesize key engagement implications for how "
            "to approach or serve this customer most effectively."
        ),
    ),
)

STEP_CODES: tuple[str, ...] = tuple(s.code for s in STEP_DEFINITIONS)

_BY_CODE: dict[str, StepDefinition] = {s.code: s for s in STEP_DEFINITIONS}


def get_step(code: str) -> StepDefinition:
    """Look up a step by code. Accepts the hyphenated form ("NB-3").

    Raises:
        KeyError: If the code is unknown.
    """
    key = code.strip().upper().replace("-", "").replace("_", "")
    if key not in _BY_CODE:
        raise KeyError(f"Unknown step code: {code}")
    return _BY_CODE[key]
