"""Prompts for dimension analysis and the three aggregate calls."""

from parley.synthesis.models import (
    DimensionResult,
    DimensionSpec,
    PillarScore,
    Priority,
    TranscriptSnapshot,
)

_DIVIDER = "\n\n" + "=" * 80 + "\n\n"


def render_transcripts(transcripts: list[TranscriptSnapshot]) -> str:
    blocks = []
    for idx, snap in enumerate(transcripts, start=1):
        conversation = "\n\n".join(
            f"{entry.role.value.upper()}: {entry.text}" for entry in snap.transcript
        )
        blocks.append(
            f"STAKEHOLDER {idx}:\n"
            f"Name: {snap.participant.name}\n"
            f"Role: {snap.participant.role}\n"
            f"Title: {snap.participant.title}\n\n"
            f"CONVERSATION:\n{conversation}\n"
        )
    return _DIVIDER.join(blocks)


def dimension_prompt(
    spec: DimensionSpec,
    transcripts: list[TranscriptSnapshot],
    maturity_scale: list[str],
) -> str:
    levels = "\n".join(maturity_scale)
    return f"""You are analyzing stakeholder interview transcripts to assess organizational \
digital transformation readiness.

DIMENSION: {spec.name} ({spec.id})
DESCRIPTION: {spec.description}

MATURITY LEVELS (0-5):
{levels}

YOUR TASK:
1. EXTRACT evidence related to {spec.name}
2. ASSIGN a score from 0 to 5 (decimals allowed) based on the preponderance of evidence
3. DETERMINE confidence: high (4+ aligned stakeholders), medium (2-3), low (one \
stakeholder or conflicting evidence), insufficient (not covered)
4. IDENTIFY 3-5 key findings
5. SELECT 2-4 supporting quotes with name/role attribution
6. DESCRIBE the gap to the next maturity level
7. PRIORITIZE: critical, important, foundational or opportunistic

STAKEHOLDER TRANSCRIPTS:
{render_transcripts(transcripts)}

OUTPUT FORMAT (JSON):
{{
  "dimension": "{spec.name}",
  "score": <number 0-5>,
  "confidence": "<high|medium|low|insufficient>",
  "keyFindings": ["..."],
  "supportingQuotes": ["Quote text - Name (Role)"],
  "gapToNext": "...",
  "priority": "<critical|important|foundational|opportunistic>"
}}

Return ONLY valid JSON, no additional text."""


def _pillar_block(pillars: list[PillarScore], dimensions: list[DimensionResult]) -> str:
    by_id = {d.dimension_id: d for d in dimensions}
    sections = []
    for pillar in pillars:
        lines = [f"{pillar.pillar} Pillar ({pillar.score:.1f}/5.0):"]
        for dim_id in pillar.dimension_ids:
            d = by_id[dim_id]
            lines.append(
                f"  - {d.dimension}: {d.score}/5.0 [{d.confidence.value}]\n"
                f"    Key Findings: {'; '.join(d.key_findings)}"
            )
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def summary_prompt(
    campaign_id: str,
    stakeholder_count: int,
    overall_score: float,
    pillars: list[PillarScore],
    dimensions: list[DimensionResult],
) -> str:
    scores = ", ".join(f"{p.pillar}: {p.score:.1f}/5.0" for p in pillars)
    return f"""You are summarizing the findings of a digital transformation readiness \
assessment.

CAMPAIGN: {campaign_id}
STAKEHOLDERS INTERVIEWED: {stakeholder_count}
OVERALL SCORE: {overall_score:.1f}/5.0
PILLAR SCORES: {scores}

DIMENSIONAL FINDINGS:
{_pillar_block(pillars, dimensions)}

Write a 3-4 paragraph executive summary that opens with overall readiness, highlights \
2-3 strengths, identifies 2-3 critical gaps and ends with the strategic opportunity. \
Be specific and evidence-based. Do not mention stakeholder names.

Return ONLY the executive summary text, no JSON or formatting."""


def themes_prompt(dimensions: list[DimensionResult]) -> str:
    findings = [f for d in dimensions for f in d.key_findings]
    numbered = "\n".join(f"{i}. {f}" for i, f in enumerate(findings, start=1))
    return f"""Analyze the following findings from a multi-stakeholder digital \
transformation assessment:

FINDINGS:
{numbered}

Identify:
1. THEMES: 3-5 recurring patterns across stakeholders
2. CONTRADICTIONS: 2-3 areas where stakeholder perspectives conflict

OUTPUT FORMAT (JSON):
{{
  "themes": ["Theme: description"],
  "contradictions": ["Contradiction: description"]
}}

Return ONLY valid JSON, no additional text."""


def priority_dimensions(dimensions: list[DimensionResult], limit: int) -> list[DimensionResult]:
    """Critical dimensions first, then important ones, capped at ``limit``."""
    critical = [d for d in dimensions if d.priority is Priority.CRITICAL]
    important = [d for d in dimensions if d.priority is Priority.IMPORTANT]
    selected = (critical + important)[:limit]
    return selected or sorted(dimensions, key=lambda d: d.score)[:limit]


def recommendations_prompt(dimensions: list[DimensionResult]) -> str:
    blocks = "\n".join(
        f"{d.dimension} (Score: {d.score}/5.0, Priority: {d.priority.value})\n"
        f"- Key Findings: {'; '.join(d.key_findings)}\n"
        f"- Gap to Next: {d.gap_to_next}\n"
        for d in dimensions
    )
    return f"""Based on the following priority dimensions from a digital readiness \
assessment, generate 3-5 actionable strategic recommendations.

PRIORITY DIMENSIONS:
{blocks}
Recommendations must be specific, prioritized by impact and feasibility, strategic \
rather than tactical, and show how improvements build on each other.

OUTPUT FORMAT (JSON):
{{
  "recommendations": ["Recommendation text"]
}}

Return ONLY valid JSON, no additional text."""
