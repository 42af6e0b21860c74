"""Parsing and validation of structured model output.

Every failure raises InvalidResponseError so the retry policy re-issues the
call instead of silently defaulting a score.
"""

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from parley.errors import InvalidResponseError
from parley.synthesis.models import Confidence, DimensionResult, DimensionSpec, Priority

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def extract_json(text: str, call: str) -> Any:
    """Decode a JSON document, tolerating markdown code fences."""
    cleaned = _FENCE.sub("", text.strip()).strip()
    if not cleaned.startswith(("{", "[")):
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise InvalidResponseError(call, "no JSON object found")
        cleaned = cleaned[start : end + 1]
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise InvalidResponseError(call, f"invalid JSON: {e.msg}", cause=e) from e


class _DimensionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    score: float = Field(..., ge=0.0, le=5.0)
    confidence: Confidence
    key_findings: list[str] = Field(default_factory=list, alias="keyFindings")
    supporting_quotes: list[str] = Field(default_factory=list, alias="supportingQuotes")
    gap_to_next: str = Field(default="", alias="gapToNext")
    priority: Priority

    @field_validator("confidence", "priority", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class _ThemesPayload(BaseModel):
    themes: list[str]
    contradictions: list[str] = Field(default_factory=list)


class _RecommendationsPayload(BaseModel):
    recommendations: list[str] = Field(..., min_length=1)


def _validate(model: type[BaseModel], data: Any, call: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidResponseError(call, reasons, cause=e) from e


def parse_dimension(text: str, spec: DimensionSpec) -> DimensionResult:
    call = f"dimension:{spec.id}"
    payload = _validate(_DimensionPayload, extract_json(text, call), call)
    return DimensionResult(
        dimension_id=spec.id,
        dimension=spec.name,
        score=payload.score,
        confidence=payload.confidence,
        key_findings=payload.key_findings,
        supporting_quotes=payload.supporting_quotes,
        gap_to_next=payload.gap_to_next,
        priority=payload.priority,
    )


def parse_themes(text: str) -> tuple[list[str], list[str]]:
    payload = _validate(_ThemesPayload, extract_json(text, "themes"), "themes")
    return payload.themes, payload.contradictions


def parse_recommendations(text: str) -> list[str]:
    payload = _validate(
        _RecommendationsPayload, extract_json(text, "recommendations"), "recommendations"
    )
    return payload.recommendations


def parse_summary(text: str) -> str:
    summary = text.strip()
    if not summary:
        raise InvalidResponseError("executive_summary", "empty summary")
    return summary
