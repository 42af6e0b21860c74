"""Synthesis job and report models."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from parley.billing.models import UsageTotals
from parley.config.models.synthesis import SynthesisConfig
from parley.interview.models import InterviewSession, Participant, TranscriptEntry
from parley.providers.llm.tiers import ReportTier


class JobStatus(str, Enum):
    """Lifecycle of a synthesis job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT = "insufficient"


class Priority(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    FOUNDATIONAL = "foundational"
    OPPORTUNISTIC = "opportunistic"


class DimensionSpec(BaseModel):
    """One scored facet of the assessment framework."""

    id: str
    name: str
    description: str = ""
    pillar: str


class PillarSpec(BaseModel):
    name: str
    weight: float
    dimension_ids: list[str]


class Framework(BaseModel):
    """Pillars and dimensions the report is scored against."""

    pillars: list[PillarSpec]
    dimensions: list[DimensionSpec]
    maturity_scale: list[str] = Field(default_factory=list)

    @classmethod
    def from_config(cls, config: SynthesisConfig) -> "Framework":
        return cls(
            pillars=[
                PillarSpec(
                    name=p.name,
                    weight=p.weight,
                    dimension_ids=[d.id for d in p.dimensions],
                )
                for p in config.pillars
            ],
            dimensions=[
                DimensionSpec(id=d.id, name=d.name, description=d.description, pillar=p.name)
                for p in config.pillars
                for d in p.dimensions
            ],
            maturity_scale=[
                f"{m.level} - {m.name}: {m.descriptor}" for m in config.maturity_levels
            ],
        )


class DimensionResult(BaseModel):
    """Parsed model assessment of one dimension."""

    dimension_id: str
    dimension: str
    score: float = Field(..., ge=0.0, le=5.0)
    confidence: Confidence
    key_findings: list[str] = Field(default_factory=list)
    supporting_quotes: list[str] = Field(default_factory=list)
    gap_to_next: str = ""
    priority: Priority


class PillarScore(BaseModel):
    pillar: str
    weight: float
    score: float
    dimension_ids: list[str]


class StakeholderPerspective(BaseModel):
    name: str
    role: str
    title: str
    key_concerns: list[str] = Field(default_factory=list)
    notable_quotes: list[str] = Field(default_factory=list)


class TranscriptSnapshot(BaseModel):
    """Immutable copy of a completed transcript taken when a run starts."""

    model_config = ConfigDict(frozen=True)

    session_id: UUID
    participant: Participant
    transcript: tuple[TranscriptEntry, ...]
    completed_at: datetime | None

    @classmethod
    def from_session(cls, session: InterviewSession) -> "TranscriptSnapshot":
        copy = session.model_copy(deep=True)
        return cls(
            session_id=copy.id,
            participant=copy.participant,
            transcript=tuple(copy.transcript),
            completed_at=copy.completed_at,
        )


class JobError(BaseModel):
    """Classified error recorded on a failed job."""

    code: str
    message: str
    user_message: str
    retryable: bool
    details: dict[str, Any] = Field(default_factory=dict)


class SynthesisJob(BaseModel):
    """One assessment report run for a campaign."""

    id: UUID = Field(default_factory=uuid4)
    campaign_id: str
    tenant_id: str
    tier: ReportTier
    model_id: str
    status: JobStatus = JobStatus.PENDING
    session_ids: list[UUID] = Field(default_factory=list)

    dimensions: list[DimensionResult] = Field(default_factory=list)
    pillars: list[PillarScore] = Field(default_factory=list)
    overall_score: float | None = None
    executive_summary: str | None = None
    themes: list[str] = Field(default_factory=list)
    contradictions: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    stakeholder_perspectives: list[StakeholderPerspective] = Field(default_factory=list)

    retry_count: int = 0
    last_error: JobError | None = None
    usage: UsageTotals | None = None
    usage_error: JobError | None = None

    regeneration_count: int = 0
    regenerated_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    finished_at: datetime | None = None
