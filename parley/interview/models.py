"""Interview session models.

The session is an explicit tagged state: a Phase enum plus typed fields.
Phases are totally ordered and only ever advance.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

_PHASE_RANK = {
    "introduction": 0,
    "exploring": 1,
    "completing": 2,
    "completed": 3,
}


class Phase(str, Enum):
    """Interview phase, ordered introduction < exploring < completing < completed."""

    INTRODUCTION = "introduction"
    EXPLORING = "exploring"
    COMPLETING = "completing"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _PHASE_RANK[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Phase):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Phase):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Phase):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Phase):
            return NotImplemented
        return self.rank >= other.rank


class Role(str, Enum):
    """Author of a transcript entry."""

    USER = "user"
    AGENT = "agent"


class CompletionReason(str, Enum):
    """Why an interview ended."""

    NATURAL = "natural"
    FACILITATOR_OVERRIDE = "facilitator_override"


class TranscriptEntry(BaseModel):
    """One message in the transcript. Entries are never edited."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str
    timestamp: datetime


class Participant(BaseModel):
    """The stakeholder being interviewed."""

    name: str = Field(..., min_length=1)
    email: str | None = None
    title: str = ""
    role: str = Field(default="", description="Role type, e.g. it_operations")
    facilitator_name: str | None = None


class InterviewSession(BaseModel):
    """One stakeholder's conversation."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    campaign_id: str
    participant: Participant
    phase: Phase = Phase.INTRODUCTION
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    topics_covered: list[str] = Field(
        default_factory=list,
        description="Covered topic ids in order of first detection",
    )
    questions_asked: int = Field(default=0, ge=0)
    completion_reason: CompletionReason | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def started(self) -> bool:
        return self.started_at is not None

    @property
    def completed(self) -> bool:
        return self.phase is Phase.COMPLETED
