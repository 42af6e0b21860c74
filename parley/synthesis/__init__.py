"""Synthesis: campaign transcripts to a scored assessment report."""

from parley.synthesis.models import (
    Confidence,
    DimensionResult,
    DimensionSpec,
    Framework,
    JobError,
    JobStatus,
    PillarScore,
    PillarSpec,
    Priority,
    StakeholderPerspective,
    SynthesisJob,
    TranscriptSnapshot,
)
from parley.synthesis.orchestrator import SynthesisHandle, SynthesisOrchestrator
from parley.synthesis.store import SynthesisJobStore
from parley.synthesis.stores import InMemorySynthesisJobStore, RedisSynthesisJobStore
from parley.synthesis.trigger import AutoSynthesisTrigger

__all__ = [
    "AutoSynthesisTrigger",
    "Confidence",
    "DimensionResult",
    "DimensionSpec",
    "Framework",
    "InMemorySynthesisJobStore",
    "JobError",
    "JobStatus",
    "PillarScore",
    "PillarSpec",
    "Priority",
    "RedisSynthesisJobStore",
    "StakeholderPerspective",
    "SynthesisHandle",
    "SynthesisJob",
    "SynthesisJobStore",
    "SynthesisOrchestrator",
    "TranscriptSnapshot",
]
