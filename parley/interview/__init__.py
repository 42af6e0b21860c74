"""Stakeholder interview state machine."""

from parley.interview.machine import InterviewStateMachine
from parley.interview.models import (
    CompletionReason,
    InterviewSession,
    Participant,
    Phase,
    Role,
    TranscriptEntry,
)
from parley.interview.state import ForceCompleted, InterviewStarted, TurnRecorded, transition

__all__ = [
    "CompletionReason",
    "ForceCompleted",
    "InterviewSession",
    "InterviewStarted",
    "InterviewStateMachine",
    "Participant",
    "Phase",
    "Role",
    "TranscriptEntry",
    "TurnRecorded",
    "transition",
]
