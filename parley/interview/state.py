"""Pure state transitions for interview sessions.

``transition(session, event)`` never mutates its input and never touches
persistence, so every phase rule can be unit tested in isolation. A
completed session is frozen: every event applied to it returns it unchanged.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from parley.interview.models import (
    CompletionReason,
    InterviewSession,
    Phase,
    Role,
    TranscriptEntry,
)


class InterviewStarted(BaseModel):
    """The opening agent message was issued."""

    opening: str
    at: datetime


class TurnRecorded(BaseModel):
    """A user message and the agent reply to it."""

    user_text: str
    agent_text: str
    topics: list[str] = Field(default_factory=list, description="Topic ids detected this turn")
    phase: Phase = Field(..., description="Phase decided for the session after this turn")
    at: datetime


class ForceCompleted(BaseModel):
    """Facilitator override."""

    at: datetime


InterviewEvent = InterviewStarted | TurnRecorded | ForceCompleted


def transition(session: InterviewSession, event: InterviewEvent) -> InterviewSession:
    """Apply an event, returning a new session."""
    if session.completed:
        return session

    if isinstance(event, InterviewStarted):
        if session.started:
            return session
        return session.model_copy(
            update={
                "transcript": [
                    TranscriptEntry(role=Role.AGENT, text=event.opening, timestamp=event.at)
                ],
                "phase": Phase.INTRODUCTION,
                "started_at": event.at,
                "updated_at": event.at,
            },
            deep=True,
        )

    if isinstance(event, TurnRecorded):
        topics = list(session.topics_covered)
        topics.extend(t for t in event.topics if t not in topics)
        phase = max(session.phase, event.phase)
        update: dict = {
            "transcript": [
                *session.transcript,
                TranscriptEntry(role=Role.USER, text=event.user_text, timestamp=event.at),
                TranscriptEntry(role=Role.AGENT, text=event.agent_text, timestamp=event.at),
            ],
            "topics_covered": topics,
            "questions_asked": session.questions_asked + 1,
            "phase": phase,
            "started_at": session.started_at or event.at,
            "updated_at": event.at,
        }
        if phase is Phase.COMPLETED:
            update["completion_reason"] = CompletionReason.NATURAL
            update["completed_at"] = event.at
        return session.model_copy(update=update, deep=True)

    if isinstance(event, ForceCompleted):
        return session.model_copy(
            update={
                "phase": Phase.COMPLETED,
                "completion_reason": CompletionReason.FACILITATOR_OVERRIDE,
                "completed_at": event.at,
                "updated_at": event.at,
            },
            deep=True,
        )

    raise TypeError(f"Unknown interview event: {type(event).__name__}")
