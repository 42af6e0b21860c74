"""Tests for the pure interview transition function."""

from datetime import timedelta

import pytest

from parley.interview import (
    CompletionReason,
    ForceCompleted,
    InterviewStarted,
    Phase,
    Role,
    TurnRecorded,
    transition,
)
from tests.factories import SessionFactory
from tests.factories.interview import EPOCH

LATER = EPOCH + timedelta(minutes=5)


def turn(phase: Phase = Phase.EXPLORING, topics: list[str] | None = None) -> TurnRecorded:
    return TurnRecorded(
        user_text="We track downtime by hand.",
        agent_text="How often does that happen?",
        topics=topics or [],
        phase=phase,
        at=LATER,
    )


class TestInterviewStarted:
    def test_opening_becomes_first_agent_entry(self) -> None:
        session = SessionFactory.create()

        started = transition(session, InterviewStarted(opening="Hello Dana", at=LATER))

        assert started.started_at == LATER
        assert started.phase is Phase.INTRODUCTION
        assert [(e.role, e.text) for e in started.transcript] == [(Role.AGENT, "Hello Dana")]

    def test_input_is_not_mutated(self) -> None:
        session = SessionFactory.create()

        transition(session, InterviewStarted(opening="Hello", at=LATER))

        assert session.transcript == []
        assert session.started_at is None

    def test_already_started_is_unchanged(self) -> None:
        session = transition(
            SessionFactory.create(), InterviewStarted(opening="Hello", at=EPOCH)
        )

        again = transition(session, InterviewStarted(opening="Hi again", at=LATER))

        assert again == session


class TestTurnRecorded:
    def test_appends_user_and_agent_entries(self) -> None:
        session = transition(
            SessionFactory.create(), InterviewStarted(opening="Hello", at=EPOCH)
        )

        updated = transition(session, turn())

        assert [e.role for e in updated.transcript] == [Role.AGENT, Role.USER, Role.AGENT]
        assert updated.transcript[1].text == "We track downtime by hand."
        assert updated.questions_asked == 1
        assert updated.phase is Phase.EXPLORING
        assert updated.updated_at == LATER

    def test_topics_keep_first_detection_order(self) -> None:
        session = SessionFactory.create(topics_covered=["operations"], started=True)

        updated = transition(session, turn(topics=["security", "operations", "people"]))

        assert updated.topics_covered == ["operations", "security", "people"]

    def test_phase_never_regresses(self) -> None:
        session = SessionFactory.create(phase=Phase.COMPLETING, started=True)

        updated = transition(session, turn(phase=Phase.EXPLORING))

        assert updated.phase is Phase.COMPLETING

    def test_reaching_completed_sets_natural_reason(self) -> None:
        session = SessionFactory.create(phase=Phase.COMPLETING, started=True)

        updated = transition(session, turn(phase=Phase.COMPLETED))

        assert updated.completed
        assert updated.completion_reason is CompletionReason.NATURAL
        assert updated.completed_at == LATER

    def test_turn_on_unstarted_session_sets_started_at(self) -> None:
        updated = transition(SessionFactory.create(), turn())

        assert updated.started_at == LATER


class TestForceCompleted:
    def test_marks_facilitator_override(self) -> None:
        session = SessionFactory.create(started=True)

        updated = transition(session, ForceCompleted(at=LATER))

        assert updated.phase is Phase.COMPLETED
        assert updated.completion_reason is CompletionReason.FACILITATOR_OVERRIDE
        assert updated.completed_at == LATER
        assert updated.transcript == session.transcript


class TestCompletedIsFrozen:
    @pytest.mark.parametrize(
        "event",
        [
            InterviewStarted(opening="Hello", at=LATER),
            TurnRecorded(
                user_text="more", agent_text="thanks", phase=Phase.EXPLORING, at=LATER
            ),
            ForceCompleted(at=LATER),
        ],
    )
    def test_every_event_is_ignored(self, event) -> None:
        session = SessionFactory.completed()

        assert transition(session, event) is session


class TestPhaseOrdering:
    def test_phases_are_totally_ordered(self) -> None:
        assert Phase.INTRODUCTION < Phase.EXPLORING < Phase.COMPLETING < Phase.COMPLETED
        assert max(Phase.COMPLETING, Phase.EXPLORING) is Phase.COMPLETING

    def test_unknown_event_rejected(self) -> None:
        with pytest.raises(TypeError, match="Unknown interview event"):
            transition(SessionFactory.create(), object())
