"""Tests for InterviewStateMachine."""

import asyncio
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
import structlog

from parley.billing.ledger import UsageLedger
from parley.config.models.interview import InterviewConfig, TopicConfig
from parley.errors import (
    AuthError,
    NetworkError,
    SessionBusyError,
    SessionCompletedError,
    SessionNotFoundError,
    TurnLeaseLostError,
    UsageCommitError,
)
from parley.interview import CompletionReason, InterviewStateMachine, Phase, Role
from parley.interview.stores import InMemoryInterviewSessionStore
from parley.providers.llm import ScriptedModelGateway
from tests.factories import ParticipantFactory


@pytest.fixture
def config() -> InterviewConfig:
    return InterviewConfig(
        model_id="test-sonnet",
        topics=[
            TopicConfig(id="alpha", label="Budget", keywords=["budget"]),
            TopicConfig(id="beta", label="Sensors", keywords=["sensors"]),
        ],
        coverage_threshold=1.0,
        min_questions=2,
        completing_after_questions=2,
        default_facilitator="the facilitator",
    )


@pytest.fixture
def store() -> InMemoryInterviewSessionStore:
    return InMemoryInterviewSessionStore()


@pytest.fixture
def machine(store, gateway, config, cost_ledger, usage_ledger, retry, clock):
    return InterviewStateMachine(
        store,
        gateway,
        config,
        cost_ledger=cost_ledger,
        ledger=usage_ledger,
        retry=retry,
        clock=clock,
    )


@pytest_asyncio.fixture
async def session(machine):
    return await machine.register(ParticipantFactory.create(), "campaign-1", "tenant-1")


class TestRegister:
    @pytest.mark.asyncio
    async def test_creates_unstarted_session(self, machine, session, clock) -> None:
        stored = await machine.get(session.id)

        assert stored.phase is Phase.INTRODUCTION
        assert stored.transcript == []
        assert not stored.started
        assert stored.created_at == clock.now

    @pytest.mark.asyncio
    async def test_unknown_session(self, machine) -> None:
        with pytest.raises(SessionNotFoundError):
            await machine.get(uuid4())

    @pytest.mark.asyncio
    async def test_list_by_campaign(self, machine, session) -> None:
        await machine.register(ParticipantFactory.create(name="Lee"), "campaign-2", "tenant-1")

        listed = await machine.list_by_campaign("campaign-1")

        assert [s.id for s in listed] == [session.id]
        assert await machine.list_by_campaign("campaign-1", completed_only=True) == []


class TestStartOrResume:
    @pytest.mark.asyncio
    async def test_first_contact_issues_opening(self, machine, session, gateway) -> None:
        transcript, started = await machine.start_or_resume(session.id)

        assert len(transcript) == 1
        assert transcript[0].role is Role.AGENT
        assert "Dana Reyes" in transcript[0].text
        assert "Acme Advisory" in transcript[0].text
        assert started.started
        assert gateway.call_count == 0

    @pytest.mark.asyncio
    async def test_resume_returns_same_transcript(self, machine, session, clock) -> None:
        first, started = await machine.start_or_resume(session.id)
        clock.advance(minutes=30)

        again, resumed = await machine.start_or_resume(session.id)

        assert again == first
        assert resumed.started_at == started.started_at

    @pytest.mark.asyncio
    async def test_resume_after_turns(self, machine, session) -> None:
        await machine.start_or_resume(session.id)
        await machine.submit_message(session.id, "Our budget is tight.")

        transcript, _ = await machine.start_or_resume(session.id)

        assert [e.role for e in transcript] == [Role.AGENT, Role.USER, Role.AGENT]

    @pytest.mark.asyncio
    async def test_default_facilitator(self, machine) -> None:
        participant = ParticipantFactory.create(facilitator_name=None)
        session = await machine.register(participant, "campaign-1", "tenant-1")

        transcript, _ = await machine.start_or_resume(session.id)

        assert "the facilitator" in transcript[0].text


class TestSubmitMessage:
    @pytest.mark.asyncio
    async def test_records_turn(self, machine, session, gateway) -> None:
        await machine.start_or_resume(session.id)

        reply, updated = await machine.submit_message(session.id, "  Our budget is tight.  ")

        assert reply == "Tell me more."
        assert updated.questions_asked == 1
        assert updated.phase is Phase.EXPLORING
        assert updated.topics_covered == ["alpha"]
        assert updated.transcript[1].text == "Our budget is tight."
        assert updated.transcript[2].text == "Tell me more."
        assert await machine.get(session.id) == updated

        call = gateway.call_history[0]
        assert call["model"] == "test-sonnet"
        assert call["prompt"].endswith("Respond as the INTERVIEWER with your next message only.")
        assert "STAKEHOLDER: Our budget is tight." in call["prompt"]
        assert "Dana Reyes" in call["system"]

    @pytest.mark.asyncio
    async def test_message_before_start_opens_first(self, machine, session) -> None:
        _, updated = await machine.submit_message(session.id, "Hello")

        assert [e.role for e in updated.transcript] == [Role.AGENT, Role.USER, Role.AGENT]
        assert updated.started

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, machine, session, gateway) -> None:
        with pytest.raises(ValueError):
            await machine.submit_message(session.id, "   ")
        assert gateway.call_count == 0

    @pytest.mark.asyncio
    async def test_turn_usage_is_committed(self, machine, session, usage_ledger) -> None:
        await machine.submit_message(session.id, "Our budget is tight.")

        snapshot = await usage_ledger.current("tenant-1")
        assert snapshot.cumulative_tokens == 150
        assert snapshot.cumulative_cost_cents == 1

    @pytest.mark.asyncio
    async def test_natural_completion(self, machine, session) -> None:
        await machine.start_or_resume(session.id)
        await machine.submit_message(session.id, "Our budget is tight.")

        _, updated = await machine.submit_message(session.id, "The sensors are old.")

        assert updated.phase is Phase.COMPLETED
        assert updated.completion_reason is CompletionReason.NATURAL
        assert updated.topics_covered == ["alpha", "beta"]

    @pytest.mark.asyncio
    async def test_uncovered_topics_keep_session_open(self, machine, session) -> None:
        for _ in range(5):
            _, updated = await machine.submit_message(session.id, "Nothing special.")

        assert updated.phase is Phase.COMPLETING
        assert updated.questions_asked == 5

    @pytest.mark.asyncio
    async def test_completed_session_rejects_messages(self, machine, session) -> None:
        await machine.force_complete(session.id)

        with pytest.raises(SessionCompletedError):
            await machine.submit_message(session.id, "One more thing")

    @pytest.mark.asyncio
    async def test_concurrent_turn_rejected(self, machine, session, store, gateway) -> None:
        await store.acquire_turn(session.id, "other-request", 60)

        with pytest.raises(SessionBusyError):
            await machine.submit_message(session.id, "Hello")
        assert gateway.call_count == 0

    @pytest.mark.asyncio
    async def test_lock_released_after_turn(self, machine, session, store) -> None:
        await machine.submit_message(session.id, "Hello")

        assert await store.acquire_turn(session.id, "next", 60)


class TestGatewayFailures:
    @pytest.mark.asyncio
    async def test_failure_leaves_transcript_untouched(
        self, machine, session, gateway, usage_ledger
    ) -> None:
        transcript, _ = await machine.start_or_resume(session.id)
        gateway.queue(AuthError("invalid api key"))

        with pytest.raises(AuthError):
            await machine.submit_message(session.id, "Our budget is tight.")

        stored = await machine.get(session.id)
        assert stored.transcript == transcript
        assert stored.questions_asked == 0
        assert (await usage_ledger.current("tenant-1")).cumulative_tokens == 0

    @pytest.mark.asyncio
    async def test_resend_after_failure(self, machine, session, gateway) -> None:
        gateway.queue(AuthError("invalid api key"))
        with pytest.raises(AuthError):
            await machine.submit_message(session.id, "Our budget is tight.")

        reply, updated = await machine.submit_message(session.id, "Our budget is tight.")

        assert reply == "Tell me more."
        assert updated.questions_asked == 1

    @pytest.mark.asyncio
    async def test_transient_failure_retried(
        self, machine, session, gateway, usage_ledger
    ) -> None:
        gateway.queue(NetworkError("connection reset"))

        reply, _ = await machine.submit_message(session.id, "Hello")

        assert reply == "Tell me more."
        assert gateway.call_count == 2
        assert (await usage_ledger.current("tenant-1")).cumulative_tokens == 150

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, machine, session, gateway) -> None:
        gateway.queue(*(NetworkError("connection reset") for _ in range(3)))

        with pytest.raises(NetworkError):
            await machine.submit_message(session.id, "Hello")
        assert gateway.call_count == 3


class TestUsageCommitFailure:
    @pytest.mark.asyncio
    async def test_turn_persisted_and_error_raised(
        self, store, gateway, config, cost_ledger, retry, clock
    ) -> None:
        broken = AsyncMock(spec=UsageLedger)
        broken.accumulate.side_effect = RuntimeError("ledger down")
        machine = InterviewStateMachine(
            store, gateway, config, cost_ledger=cost_ledger, ledger=broken, retry=retry,
            clock=clock,
        )
        session = await machine.register(ParticipantFactory.create(), "campaign-1", "tenant-1")

        with pytest.raises(UsageCommitError):
            await machine.submit_message(session.id, "Hello")

        assert (await machine.get(session.id)).questions_asked == 1
        assert await store.acquire_turn(session.id, "next", 60)

    @pytest.mark.asyncio
    async def test_completing_turn_still_fires_listeners(
        self, store, gateway, config, cost_ledger, retry, clock
    ) -> None:
        broken = AsyncMock(spec=UsageLedger)
        broken.accumulate.side_effect = RuntimeError("ledger down")
        machine = InterviewStateMachine(
            store, gateway, config, cost_ledger=cost_ledger, ledger=broken, retry=retry,
            clock=clock,
        )
        seen = []

        async def listener(completed):
            seen.append(completed.completion_reason)

        machine.add_completion_listener(listener)
        session = await machine.register(ParticipantFactory.create(), "campaign-1", "tenant-1")

        with pytest.raises(UsageCommitError):
            await machine.submit_message(session.id, "Our budget is tight.")
        with pytest.raises(UsageCommitError):
            await machine.submit_message(session.id, "The sensors are old.")
        await machine.drain()

        assert (await machine.get(session.id)).phase is Phase.COMPLETED
        assert seen == [CompletionReason.NATURAL]


class TestForceComplete:
    @pytest.mark.asyncio
    async def test_zero_progress_session_completes_by_override(self, machine, session) -> None:
        await machine.start_or_resume(session.id)

        completed = await machine.force_complete(session.id)

        assert completed.phase is Phase.COMPLETED
        assert completed.completion_reason is CompletionReason.FACILITATOR_OVERRIDE
        assert completed.topics_covered == []
        assert completed.questions_asked == 0

    @pytest.mark.asyncio
    async def test_is_idempotent(self, machine, session, clock) -> None:
        first = await machine.force_complete(session.id)
        clock.advance(hours=1)

        second = await machine.force_complete(session.id)

        assert second.completed_at == first.completed_at

    @pytest.mark.asyncio
    async def test_after_natural_completion_keeps_reason(self, machine, session) -> None:
        await machine.submit_message(session.id, "Our budget is tight.")
        await machine.submit_message(session.id, "The sensors are old.")

        again = await machine.force_complete(session.id)

        assert again.completion_reason is CompletionReason.NATURAL


class TestCompletionListeners:
    @pytest.mark.asyncio
    async def test_listener_called_once(self, machine, session) -> None:
        seen = []

        async def listener(completed):
            seen.append(completed)

        machine.add_completion_listener(listener)
        await machine.force_complete(session.id)
        await machine.force_complete(session.id)
        await machine.drain()

        assert [s.id for s in seen] == [session.id]
        assert seen[0].completed

    @pytest.mark.asyncio
    async def test_natural_completion_fires_listener(self, machine, session) -> None:
        seen = []

        async def listener(completed):
            seen.append(completed.completion_reason)

        machine.add_completion_listener(listener)
        await machine.submit_message(session.id, "Our budget is tight.")
        await machine.submit_message(session.id, "The sensors are old.")
        await machine.drain()

        assert seen == [CompletionReason.NATURAL]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self, machine, session) -> None:
        seen = []

        async def broken(_completed):
            raise RuntimeError("listener exploded")

        async def listener(completed):
            seen.append(completed.id)

        machine.add_completion_listener(broken)
        machine.add_completion_listener(listener)
        completed = await machine.force_complete(session.id)
        await machine.drain()

        assert completed.completed
        assert seen == [session.id]

    @pytest.mark.asyncio
    async def test_listener_logs_carry_session_context(self, machine, session) -> None:
        seen = []

        async def listener(_completed):
            seen.append(structlog.contextvars.get_contextvars())

        machine.add_completion_listener(listener)
        await machine.force_complete(session.id)
        await machine.drain()

        assert seen[0]["session_id"] == str(session.id)
        assert seen[0]["campaign_id"] == "campaign-1"
        assert seen[0]["tenant_id"] == "tenant-1"
        assert "session_id" not in structlog.contextvars.get_contextvars()


class SlowFirstCallGateway(ScriptedModelGateway):
    """Holds the first call for ``delay`` seconds, then answers immediately."""

    def __init__(self, delay: float) -> None:
        super().__init__("Tell me more.", tokens_in=100, tokens_out=50)
        self._delay = delay

    async def complete(self, prompt, model_id, **kwargs):
        delay, self._delay = self._delay, 0.0
        await asyncio.sleep(delay)
        return await super().complete(prompt, model_id, **kwargs)


class TestTurnLease:
    @pytest.mark.asyncio
    async def test_turn_outliving_its_lock_is_not_saved(
        self, store, config, cost_ledger, usage_ledger, retry, clock
    ) -> None:
        machine = InterviewStateMachine(
            store,
            SlowFirstCallGateway(delay=0.2),
            config,
            cost_ledger=cost_ledger,
            ledger=usage_ledger,
            retry=retry,
            clock=clock,
            turn_lock_ttl_seconds=0.05,
        )
        session = await machine.register(ParticipantFactory.create(), "campaign-1", "tenant-1")

        slow = asyncio.create_task(machine.submit_message(session.id, "first"))
        await asyncio.sleep(0.1)
        await machine.submit_message(session.id, "second")

        with pytest.raises(TurnLeaseLostError):
            await slow

        stored = await machine.get(session.id)
        assert [e.text for e in stored.transcript if e.role is Role.USER] == ["second"]
        assert stored.questions_asked == 1
        assert (await usage_ledger.current("tenant-1")).cumulative_tokens == 300

    @pytest.mark.asyncio
    async def test_save_with_foreign_token_rejected(self, store, session) -> None:
        await store.acquire_turn(session.id, "owner", 60)

        with pytest.raises(TurnLeaseLostError):
            await store.save(session, turn_token="someone-else")

    @pytest.mark.asyncio
    async def test_save_with_expired_token_rejected(self, store, session) -> None:
        await store.acquire_turn(session.id, "owner", 0.01)
        await asyncio.sleep(0.05)

        with pytest.raises(TurnLeaseLostError):
            await store.save(session, turn_token="owner")

    @pytest.mark.asyncio
    async def test_save_with_owned_token(self, store, session) -> None:
        await store.acquire_turn(session.id, "owner", 60)
        updated = session.model_copy(update={"questions_asked": 4})

        await store.save(updated, turn_token="owner")

        assert (await store.get(session.id)).questions_asked == 4
