"""Interview state machine.

Drives one stakeholder conversation turn by turn:

1. Acquire the session's turn lock (a concurrent turn is rejected)
2. Detect topics in the stakeholder's message and decide the next phase
3. Generate the agent reply through the model gateway, with retries
4. Apply the turn as a pure transition and persist the new state, fenced on
   the lock token so a turn that outlived its lock is rejected
5. Commit the turn's model usage to the ledger

A gateway failure aborts before step 4, so the persisted transcript never
holds a user message without its reply and the caller may resend the same
text. Completion fires registered listeners as background tasks.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from uuid import UUID, uuid4

from parley.billing.accumulator import UsageAccumulator
from parley.billing.ledger import UsageLedger
from parley.billing.pricing import CostLedger
from parley.config.models.interview import InterviewConfig
from parley.errors import (
    SessionBusyError,
    SessionCompletedError,
    SessionNotFoundError,
    UsageCommitError,
)
from parley.interview.models import InterviewSession, Participant, Phase, TranscriptEntry
from parley.interview.policy import PhaseRules, TopicCatalog
from parley.interview.prompts import build_opening, build_system_prompt, build_turn_prompt
from parley.interview.state import ForceCompleted, InterviewStarted, TurnRecorded, transition
from parley.interview.store import InterviewSessionStore
from parley.observability.logging import get_logger, log_context
from parley.observability.metrics import INTERVIEW_TURNS, INTERVIEWS_COMPLETED
from parley.providers.llm.base import ModelGateway
from parley.retry import RetryPolicy

logger = get_logger(__name__)

CompletionListener = Callable[[InterviewSession], Awaitable[None]]


class InterviewStateMachine:
    """Public operations on interview sessions."""

    def __init__(
        self,
        store: InterviewSessionStore,
        gateway: ModelGateway,
        config: InterviewConfig,
        *,
        cost_ledger: CostLedger,
        ledger: UsageLedger,
        retry: RetryPolicy | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        turn_lock_ttl_seconds: float = 300.0,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._config = config
        self._cost_ledger = cost_ledger
        self._ledger = ledger
        self._retry = retry or RetryPolicy.from_config(config.retry)
        self._clock = clock
        self._turn_lock_ttl = turn_lock_ttl_seconds
        self._catalog = TopicCatalog(config.topics)
        self._rules = PhaseRules(config, self._catalog)
        self._listeners: list[CompletionListener] = []
        self._background: set[asyncio.Task[None]] = set()

    @property
    def catalog(self) -> TopicCatalog:
        return self._catalog

    @property
    def turn_lock_ttl(self) -> float:
        return self._turn_lock_ttl

    def add_completion_listener(self, listener: CompletionListener) -> None:
        """Register a coroutine called once when a session completes."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def register(
        self,
        participant: Participant,
        campaign_id: str,
        tenant_id: str,
    ) -> InterviewSession:
        """Create an unstarted session for a stakeholder.

        The returned id is what the stakeholder's access link resolves to.
        """
        session = InterviewSession(
            tenant_id=tenant_id,
            campaign_id=campaign_id,
            participant=participant,
            created_at=self._clock(),
            updated_at=self._clock(),
        )
        await self._store.save(session)
        logger.info(
            "interview_registered",
            session_id=str(session.id),
            campaign_id=campaign_id,
            tenant_id=tenant_id,
        )
        return session

    async def get(self, session_id: UUID) -> InterviewSession:
        session = await self._store.get(session_id)
        if session is None:
            raise SessionNotFoundError(
                f"Interview session {session_id} not found",
                details={"session_id": str(session_id)},
            )
        return session

    async def list_by_campaign(
        self, campaign_id: str, *, completed_only: bool = False
    ) -> list[InterviewSession]:
        return await self._store.list_by_campaign(campaign_id, completed_only=completed_only)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def start_or_resume(
        self, session_id: UUID
    ) -> tuple[list[TranscriptEntry], InterviewSession]:
        """Return the stored transcript, issuing the opening message on first contact."""
        session = await self.get(session_id)
        if session.started:
            return list(session.transcript), session

        async with self._turn(session_id) as turn:
            session = await self.get(session_id)
            if not session.started:
                session = transition(session, self._started_event(session))
                await self._store.save(session, turn_token=turn.token)
                logger.info("interview_started", session_id=str(session_id))
        return list(session.transcript), session

    async def submit_message(self, session_id: UUID, text: str) -> tuple[str, InterviewSession]:
        """Record a stakeholder message and return the agent reply.

        Raises:
            ValueError: If the message is blank
            SessionNotFoundError: Unknown session
            SessionCompletedError: The interview already finished
            SessionBusyError: Another turn is in progress on this session
            ParleyError: Classified gateway failure after retries; nothing persisted
            TurnLeaseLostError: The turn lock expired mid-turn; nothing persisted
            UsageCommitError: The turn was saved but its usage could not be recorded.
                Completion listeners have already been scheduled.
        """
        text = text.strip()
        if not text:
            raise ValueError("message text must not be empty")

        session = await self.get(session_id)
        if session.completed:
            raise SessionCompletedError(
                f"Interview session {session_id} is already completed",
                details={"session_id": str(session_id)},
            )

        async with self._turn(session_id) as turn:
            session = await self.get(session_id)
            if session.completed:
                raise SessionCompletedError(
                    f"Interview session {session_id} is already completed",
                    details={"session_id": str(session_id)},
                )
            if not session.started:
                session = transition(session, self._started_event(session))

            detected = self._catalog.detect(text)
            next_phase = self._rules.after_turn(session, detected)
            covered = session.topics_covered + [
                t for t in detected if t not in session.topics_covered
            ]

            accumulator = UsageAccumulator(
                self._cost_ledger,
                self._ledger,
                operation="interview_turn",
                metadata={"session_id": str(session_id), "campaign_id": session.campaign_id},
            )
            try:
                completion = await self._retry.run(
                    lambda: self._gateway.complete(
                        build_turn_prompt(session, text),
                        self._config.model_id,
                        system=build_system_prompt(
                            session, self._catalog, self._config, next_phase, covered
                        ),
                        max_tokens=self._config.max_tokens,
                        temperature=self._config.temperature,
                    ),
                    operation="interview_turn",
                )
                await accumulator.record(
                    self._config.model_id,
                    completion.tokens_in,
                    completion.tokens_out,
                    call_type="interview_turn",
                )

                updated = transition(
                    session,
                    TurnRecorded(
                        user_text=text,
                        agent_text=completion.text,
                        topics=detected,
                        phase=next_phase,
                        at=self._clock(),
                    ),
                )
                await self._store.save(updated, turn_token=turn.token)
            except BaseException:
                await accumulator.commit(session.tenant_id)
                raise

            commit_error: UsageCommitError | None = None
            try:
                await accumulator.commit(session.tenant_id)
            except UsageCommitError as e:
                commit_error = e

        INTERVIEW_TURNS.labels(phase=updated.phase.value).inc()
        logger.info(
            "interview_turn_recorded",
            session_id=str(session_id),
            phase=updated.phase.value,
            questions_asked=updated.questions_asked,
            topics_covered=len(updated.topics_covered),
            user_chars=len(text),
        )
        if updated.phase is Phase.COMPLETED:
            self._on_completed(updated)
        if commit_error is not None:
            raise commit_error
        return completion.text, updated

    async def force_complete(self, session_id: UUID) -> InterviewSession:
        """Facilitator override. Completing a completed session is a no-op."""
        session = await self.get(session_id)
        if session.completed:
            return session

        async with self._turn(session_id) as turn:
            session = await self.get(session_id)
            if session.completed:
                return session
            session = transition(session, ForceCompleted(at=self._clock()))
            await self._store.save(session, turn_token=turn.token)

        self._on_completed(session)
        return session

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _started_event(self, session: InterviewSession) -> InterviewStarted:
        return InterviewStarted(opening=build_opening(session, self._config), at=self._clock())

    def _turn(self, session_id: UUID) -> "_TurnLock":
        return _TurnLock(self._store, session_id, self._turn_lock_ttl)

    def _on_completed(self, session: InterviewSession) -> None:
        INTERVIEWS_COMPLETED.labels(reason=session.completion_reason.value).inc()
        logger.info(
            "interview_completed",
            session_id=str(session.id),
            campaign_id=session.campaign_id,
            reason=session.completion_reason.value,
            questions_asked=session.questions_asked,
        )
        with log_context(
            session_id=session.id, campaign_id=session.campaign_id, tenant_id=session.tenant_id
        ):
            for listener in self._listeners:
                task = asyncio.create_task(self._run_listener(listener, session))
                self._background.add(task)
                task.add_done_callback(self._background.discard)

    async def _run_listener(self, listener: CompletionListener, session: InterviewSession) -> None:
        try:
            await listener(session.model_copy(deep=True))
        except Exception as e:
            logger.error(
                "completion_listener_failed",
                session_id=str(session.id),
                listener=getattr(listener, "__qualname__", repr(listener)),
                error=str(e),
            )

    async def drain(self) -> None:
        """Wait for outstanding completion listeners."""
        while self._background:
            await asyncio.gather(*list(self._background))


class _TurnLock:
    """Async context manager around the store's per-session turn lock."""

    def __init__(self, store: InterviewSessionStore, session_id: UUID, ttl: float) -> None:
        self._store = store
        self._session_id = session_id
        self._ttl = ttl
        self._token = uuid4().hex

    @property
    def token(self) -> str:
        return self._token

    async def __aenter__(self) -> "_TurnLock":
        if not await self._store.acquire_turn(self._session_id, self._token, self._ttl):
            logger.info("interview_turn_rejected_busy", session_id=str(self._session_id))
            raise SessionBusyError(
                f"A turn is already in progress for session {self._session_id}",
                details={"session_id": str(self._session_id)},
            )
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self._store.release_turn(self._session_id, self._token)
