"""In-memory implementation of InterviewSessionStore."""

import asyncio
import time
from uuid import UUID

from parley.errors import TurnLeaseLostError
from parley.interview.models import InterviewSession
from parley.interview.store import InterviewSessionStore


class InMemoryInterviewSessionStore(InterviewSessionStore):
    """In-memory session store for testing and development.

    Stored sessions are deep copies, so callers can never alter persisted
    state by mutating a returned object.
    """

    def __init__(self) -> None:
        self._sessions: dict[UUID, InterviewSession] = {}
        self._turns: dict[UUID, tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get(self, session_id: UUID) -> InterviewSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def save(self, session: InterviewSession, *, turn_token: str | None = None) -> None:
        if turn_token is not None:
            async with self._lock:
                held = self._turns.get(session.id)
                if held is None or held[0] != turn_token or held[1] <= time.monotonic():
                    raise TurnLeaseLostError(
                        f"Turn lock for session {session.id} was lost before saving",
                        details={"session_id": str(session.id)},
                    )
                self._sessions[session.id] = session.model_copy(deep=True)
            return
        self._sessions[session.id] = session.model_copy(deep=True)

    async def list_by_campaign(
        self,
        campaign_id: str,
        *,
        completed_only: bool = False,
    ) -> list[InterviewSession]:
        results = [
            s.model_copy(deep=True)
            for s in self._sessions.values()
            if s.campaign_id == campaign_id and (s.completed or not completed_only)
        ]
        results.sort(key=lambda s: s.created_at)
        return results

    async def acquire_turn(self, session_id: UUID, token: str, ttl_seconds: float) -> bool:
        async with self._lock:
            now = time.monotonic()
            held = self._turns.get(session_id)
            if held is not None and held[1] > now:
                return False
            self._turns[session_id] = (token, now + ttl_seconds)
            return True

    async def release_turn(self, session_id: UUID, token: str) -> None:
        async with self._lock:
            held = self._turns.get(session_id)
            if held is not None and held[0] == token:
                del self._turns[session_id]
