"""InterviewSessionStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from parley.interview.models import InterviewSession


class InterviewSessionStore(ABC):
    """Persistence for interview sessions plus a per-session turn lock.

    Sessions are never deleted by the core. The turn lock is a
    non-blocking compare-and-set: ``acquire_turn`` returns False when another
    holder owns the session.
    """

    @abstractmethod
    async def get(self, session_id: UUID) -> InterviewSession | None:
        """Get a session by ID."""
        pass

    @abstractmethod
    async def save(self, session: InterviewSession, *, turn_token: str | None = None) -> None:
        """Create or replace a session.

        With ``turn_token`` the write only happens while that token still owns
        the session's turn lock.

        Raises:
            TurnLeaseLostError: The lock expired or another holder took it
        """
        pass

    @abstractmethod
    async def list_by_campaign(
        self,
        campaign_id: str,
        *,
        completed_only: bool = False,
    ) -> list[InterviewSession]:
        """List sessions of a campaign, oldest first."""
        pass

    @abstractmethod
    async def acquire_turn(self, session_id: UUID, token: str, ttl_seconds: float) -> bool:
        """Try to take the session's turn lock."""
        pass

    @abstractmethod
    async def release_turn(self, session_id: UUID, token: str) -> None:
        """Release the turn lock if ``token`` still owns it."""
        pass
