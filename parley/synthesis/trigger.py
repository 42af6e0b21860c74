"""Automatic synthesis once every interview of a campaign is done."""

from parley.interview.models import InterviewSession
from parley.interview.store import InterviewSessionStore
from parley.observability.logging import get_logger
from parley.providers.llm.tiers import ReportTier
from parley.synthesis.orchestrator import SynthesisHandle, SynthesisOrchestrator

logger = get_logger(__name__)


class AutoSynthesisTrigger:
    """Session-completed listener that starts a campaign's synthesis run.

    Fires only when every registered session of the campaign is completed.
    A run already in flight is joined, not duplicated.
    """

    def __init__(
        self,
        sessions: InterviewSessionStore,
        orchestrator: SynthesisOrchestrator,
        tier: ReportTier | str = ReportTier.STANDARD,
        *,
        enabled: bool = True,
    ) -> None:
        self._sessions = sessions
        self._orchestrator = orchestrator
        self._tier = ReportTier(tier)
        self._enabled = enabled

    async def __call__(self, session: InterviewSession) -> SynthesisHandle | None:
        if not self._enabled:
            return None

        campaign = await self._sessions.list_by_campaign(session.campaign_id)
        pending = [s for s in campaign if not s.completed]
        if pending:
            logger.debug(
                "auto_synthesis_waiting",
                campaign_id=session.campaign_id,
                pending=len(pending),
                total=len(campaign),
            )
            return None

        handle = await self._orchestrator.run(session.campaign_id, self._tier)
        logger.info(
            "auto_synthesis_triggered",
            campaign_id=session.campaign_id,
            job_id=str(handle.job_id),
            started=handle.started,
            tier=self._tier.value,
        )
        return handle
