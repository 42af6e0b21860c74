"""Session-completed listener that notifies the tenant."""

from typing import TYPE_CHECKING

from parley.notifications.dispatcher import NotificationDispatcher
from parley.notifications.models import ChannelResult, NotificationEvent, NotificationPayload

if TYPE_CHECKING:
    from parley.interview.models import InterviewSession


class CompletionNotifier:
    """Sends ``session_completed`` to the tenant's enabled channels."""

    def __init__(self, dispatcher: NotificationDispatcher, dashboard_base_url: str = "") -> None:
        self._dispatcher = dispatcher
        self._dashboard_base_url = dashboard_base_url.rstrip("/")

    def payload_for(self, session: "InterviewSession") -> NotificationPayload:
        return NotificationPayload(
            event=NotificationEvent.SESSION_COMPLETED,
            tenant_id=session.tenant_id,
            participant_name=session.participant.name,
            assessment_type=session.campaign_id,
            dashboard_url=f"{self._dashboard_base_url}/dashboard/campaigns/{session.campaign_id}",
            occurred_at=session.completed_at or session.updated_at,
            metadata={
                "session_id": str(session.id),
                "campaign_id": session.campaign_id,
                "completion_reason": (
                    session.completion_reason.value if session.completion_reason else None
                ),
                "questions_asked": session.questions_asked,
            },
        )

    async def __call__(self, session: "InterviewSession") -> list[ChannelResult]:
        return await self._dispatcher.dispatch(session.tenant_id, self.payload_for(session))
