"""SynthesisJobStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from parley.synthesis.models import JobStatus, SynthesisJob


class SynthesisJobStore(ABC):
    """Persistence for synthesis jobs plus the per-campaign running marker.

    The running marker is the single mutual-exclusion point of a campaign.
    ``acquire_running`` must be an atomic compare-and-set.
    """

    @abstractmethod
    async def get(self, job_id: UUID) -> SynthesisJob | None:
        """Get a job by ID."""
        pass

    @abstractmethod
    async def save(self, job: SynthesisJob) -> None:
        """Create or replace a job."""
        pass

    @abstractmethod
    async def list_for_campaign(
        self,
        campaign_id: str,
        *,
        status: JobStatus | None = None,
        limit: int = 20,
    ) -> list[SynthesisJob]:
        """List a campaign's jobs, newest first."""
        pass

    @abstractmethod
    async def acquire_running(self, campaign_id: str, job_id: UUID, ttl_seconds: int) -> bool:
        """Set the running marker to ``job_id`` unless one is already held."""
        pass

    @abstractmethod
    async def running_job_id(self, campaign_id: str) -> UUID | None:
        """Job currently holding the marker, if any."""
        pass

    @abstractmethod
    async def release_running(self, campaign_id: str, job_id: UUID) -> None:
        """Clear the marker if ``job_id`` still holds it."""
        pass

    async def latest(
        self, campaign_id: str, *, status: JobStatus | None = None
    ) -> SynthesisJob | None:
        jobs = await self.list_for_campaign(campaign_id, status=status, limit=1)
        return jobs[0] if jobs else None
