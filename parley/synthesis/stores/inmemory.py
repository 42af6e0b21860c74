"""In-memory implementation of SynthesisJobStore."""

import asyncio
from uuid import UUID

from parley.synthesis.models import JobStatus, SynthesisJob
from parley.synthesis.store import SynthesisJobStore


class InMemorySynthesisJobStore(SynthesisJobStore):
    """In-memory job store for testing and development.

    Marker TTLs are not enforced; a marker lives until released.
    """

    def __init__(self) -> None:
        self._jobs: dict[UUID, SynthesisJob] = {}
        self._running: dict[str, UUID] = {}
        self._lock = asyncio.Lock()

    async def get(self, job_id: UUID) -> SynthesisJob | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def save(self, job: SynthesisJob) -> None:
        self._jobs[job.id] = job.model_copy(deep=True)

    async def list_for_campaign(
        self,
        campaign_id: str,
        *,
        status: JobStatus | None = None,
        limit: int = 20,
    ) -> list[SynthesisJob]:
        results = [
            j
            for j in self._jobs.values()
            if j.campaign_id == campaign_id and (status is None or j.status == status)
        ]
        results.sort(key=lambda j: j.created_at, reverse=True)
        return [j.model_copy(deep=True) for j in results[:limit]]

    async def acquire_running(self, campaign_id: str, job_id: UUID, ttl_seconds: int) -> bool:
        async with self._lock:
            if campaign_id in self._running:
                return False
            self._running[campaign_id] = job_id
            return True

    async def running_job_id(self, campaign_id: str) -> UUID | None:
        return self._running.get(campaign_id)

    async def release_running(self, campaign_id: str, job_id: UUID) -> None:
        async with self._lock:
            if self._running.get(campaign_id) == job_id:
                del self._running[campaign_id]
