"""Redis implementation of SynthesisJobStore.

Key structure:
- {prefix}:synthesis:job:{job_id} - job JSON
- {prefix}:synthesis:campaign:{campaign_id} - sorted set of job ids by creation time
- {prefix}:synthesis:running:{campaign_id} - running marker (SET NX EX)
"""

from uuid import UUID

import redis.asyncio as redis

from parley.errors import DatabaseError
from parley.observability.logging import get_logger
from parley.synthesis.models import JobStatus, SynthesisJob
from parley.synthesis.store import SynthesisJobStore

logger = get_logger(__name__)

RELEASE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisSynthesisJobStore(SynthesisJobStore):
    """Job store backed by Redis.

    The running marker expires after ``ttl_seconds`` so a crashed worker
    cannot block a campaign forever.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = "parley") -> None:
        self._client = client
        self._prefix = key_prefix
        self._release = client.register_script(RELEASE_SCRIPT)

    def _job_key(self, job_id: UUID | str) -> str:
        return f"{self._prefix}:synthesis:job:{job_id}"

    def _campaign_key(self, campaign_id: str) -> str:
        return f"{self._prefix}:synthesis:campaign:{campaign_id}"

    def _running_key(self, campaign_id: str) -> str:
        return f"{self._prefix}:synthesis:running:{campaign_id}"

    async def get(self, job_id: UUID) -> SynthesisJob | None:
        try:
            data = await self._client.get(self._job_key(job_id))
        except redis.RedisError as e:
            raise DatabaseError("get synthesis job", cause=e) from e
        return SynthesisJob.model_validate_json(data) if data else None

    async def save(self, job: SynthesisJob) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(self._job_key(job.id), job.model_dump_json())
                pipe.zadd(
                    self._campaign_key(job.campaign_id),
                    {str(job.id): job.created_at.timestamp()},
                )
                await pipe.execute()
        except redis.RedisError as e:
            logger.error("redis_save_error", job_id=str(job.id), error=str(e))
            raise DatabaseError("save synthesis job", cause=e) from e

    async def list_for_campaign(
        self,
        campaign_id: str,
        *,
        status: JobStatus | None = None,
        limit: int = 20,
    ) -> list[SynthesisJob]:
        try:
            ids = await self._client.zrevrange(self._campaign_key(campaign_id), 0, -1)
            if not ids:
                return []
            rows = await self._client.mget([self._job_key(_text(i)) for i in ids])
        except redis.RedisError as e:
            raise DatabaseError("list synthesis jobs", cause=e) from e

        jobs = [SynthesisJob.model_validate_json(row) for row in rows if row]
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return jobs[:limit]

    async def acquire_running(self, campaign_id: str, job_id: UUID, ttl_seconds: int) -> bool:
        try:
            acquired = await self._client.set(
                self._running_key(campaign_id), str(job_id), nx=True, ex=ttl_seconds
            )
        except redis.RedisError as e:
            raise DatabaseError("acquire running marker", cause=e) from e
        return bool(acquired)

    async def running_job_id(self, campaign_id: str) -> UUID | None:
        try:
            value = await self._client.get(self._running_key(campaign_id))
        except redis.RedisError as e:
            raise DatabaseError("read running marker", cause=e) from e
        return UUID(_text(value)) if value else None

    async def release_running(self, campaign_id: str, job_id: UUID) -> None:
        try:
            await self._release(keys=[self._running_key(campaign_id)], args=[str(job_id)])
        except redis.RedisError as e:
            logger.error("running_marker_release_failed", campaign_id=campaign_id, error=str(e))
            raise DatabaseError("release running marker", cause=e) from e
